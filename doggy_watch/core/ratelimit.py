"""Per-submitter cooldown tracking."""

from __future__ import annotations

import time
from collections.abc import Callable

DEFAULT_COOLDOWN = 30.0


class RateLimiter:
    """Remember when each submitter last had a submission accepted.

    Entries are overwritten and never expired; their age is compared with the
    cooldown lazily. Two submissions racing through :meth:`retry_after` may
    both pass before either calls :meth:`touch`.
    """

    def __init__(
        self,
        cooldown: float = DEFAULT_COOLDOWN,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.cooldown = cooldown
        self._clock = clock
        self._last: dict[int, float] = {}

    def retry_after(self, uid: int) -> float:
        """Seconds ``uid`` must still wait, ``0.0`` when a submission is allowed."""
        last = self._last.get(uid)
        if last is None:
            return 0.0
        elapsed = self._clock() - last
        if elapsed >= self.cooldown:
            return 0.0
        return self.cooldown - elapsed

    def is_limited(self, uid: int) -> bool:
        return self.retry_after(uid) > 0.0

    def touch(self, uid: int) -> None:
        self._last[uid] = self._clock()

    def __len__(self) -> int:
        return len(self._last)
