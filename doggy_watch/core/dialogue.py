"""Per-conversation dialogue states for multi-step interactions.

Every conversation starts :class:`Idle`. A flow moves it to one waiting state
and :meth:`DialogueStore.finish` returns it to :class:`Idle`:

* ``Idle -> AcceptVideo -> Idle`` when a submitter confirms or cancels a link.
* ``Idle -> AwaitingForwardedMessage -> Idle`` while enrolling a moderator.
* ``Idle -> AwaitingConfirmation -> Idle`` while removing a moderator.

States live in memory only and are lost on restart.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Union

DEFAULT_TTL = 600.0


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class AcceptVideo:
    ytid: str
    title: str


@dataclass(frozen=True)
class AwaitingForwardedMessage:
    pass


@dataclass(frozen=True)
class AwaitingConfirmation:
    target: int


DialogueState = Union[Idle, AcceptVideo, AwaitingForwardedMessage, AwaitingConfirmation]

IDLE = Idle()


class DialogueBusy(Exception):
    """A flow was started while another one is still pending."""

    def __init__(self, state: DialogueState) -> None:
        super().__init__(f"Dialogue already in state {type(state).__name__}")
        self.state = state


class DialogueStore:
    """In-memory map from conversation key to its current state.

    ``ttl`` bounds how long a waiting state survives without being advanced;
    ``None`` keeps it until it is finished explicitly.
    """

    def __init__(
        self,
        ttl: float | None = DEFAULT_TTL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl = ttl
        self._clock = clock
        self._states: dict[int, tuple[DialogueState, float]] = {}

    def get(self, key: int) -> DialogueState:
        entry = self._states.get(key)
        if entry is None:
            return IDLE
        state, since = entry
        if self.ttl is not None and self._clock() - since >= self.ttl:
            del self._states[key]
            return IDLE
        return state

    def start(self, key: int, state: DialogueState) -> None:
        """Enter ``state`` from :class:`Idle`."""
        current = self.get(key)
        if not isinstance(current, Idle):
            raise DialogueBusy(current)
        if isinstance(state, Idle):
            return
        self._states[key] = (state, self._clock())

    def finish(self, key: int) -> DialogueState:
        """Return to :class:`Idle`, handing back the state that was pending."""
        current = self.get(key)
        self._states.pop(key, None)
        return current

    def __len__(self) -> int:
        return len(self._states)
