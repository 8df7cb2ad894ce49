"""Best-effort delivery of queue notifications to moderators."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable

from ..adapters.base import Adapter
from ..data.store import WatchStore
from ..ui.markup import new_video_notice
from .models import Video

log = logging.getLogger("doggy_watch.notify")


class NotificationFanout:
    """Deliver a message to every moderator who has notifications enabled."""

    def __init__(self, store: WatchStore, adapter: Adapter) -> None:
        self.store = store
        self.adapter = adapter

    async def recipients(self, exclude: Iterable[int] = ()) -> list[int]:
        excluded = set(exclude)
        async with self.store.session() as s:
            moderators = await s.list_moderators(notify_only=True)
        return [m.id for m in moderators if m.id not in excluded]

    async def notify(self, message: str, exclude: Iterable[int] = ()) -> int:
        """Send ``message`` and return how many deliveries succeeded.

        Failures are logged per recipient and never raised.
        """
        targets = await self.recipients(exclude)
        if not targets:
            return 0
        results = await asyncio.gather(
            *(self.adapter.send_direct_message(uid, message) for uid in targets),
            return_exceptions=True,
        )
        delivered = 0
        for uid, result in zip(targets, results):
            if isinstance(result, BaseException):
                log.error("Failed to notify moderator %s: %r", uid, result)
            else:
                delivered += 1
        return delivered

    async def announce_video(self, video: Video, exclude: Iterable[int] = ()) -> int:
        return await self.notify(new_video_notice(video), exclude)
