"""Submission, moderation and archival rules of the watch queue.

:class:`WatchWorkflow` is the only place that decides how a submitted link
becomes a request, how contributions accumulate on it and how resolved
requests are folded into the archive. The store supplies durable state and
the uniqueness constraints the rules lean on; the rate limiter is owned by the
workflow instance.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable, Iterable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING

import aiosqlite

from ..data.store import StoreSession, WatchStore
from .errors import (
    AlreadyModerator,
    AlreadyViewed,
    Banned,
    DuplicateContribution,
    EmptySelection,
    InvariantViolation,
    NotFound,
    NotSubscribed,
    PermissionDenied,
    RateLimited,
    StoreError,
)
from .models import Action, Moderator, Request, Video
from .ratelimit import RateLimiter

if TYPE_CHECKING:
    from ..adapters.base import SubscriptionChecker
    from .notify import NotificationFanout

log = logging.getLogger("doggy_watch.workflow")


def utcnow() -> datetime:
    return datetime.now(tz=UTC)


class ArchiveScope(str, Enum):
    VIEWED = "viewed"
    ALL = "all"


class Rights(str, Enum):
    NONE = "none"
    MODERATOR = "moderator"
    ADMINISTRATOR = "administrator"


class RequestStatus(str, Enum):
    """Listing glyph of an open request, highest precedence first."""

    VIEWED = "👀"
    PREVIOUSLY_VIEWED = "⭐"
    ARCHIVED = "📁"
    NEW = "🆕"


@dataclass(frozen=True)
class Created:
    video: Video
    request: Request
    action: Action


@dataclass(frozen=True)
class RequestInfo:
    video: Video
    request: Request
    creator: Action
    contributors: int


@dataclass(frozen=True)
class RequestEntry:
    request: Request
    video: Video
    creator: Action
    contributors: int
    status: RequestStatus


class WatchWorkflow:
    """Workflow engine over a :class:`WatchStore`.

    Parameters
    ----------
    store:
        Durable state.
    limiter:
        Cooldown tracker; a default 30 second limiter is created when omitted.
    notifier:
        Receives an announcement after every accepted submission. The
        announcement runs as a background task; :meth:`drain` waits for it.
    clock:
        Source of timestamps written to the store.
    administrators:
        Bootstrap identities that always hold full rights.

    """

    def __init__(
        self,
        store: WatchStore,
        limiter: RateLimiter | None = None,
        notifier: NotificationFanout | None = None,
        clock: Callable[[], datetime] = utcnow,
        administrators: Iterable[int] = (),
    ) -> None:
        self.store = store
        self.limiter = limiter or RateLimiter()
        self.notifier = notifier
        self.administrators = frozenset(administrators)
        self._clock = clock
        self._announcements: set[asyncio.Task[None]] = set()

    @asynccontextmanager
    async def _unit(self, write: bool = True) -> AsyncIterator[StoreSession]:
        """One transaction; store failures surface as :class:`StoreError`."""
        try:
            async with self.store.transaction(immediate=write) as tx:
                yield tx
        except aiosqlite.Error as exc:
            raise StoreError(str(exc)) from exc

    # ------------------------------------------------------------------
    # Submission intake
    # ------------------------------------------------------------------
    async def submit(self, ytid: str, title: str, uid: int) -> Created:
        """Record ``uid``'s wish to have ``ytid`` watched.

        Raises :class:`RateLimited`, :class:`Banned`, :class:`AlreadyViewed`,
        :class:`DuplicateContribution` or :class:`StoreError`.
        """
        retry_after = self.limiter.retry_after(uid)
        if retry_after > 0:
            raise RateLimited(retry_after)

        now = self._clock()
        async with self._unit() as tx:
            video = await tx.get_video(ytid)
            if video is None:
                video = await tx.insert_video(ytid, title)
            if video.banned:
                raise Banned(video)

            request, _ = await tx.ensure_request(ytid)
            if request.viewed_at is not None:
                raise AlreadyViewed(request.viewed_at)
            if await tx.has_action(request.id, uid):
                raise DuplicateContribution(request)

            action = await self._contribute(tx, request, uid, now)
            await tx.bump_user(uid, now)

        self.limiter.touch(uid)
        log.info("User %s contributed to request %s (%s)", uid, request.id, ytid)
        if self.notifier is not None:
            task = asyncio.create_task(self._announce(video, uid))
            self._announcements.add(task)
            task.add_done_callback(self._announcements.discard)
        return Created(video=video, request=request, action=action)

    async def _contribute(
        self, tx: StoreSession, request: Request, uid: int, now: datetime
    ) -> Action:
        try:
            return await tx.insert_action(request.id, uid, now)
        except aiosqlite.Error as exc:
            await self._drop_orphan(tx, request)
            if isinstance(exc, aiosqlite.IntegrityError):
                raise DuplicateContribution(request) from exc
            raise StoreError(f"Failed to record contribution: {exc}") from exc

    async def _drop_orphan(self, tx: StoreSession, request: Request) -> None:
        """Delete ``request`` if it has no actions and commit the compensation."""
        try:
            if await tx.count_actions(request.id) == 0:
                await tx.delete_request(request.id)
                log.warning("Removed request %s left without actions", request.id)
            await tx.commit()
        except aiosqlite.Error:
            log.exception("Failed to clean up request %s", request.id)

    async def _announce(self, video: Video, uid: int) -> None:
        assert self.notifier is not None
        try:
            await self.notifier.announce_video(video, exclude=[uid])
        except Exception:
            log.exception("Failed to announce video %s", video.ytid)

    async def drain(self) -> None:
        """Wait for announcements still being sent."""
        while self._announcements:
            await asyncio.gather(*self._announcements)

    # ------------------------------------------------------------------
    # Moderation status transitions
    # ------------------------------------------------------------------
    async def set_viewed(self, rid: int, viewed: bool) -> Video:
        """Mark request ``rid`` viewed or unviewed and return its video.

        Marking an already viewed request keeps its original timestamp.
        """
        async with self._unit() as tx:
            request = await tx.get_request(rid)
            if request is None:
                raise NotFound("request", rid)
            if viewed and request.viewed_at is None:
                await tx.set_request_viewed(rid, self._clock())
            elif not viewed and request.viewed_at is not None:
                await tx.set_request_viewed(rid, None)
            video = await tx.get_video(request.ytid)
        if video is None:
            raise InvariantViolation(f"Request {rid} points to missing video {request.ytid}")
        return video

    async def set_banned(self, rid: int, banned: bool) -> Video:
        """Ban or pardon the video behind request ``rid``."""
        async with self._unit() as tx:
            request = await tx.get_request(rid)
            if request is None:
                raise NotFound("request", rid)
            video = await tx.set_video_banned(request.ytid, banned)
        if video is None:
            raise InvariantViolation(f"Request {rid} points to missing video {request.ytid}")
        return video

    async def set_video_banned(self, ytid: str, banned: bool) -> Video:
        async with self._unit() as tx:
            video = await tx.set_video_banned(ytid, banned)
        if video is None:
            raise NotFound("video", ytid)
        return video

    # ------------------------------------------------------------------
    # Archival sweep
    # ------------------------------------------------------------------
    async def archive(self, scope: ArchiveScope) -> int:
        """Fold the requests selected by ``scope`` into the archive.

        All rows are written and the requests deleted in one transaction, so
        a failure leaves the queue exactly as it was.
        """
        now = self._clock()
        async with self._unit() as tx:
            requests = await tx.list_requests(viewed=True if scope is ArchiveScope.VIEWED else None)
            if not requests:
                raise EmptySelection(f"Nothing to archive ({scope.value})")

            actions = await tx.actions_for([r.id for r in requests])
            rows = []
            for request in requests:
                contributions = actions[request.id]
                if not contributions:
                    log.error("Request %s has no actions, refusing to archive", request.id)
                    raise InvariantViolation(f"Request {request.id} has no actions")
                creator = min(contributions, key=lambda a: a.id)
                rows.append(
                    {
                        "ytid": request.ytid,
                        "viewed_at": request.viewed_at,
                        "created_by": creator.uid,
                        "created_at": now,
                        "contributors": len(contributions),
                    }
                )

            await tx.insert_archived(rows)
            await tx.delete_requests([r.id for r in requests])

        log.info("Archived %d request(s) (%s)", len(rows), scope.value)
        return len(rows)

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------
    async def list_requests(self, unviewed_only: bool = False) -> list[RequestEntry]:
        """Open requests of videos that are not banned, with their status."""
        entries: list[RequestEntry] = []
        async with self._unit(write=False) as s:
            pairs = await s.list_open(unviewed_only=unviewed_only)
            actions = await s.actions_for([r.id for r, _ in pairs])
            for request, video in pairs:
                contributions = actions[request.id]
                if not contributions:
                    log.error("Request %s has no actions", request.id)
                    raise InvariantViolation(f"Request {request.id} has no actions")
                entries.append(
                    RequestEntry(
                        request=request,
                        video=video,
                        creator=contributions[0],
                        contributors=len(contributions),
                        status=await self._status(s, request),
                    )
                )
        return entries

    @staticmethod
    async def _status(s: StoreSession, request: Request) -> RequestStatus:
        if request.viewed_at is not None:
            return RequestStatus.VIEWED
        if await s.count_archived(request.ytid, viewed_only=True):
            return RequestStatus.PREVIOUSLY_VIEWED
        if await s.count_archived(request.ytid):
            return RequestStatus.ARCHIVED
        return RequestStatus.NEW

    async def request_info(self, rid: int) -> RequestInfo:
        async with self._unit(write=False) as s:
            request = await s.get_request(rid)
            if request is None:
                raise NotFound("request", rid)
            video = await s.get_video(request.ytid)
            creator = await s.creator(rid)
            contributors = await s.count_actions(rid)
        if video is None or creator is None:
            log.error("Request %s is incomplete (video=%s, creator=%s)", rid, video, creator)
            raise InvariantViolation(f"Request {rid} is incomplete")
        return RequestInfo(video=video, request=request, creator=creator, contributors=contributors)

    async def contributions(self, uid: int) -> int:
        async with self._unit(write=False) as s:
            user = await s.get_user(uid)
        return user.contributions if user else 0

    # ------------------------------------------------------------------
    # Moderators
    # ------------------------------------------------------------------
    async def rights(self, uid: int) -> Rights:
        if uid in self.administrators:
            return Rights.ADMINISTRATOR
        async with self._unit(write=False) as s:
            moderator = await s.get_moderator(uid)
        return Rights.MODERATOR if moderator else Rights.NONE

    async def ensure_administrators(self) -> list[Moderator]:
        """Give every bootstrap administrator a moderator row that can add mods."""
        now = self._clock()
        async with self._unit() as tx:
            return [await tx.upsert_administrator(uid, now) for uid in sorted(self.administrators)]

    async def can_add_mods(self, uid: int) -> bool:
        if uid in self.administrators:
            return True
        async with self._unit(write=False) as s:
            moderator = await s.get_moderator(uid)
        return bool(moderator and moderator.can_add_mods)

    async def require_can_add_mods(self, uid: int) -> None:
        if not await self.can_add_mods(uid):
            raise PermissionDenied(f"User {uid} cannot manage moderators")

    async def enroll_moderator(
        self, initiator: int, candidate: int, checker: SubscriptionChecker
    ) -> Moderator:
        await self.require_can_add_mods(initiator)
        if not await checker.is_subscribed(candidate):
            raise NotSubscribed(f"User {candidate} is not subscribed")
        async with self._unit() as tx:
            try:
                moderator = await tx.insert_moderator(candidate, self._clock())
            except aiosqlite.IntegrityError as exc:
                raise AlreadyModerator(f"User {candidate} is already a moderator") from exc
        log.info("User %s enrolled moderator %s", initiator, candidate)
        return moderator

    async def remove_moderator(self, initiator: int, target: int) -> bool:
        """Delete moderator ``target``; ``False`` when there was none."""
        await self.require_can_add_mods(initiator)
        async with self._unit() as tx:
            removed = await tx.delete_moderator(target)
        if removed:
            log.info("User %s removed moderator %s", initiator, target)
        return removed

    async def toggle_notify(self, uid: int) -> Moderator:
        async with self._unit() as tx:
            moderator = await tx.get_moderator(uid)
            if moderator is None:
                raise NotFound("moderator", uid)
            updated = await tx.set_moderator_notify(uid, not moderator.notify)
        assert updated is not None
        return updated

    async def list_moderators(self) -> list[Moderator]:
        async with self._unit(write=False) as s:
            return await s.list_moderators()
