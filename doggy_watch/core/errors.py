"""Outcomes of the workflow engine that are not a plain success."""

from __future__ import annotations

from datetime import datetime

from .models import Request, Video


class WatchError(Exception):
    """Base class for every workflow failure."""


class RateLimited(WatchError):
    """The submitter is still inside the cooldown window."""

    def __init__(self, retry_after: float) -> None:
        super().__init__(f"Rate limited, retry in {retry_after:.0f}s")
        self.retry_after = retry_after


class Banned(WatchError):
    """The video is banned and refuses new submissions."""

    def __init__(self, video: Video) -> None:
        super().__init__(f"Video {video.ytid} is banned")
        self.video = video


class AlreadyViewed(WatchError):
    """The open request of the video was already marked viewed."""

    def __init__(self, viewed_at: datetime) -> None:
        super().__init__(f"Already viewed at {viewed_at.isoformat()}")
        self.viewed_at = viewed_at


class DuplicateContribution(WatchError):
    """The submitter already contributed to the open request."""

    def __init__(self, request: Request | None = None) -> None:
        super().__init__("Duplicate contribution")
        self.request = request


class NotFound(WatchError):
    def __init__(self, kind: str, key: object) -> None:
        super().__init__(f"{kind} {key} not found")
        self.kind = kind
        self.key = key


class EmptySelection(WatchError):
    """An archival sweep selected nothing."""


class InvariantViolation(WatchError):
    """Stored state breaks an invariant the engine relies on. Indicates a bug."""


class StoreError(WatchError):
    """Wraps a failure of the underlying store."""


class UpstreamUnavailable(WatchError):
    """A metadata or membership collaborator could not be reached."""


class PermissionDenied(WatchError):
    """The initiator lacks the right to manage moderators."""


class NotSubscribed(WatchError):
    """The identity is not a member of the reference community."""


class AlreadyModerator(WatchError):
    """The identity is already enrolled as a moderator."""


__all__ = [
    "WatchError",
    "RateLimited",
    "Banned",
    "AlreadyViewed",
    "DuplicateContribution",
    "NotFound",
    "EmptySelection",
    "InvariantViolation",
    "StoreError",
    "UpstreamUnavailable",
    "PermissionDenied",
    "NotSubscribed",
    "AlreadyModerator",
]
