"""Data models for the watch queue's durable entities.

The models are implemented using :mod:`pydantic` so that rows coming back
from the store are validated and timestamps stored as ISO strings are parsed
into :class:`~datetime.datetime` objects.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class Video(BaseModel):
    """An external video known to the queue.

    Attributes
    ----------
    ytid:
        Stable platform identifier of the video.
    title:
        Display title, already escaped for markup.
    banned:
        Banned videos are hidden from listings and refuse new submissions.

    """

    ytid: str
    title: str
    banned: bool = False


class Request(BaseModel):
    """The open ticket of a video. At most one exists per video."""

    id: int
    ytid: str
    viewed_at: datetime | None = None


class Action(BaseModel):
    """One submitter's contribution to a :class:`Request`."""

    id: int
    rid: int
    uid: int
    created_at: datetime


class Archived(BaseModel):
    """Immutable record of a request folded by an archival sweep.

    Attributes
    ----------
    viewed_at:
        The request's viewed-at value at fold time.
    created_by:
        Contributor of the request's first action.
    created_at:
        Time of the sweep, not of the original submission.
    contributors:
        Number of actions the request had when it was folded.

    """

    id: int
    ytid: str
    viewed_at: datetime | None = None
    created_by: int
    created_at: datetime
    contributors: int = Field(gt=0)


class Moderator(BaseModel):
    """Privileged identity able to triage the queue."""

    id: int
    created_at: datetime
    notify: bool = True
    can_add_mods: bool = False


class User(BaseModel):
    """Contribution counter of a submitter."""

    id: int
    created_at: datetime
    contributions: int = 0
