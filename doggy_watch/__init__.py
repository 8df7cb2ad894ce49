"""Doggy-Watch: a moderated queue of suggested videos run from Discord.

The data models, the store and the workflow engine are re-exported here so
that consumers can import them straight from ``doggy_watch``.
"""

from .core.models import Action, Archived, Moderator, Request, User, Video
from .core.workflow import ArchiveScope, WatchWorkflow
from .data.store import WatchStore

__version__ = "0.3.0"

__all__ = [
    "Action",
    "ArchiveScope",
    "Archived",
    "Moderator",
    "Request",
    "User",
    "Video",
    "WatchStore",
    "WatchWorkflow",
    "__version__",
]
