"""Decoding of button callback payloads."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class InlineAction(str, Enum):
    BAN = "ban"
    PARDON = "pardon"
    VIEW = "view"
    UNVIEW = "unview"
    ARCHIVE_VIEWED = "archive_viewed"
    ARCHIVE_ALL = "archive_all"
    LIST_UNVIEWED = "list_unviewed"
    CANCEL = "cancel"


# Actions that address a request and therefore carry its id.
_TARGETED = {
    InlineAction.BAN,
    InlineAction.PARDON,
    InlineAction.VIEW,
    InlineAction.UNVIEW,
}

# Plain confirmation answers used by yes/no dialogs.
CONFIRM = "yes"
DECLINE = "no"


@dataclass(frozen=True)
class InlineCommand:
    action: InlineAction
    rid: int | None = None

    @classmethod
    def parse(cls, payload: str | None) -> InlineCommand | None:
        """Decode ``payload`` or return ``None`` when it is not a command.

        >>> InlineCommand.parse("ban 123")
        InlineCommand(action=<InlineAction.BAN: 'ban'>, rid=123)
        """
        parts = (payload or "").split()
        if not parts:
            return None
        try:
            action = InlineAction(parts[0])
        except ValueError:
            return None
        if action in _TARGETED:
            if len(parts) < 2:
                return None
            try:
                return cls(action, int(parts[1]))
            except ValueError:
                return None
        return cls(action)

    @property
    def payload(self) -> str:
        if self.rid is None:
            return self.action.value
        return f"{self.action.value} {self.rid}"

    @property
    def is_moderation(self) -> bool:
        return self.action in _TARGETED

    @property
    def is_archive(self) -> bool:
        return self.action in {InlineAction.ARCHIVE_VIEWED, InlineAction.ARCHIVE_ALL}
