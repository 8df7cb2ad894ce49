"""Human readable replies and the button sets attached to them."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from datetime import date, datetime

from ..adapters.youtube import video_url
from ..core.errors import (
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
    UpstreamUnavailable,
    WatchError,
)
from ..core.inline import CONFIRM, DECLINE, InlineAction, InlineCommand
from ..core.models import Moderator, Video
from ..core.workflow import RequestEntry, RequestInfo, Rights

MESSAGE_LIMIT = 2000


@dataclass(frozen=True)
class Button:
    label: str
    payload: str


@dataclass(frozen=True)
class Reply:
    """Text plus an optional row of buttons.

    ``edit`` asks the transport to replace the message that carried the
    pressed button instead of sending a new one.
    """

    text: str
    buttons: tuple[Button, ...] = field(default_factory=tuple)
    edit: bool = False


def bold(text: str) -> str:
    return f"**{text}**"


def link(label: str, url: str) -> str:
    # Angle brackets keep Discord from unfurling a preview.
    return f"[{label}](<{url}>)"


def mention(uid: int) -> str:
    return f"<@{uid}>"


def timestamp(value: datetime) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S")


def chunks(text: str, limit: int = MESSAGE_LIMIT) -> Iterator[str]:
    """Split ``text`` on line boundaries into pieces of at most ``limit``."""
    current = ""
    for line in text.split("\n"):
        while len(line) > limit:
            if current:
                yield current
                current = ""
            yield line[:limit]
            line = line[limit:]
        candidate = f"{current}\n{line}" if current else line
        if len(candidate) > limit:
            yield current
            current = line
        else:
            current = candidate
    if current:
        yield current


# ----------------------------------------------------------------------
# Button sets
# ----------------------------------------------------------------------
def yes_or_no() -> tuple[Button, ...]:
    return (Button("Yes", CONFIRM), Button("No", DECLINE))


def cancel_only() -> tuple[Button, ...]:
    return (Button("Cancel", InlineAction.CANCEL.value),)


def archive_menu() -> tuple[Button, ...]:
    return (
        Button("Archive viewed", InlineAction.ARCHIVE_VIEWED.value),
        Button("Archive everything", InlineAction.ARCHIVE_ALL.value),
    )


def list_buttons(refresh: bool = False) -> tuple[Button, ...]:
    return (Button("Refresh" if refresh else "Unviewed", InlineAction.LIST_UNVIEWED.value),)


def moderation_buttons(info: RequestInfo) -> tuple[Button, ...]:
    rid = info.request.id
    if info.request.viewed_at is not None:
        viewed = Button("Remove from viewed", InlineCommand(InlineAction.UNVIEW, rid).payload)
    else:
        viewed = Button("Mark viewed", InlineCommand(InlineAction.VIEW, rid).payload)
    if info.video.banned:
        ban = Button("Pardon", InlineCommand(InlineAction.PARDON, rid).payload)
    else:
        ban = Button("Ban", InlineCommand(InlineAction.BAN, rid).payload)
    return (viewed, ban)


# ----------------------------------------------------------------------
# Texts
# ----------------------------------------------------------------------
def describe_error(exc: WatchError) -> str:
    """Turn a workflow failure into the message shown to the user."""
    if isinstance(exc, RateLimited):
        return f"Too often! Try again in {max(1, round(exc.retry_after))} seconds."
    if isinstance(exc, Banned):
        return "Error: this video is banned.\nMost likely it has been watched more than once."
    if isinstance(exc, AlreadyViewed):
        return f"Error: already viewed!\nThe video was marked as viewed {timestamp(exc.viewed_at)}."
    if isinstance(exc, DuplicateContribution):
        return "Error: this request already exists!\nYou have requested this video before."
    if isinstance(exc, NotFound):
        return f"Not found: {exc.kind} {exc.key}."
    if isinstance(exc, EmptySelection):
        return "Nothing to archive!"
    if isinstance(exc, InvariantViolation):
        return "Internal error, the queue is in an unexpected state. Please tell an administrator."
    if isinstance(exc, StoreError):
        return "A database error occurred!"
    if isinstance(exc, UpstreamUnavailable):
        return "Could not reach an external service, please try again later."
    if isinstance(exc, PermissionDenied):
        return "Insufficient rights!"
    if isinstance(exc, NotSubscribed):
        return "Error: that user is not subscribed to the community!"
    if isinstance(exc, AlreadyModerator):
        return "Error: that user is already a moderator."
    return "An error occurred!"


def confirm_submission(title: str) -> str:
    return f"Are you sure you want to add {bold(title)}?"


def submitted() -> str:
    return "Added!"


def cancelled() -> str:
    return "Cancelled."


def not_a_video() -> str:
    return "That does not look like a YouTube video..."


def not_text() -> str:
    return "Nope!"


def not_subscribed(invite_code: str | None) -> str:
    community = "the community"
    if invite_code:
        community = link("the community", f"https://discord.gg/{invite_code}")
    return f"You are not subscribed to {community}!"


def new_video_notice(video: Video) -> str:
    return f"New video added: {bold(video.title)}!"


def status_updated(video: Video) -> str:
    return f"Status of {bold(video.title)} updated!"


def archived(count: int, viewed_only: bool) -> str:
    what = "viewed requests" if viewed_only else "requests"
    return f"{bold(str(count))} {what} archived!"


def archive_prompt() -> str:
    return "Choose what to archive:"


def empty_listing() -> str:
    return "No videos to watch :("


def format_listing(entries: Iterable[RequestEntry]) -> str | None:
    """Group entries by the day their creator submitted them, newest day first.

    Inside a day entries are ordered by contributor count, lowest first.
    """
    by_date: dict[date, list[RequestEntry]] = {}
    for entry in entries:
        by_date.setdefault(entry.creator.created_at.date(), []).append(entry)
    if not by_date:
        return None

    lines: list[str] = []
    for day in sorted(by_date, reverse=True):
        lines.append(f"[{day.strftime('%d.%m')}]")
        for entry in sorted(by_date[day], key=lambda e: e.contributors):
            contributors = f"(👥{entry.contributors}) " if entry.contributors != 1 else ""
            lines.append(
                f"{entry.status.value}/{entry.request.id} "
                f"{link('📺YT', video_url(entry.video.ytid))} "
                f"{contributors}{bold(entry.video.title)}"
            )
    return "\n".join(lines)


def format_info(info: RequestInfo) -> str:
    return (
        f"{link(info.video.title, video_url(info.video.ytid))}\n"
        f"Added by {mention(info.creator.uid)} (👀{info.contributors})"
    )


def format_moderators(moderators: Iterable[Moderator]) -> str:
    lines = ["Moderators:"]
    for moderator in moderators:
        flags = []
        if moderator.can_add_mods:
            flags.append("can add moderators")
        if not moderator.notify:
            flags.append("notifications off")
        suffix = f" ({', '.join(flags)})" if flags else ""
        lines.append(
            f" - {mention(moderator.id)}{suffix}\n"
            f"   On duty since {timestamp(moderator.created_at)}, UID: {moderator.id}"
        )
    if len(lines) == 1:
        return "There are no moderators."
    return "\n".join(lines)


def notify_toggled(moderator: Moderator) -> str:
    state = "enabled" if moderator.notify else "disabled"
    return f"Notifications are now {bold(state)}!"


def ask_for_moderator() -> str:
    return (
        "Send a message that mentions the person you want to make a moderator "
        "(or just their user id):"
    )


def moderator_added() -> str:
    return "Moderator added!"


def need_mention() -> str:
    return "Error! Mention the user or send their id."


def remove_usage() -> str:
    return "Give the moderator's UID after the command, e.g. /remmod 1234567"


def confirm_removal(target: int) -> str:
    return f"Are you sure you want to remove moderator {mention(target)}?"


def moderator_removed(removed: bool) -> str:
    if removed:
        return "Moderator removed!"
    return "Nothing removed, there is no such moderator."


def removal_cancelled() -> str:
    return "Moderator removal cancelled."


def busy() -> str:
    return "Finish or cancel the current action first."


def greeting(name: str) -> str:
    return (
        f"Greetings {name}!\n"
        "Send a YouTube link to this chat to suggest it for watching!"
    )


def moderator_help() -> str:
    return (
        "Supported commands:\n"
        "/start - show this text\n"
        "/list - list the queue\n"
        "/archive - archive requests\n"
        "/mods - list moderators\n"
        "/addmod - add a moderator\n"
        "/remmod <uid> - remove a moderator\n"
        "/notify - toggle notifications\n"
        "/about - debug information\n\n"
        "Send a request number to see a video or change its status."
    )


def about(
    version: str,
    rights: Rights,
    guild_id: int,
    cooldown: float,
    now: datetime,
    contributions: int,
) -> str:
    return (
        f"Doggy-Watch v{version}\n"
        "____________________\n"
        "Debug information:\n"
        f"Rights level: {rights.value}\n"
        f"Linked community: {guild_id}\n"
        f"Cooldown duration: {cooldown:g}s\n"
        f"Your contributions: {contributions}\n"
        f"Server time:\n{timestamp(now)}"
    )
