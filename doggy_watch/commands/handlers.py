"""Transport independent handling of chat input.

Every entry point returns a :class:`~doggy_watch.ui.markup.Reply` (or ``None``
when the input is ignored) so the Discord layer only has to deliver text and
buttons. Workflow failures are converted to text here and nowhere else.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Awaitable, Callable
from datetime import datetime

from .. import __version__
from ..adapters.base import SubscriptionChecker
from ..adapters.youtube import VideoMetadata, extract_video_id, fetch_metadata
from ..core.dialogue import (
    AcceptVideo,
    AwaitingConfirmation,
    AwaitingForwardedMessage,
    DialogueBusy,
    DialogueStore,
)
from ..core.errors import PermissionDenied, UpstreamUnavailable, WatchError
from ..core.inline import CONFIRM, InlineAction, InlineCommand
from ..core.workflow import ArchiveScope, Rights, WatchWorkflow, utcnow
from ..ui import markup
from ..ui.markup import Reply

log = logging.getLogger("doggy_watch.handlers")

MetadataLookup = Callable[[str], Awaitable[VideoMetadata]]

_MENTION = re.compile(r"<@!?(\d+)>")


def recognise_rid(text: str) -> int | None:
    """Request number typed as ``123`` or ``/123``."""
    text = text.strip()
    if text.startswith("/"):
        text = text[1:]
    if not text.isdigit():
        return None
    return int(text)


def recognise_user(text: str) -> int | None:
    """User id from a mention or a bare id."""
    match = _MENTION.search(text)
    if match:
        return int(match.group(1))
    text = text.strip()
    return int(text) if text.isdigit() else None


class WatchHandlers:
    """Glue between chat input, the dialogue store and the workflow."""

    def __init__(
        self,
        workflow: WatchWorkflow,
        dialogues: DialogueStore,
        checker: SubscriptionChecker,
        invite_code: str | None = None,
        metadata: MetadataLookup = fetch_metadata,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.workflow = workflow
        self.dialogues = dialogues
        self.checker = checker
        self.invite_code = invite_code
        self.metadata = metadata
        self._clock = clock

    async def _is_moderator(self, uid: int) -> bool:
        return await self.workflow.rights(uid) is not Rights.NONE

    # ------------------------------------------------------------------
    # Free text
    # ------------------------------------------------------------------
    async def on_text(self, uid: int, text: str | None) -> Reply | None:
        """Handle a direct message that is not a slash command."""
        if isinstance(self.dialogues.get(uid), AwaitingForwardedMessage):
            return await self._receive_moderator(uid, text or "")
        if not text:
            return Reply(markup.not_text())
        rid = recognise_rid(text)
        if rid is not None and await self._is_moderator(uid):
            return await self.info(rid)
        return await self.submit_link(uid, text)

    async def submit_link(self, uid: int, text: str) -> Reply:
        try:
            subscribed = await self.checker.is_subscribed(uid)
        except UpstreamUnavailable as exc:
            log.error("Subscription check for %s failed: %s", uid, exc)
            return Reply(markup.describe_error(exc))
        if not subscribed:
            return Reply(markup.not_subscribed(self.invite_code))

        ytid = extract_video_id(text)
        if ytid is None:
            log.debug("Not a YouTube video: %r", text)
            return Reply(markup.not_a_video())
        try:
            meta = await self.metadata(ytid)
        except UpstreamUnavailable as exc:
            log.error("Metadata lookup for %s failed: %s", ytid, exc)
            return Reply(markup.describe_error(exc))

        try:
            self.dialogues.start(uid, AcceptVideo(ytid=meta.ytid, title=meta.title))
        except DialogueBusy:
            return Reply(markup.busy())
        return Reply(markup.confirm_submission(meta.title), markup.yes_or_no())

    async def _receive_moderator(self, uid: int, text: str) -> Reply:
        candidate = recognise_user(text)
        if candidate is None:
            return Reply(markup.need_mention(), markup.cancel_only())
        self.dialogues.finish(uid)
        try:
            await self.workflow.enroll_moderator(uid, candidate, self.checker)
        except WatchError as exc:
            return Reply(markup.describe_error(exc))
        return Reply(markup.moderator_added())

    # ------------------------------------------------------------------
    # Buttons
    # ------------------------------------------------------------------
    async def on_payload(self, uid: int, payload: str | None) -> Reply | None:
        """Dispatch a pressed button; unknown payloads yield ``None``."""
        command = InlineCommand.parse(payload)
        if command is not None:
            return await self._inline(uid, command)

        state = self.dialogues.get(uid)
        if isinstance(state, AcceptVideo):
            self.dialogues.finish(uid)
            if payload == CONFIRM:
                return Reply(await self._accept(uid, state), edit=True)
            return Reply(markup.cancelled(), edit=True)
        if isinstance(state, AwaitingConfirmation):
            self.dialogues.finish(uid)
            if payload == CONFIRM:
                try:
                    removed = await self.workflow.remove_moderator(uid, state.target)
                except WatchError as exc:
                    return Reply(markup.describe_error(exc), edit=True)
                return Reply(markup.moderator_removed(removed), edit=True)
            return Reply(markup.removal_cancelled(), edit=True)

        log.debug("Ignoring payload %r from %s", payload, uid)
        return None

    async def _accept(self, uid: int, state: AcceptVideo) -> str:
        try:
            await self.workflow.submit(state.ytid, state.title, uid)
        except WatchError as exc:
            return markup.describe_error(exc)
        return markup.submitted()

    async def _inline(self, uid: int, command: InlineCommand) -> Reply | None:
        if command.action is InlineAction.CANCEL:
            self.dialogues.finish(uid)
            return Reply(markup.cancelled(), edit=True)
        if not await self._is_moderator(uid):
            log.debug("Ignoring %s from non-moderator %s", command.payload, uid)
            return None

        try:
            if command.is_archive:
                viewed_only = command.action is InlineAction.ARCHIVE_VIEWED
                scope = ArchiveScope.VIEWED if viewed_only else ArchiveScope.ALL
                count = await self.workflow.archive(scope)
                return Reply(markup.archived(count, viewed_only), edit=True)
            if command.action is InlineAction.LIST_UNVIEWED:
                return await self.list_queue(uid, unviewed_only=True, edit=True)

            assert command.rid is not None
            if command.action is InlineAction.BAN:
                video = await self.workflow.set_banned(command.rid, True)
            elif command.action is InlineAction.PARDON:
                video = await self.workflow.set_banned(command.rid, False)
            elif command.action is InlineAction.VIEW:
                video = await self.workflow.set_viewed(command.rid, True)
            else:
                video = await self.workflow.set_viewed(command.rid, False)
        except WatchError as exc:
            return Reply(markup.describe_error(exc))
        return Reply(markup.status_updated(video))

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------
    async def start(self, uid: int, name: str) -> Reply:
        if await self._is_moderator(uid):
            return Reply(markup.moderator_help())
        return Reply(markup.greeting(name))

    async def info(self, rid: int) -> Reply:
        try:
            info = await self.workflow.request_info(rid)
        except WatchError as exc:
            return Reply(markup.describe_error(exc))
        return Reply(markup.format_info(info), markup.moderation_buttons(info))

    async def list_queue(self, uid: int, unviewed_only: bool = False, edit: bool = False) -> Reply:
        if not await self._is_moderator(uid):
            return Reply(markup.describe_error(_denied()))
        try:
            entries = await self.workflow.list_requests(unviewed_only=unviewed_only)
        except WatchError as exc:
            return Reply(markup.describe_error(exc))
        text = markup.format_listing(entries)
        if text is None:
            return Reply(markup.empty_listing(), edit=edit)
        return Reply(text, markup.list_buttons(refresh=unviewed_only), edit=edit)

    async def archive_menu(self, uid: int) -> Reply:
        if not await self._is_moderator(uid):
            return Reply(markup.describe_error(_denied()))
        return Reply(markup.archive_prompt(), markup.archive_menu() + markup.cancel_only())

    async def moderators(self, uid: int) -> Reply:
        if not await self._is_moderator(uid):
            return Reply(markup.describe_error(_denied()))
        try:
            moderators = await self.workflow.list_moderators()
        except WatchError as exc:
            return Reply(markup.describe_error(exc))
        return Reply(markup.format_moderators(moderators))

    async def add_moderator(self, uid: int) -> Reply:
        try:
            await self.workflow.require_can_add_mods(uid)
            self.dialogues.start(uid, AwaitingForwardedMessage())
        except WatchError as exc:
            return Reply(markup.describe_error(exc))
        except DialogueBusy:
            return Reply(markup.busy())
        return Reply(markup.ask_for_moderator(), markup.cancel_only())

    async def remove_moderator(self, uid: int, target: str | None) -> Reply:
        try:
            await self.workflow.require_can_add_mods(uid)
        except WatchError as exc:
            return Reply(markup.describe_error(exc))
        target_id = recognise_user(target or "")
        if target_id is None:
            return Reply(markup.remove_usage())
        try:
            self.dialogues.start(uid, AwaitingConfirmation(target=target_id))
        except DialogueBusy:
            return Reply(markup.busy())
        return Reply(markup.confirm_removal(target_id), markup.yes_or_no())

    async def toggle_notify(self, uid: int) -> Reply:
        try:
            moderator = await self.workflow.toggle_notify(uid)
        except WatchError as exc:
            return Reply(markup.describe_error(exc))
        return Reply(markup.notify_toggled(moderator))

    async def about(self, uid: int) -> Reply:
        try:
            rights = await self.workflow.rights(uid)
            contributions = await self.workflow.contributions(uid)
        except WatchError as exc:
            return Reply(markup.describe_error(exc))
        return Reply(
            markup.about(
                __version__,
                rights,
                self.checker.guild_id,
                self.workflow.limiter.cooldown,
                self._clock(),
                contributions,
            )
        )


def _denied() -> WatchError:
    return PermissionDenied("moderator rights required")
