"""Discord bot that exposes the watch queue through direct messages.

Free text sent to the bot in a DM goes to
:meth:`~doggy_watch.commands.handlers.WatchHandlers.on_text` and button
presses go to :meth:`~doggy_watch.commands.handlers.WatchHandlers.on_payload`.
Slash commands are registered separately by
:func:`doggy_watch.commands.register.register_commands`.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable
from typing import Any

import discord
from discord.ext import commands

from .commands.handlers import WatchHandlers
from .ui import markup
from .ui.markup import Reply
from .ui.views import view_for

log = logging.getLogger("doggy_watch.bot")


async def deliver(channel: discord.abc.Messageable, reply: Reply) -> None:
    """Send ``reply`` to ``channel``, splitting long text across messages."""
    parts = list(markup.chunks(reply.text)) or [""]
    for index, part in enumerate(parts):
        last = index == len(parts) - 1
        view = view_for(reply.buttons) if last else None
        if view is None:
            await channel.send(part, suppress_embeds=True)
        else:
            await channel.send(part, view=view, suppress_embeds=True)
            # Presses are routed by on_interaction; the view store need not keep it.
            view.stop()


async def respond(interaction: discord.Interaction, reply: Reply | None) -> None:
    """Answer ``interaction`` with ``reply``; ``None`` only acknowledges it."""
    if reply is None:
        await interaction.response.defer()
        return
    parts = list(markup.chunks(reply.text)) or [""]
    view = view_for(reply.buttons)
    if reply.edit and len(parts) == 1 and interaction.message is not None:
        # Replacing the prompt also removes its buttons unless new ones are given.
        await interaction.response.edit_message(content=parts[0], view=view)
    else:
        for index, part in enumerate(parts):
            kwargs: dict[str, Any] = {"ephemeral": True, "suppress_embeds": True}
            if index == len(parts) - 1 and view is not None:
                kwargs["view"] = view
            if index == 0:
                await interaction.response.send_message(part, **kwargs)
            else:
                await interaction.followup.send(part, **kwargs)
    if view is not None:
        view.stop()


async def guarded(coro: Awaitable[Reply | None], where: str) -> Reply | None:
    """Await a handler, turning unexpected failures into a generic reply."""
    try:
        return await coro
    except Exception:
        log.exception("Unhandled error while handling %s", where)
        return Reply("An error occurred!")


class WatchBot(commands.Bot):
    """``discord.py`` bot that routes DMs and button presses to the handlers."""

    def __init__(self, handlers: WatchHandlers, **kwargs: Any) -> None:
        intents = kwargs.pop("intents", None) or discord.Intents.default()
        # Content of direct messages is delivered without the privileged intent.
        intents.message_content = False
        intents.dm_messages = True
        super().__init__(
            command_prefix=kwargs.pop("command_prefix", commands.when_mentioned),
            intents=intents,
            **kwargs,
        )
        self.handlers = handlers

    async def setup_hook(self) -> None:
        """Publish the slash commands registered on the tree."""
        await self.tree.sync()
        await super().setup_hook()

    async def on_ready(self) -> None:  # pragma: no cover - requires discord
        await self.change_presence(activity=discord.Game(name="DM me a YouTube link"))
        log.info("Logged in as %s (%s)", self.user, self.user.id if self.user else "?")

    async def on_message(self, message: discord.Message) -> None:
        if message.author.bot or message.guild is not None:
            return
        reply = await guarded(
            self.handlers.on_text(message.author.id, message.content or None),
            f"message from {message.author.id}",
        )
        if reply is not None:
            await deliver(message.channel, reply)

    async def on_interaction(self, interaction: discord.Interaction) -> None:
        if interaction.type is not discord.InteractionType.component:
            return
        payload = (interaction.data or {}).get("custom_id")
        reply = await guarded(
            self.handlers.on_payload(interaction.user.id, payload),
            f"button {payload!r} from {interaction.user.id}",
        )
        await respond(interaction, reply)


__all__ = ["WatchBot", "deliver", "guarded", "respond"]
