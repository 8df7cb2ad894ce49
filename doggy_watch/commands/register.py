"""Registration of slash commands for the bot."""

from __future__ import annotations

import discord
from discord.ext import commands

from ..bot import guarded, respond
from .handlers import WatchHandlers


def register_commands(bot: commands.Bot, handlers: WatchHandlers) -> None:
    """Register the queue's slash commands on ``bot.tree``."""
    tree = bot.tree

    @tree.command(name="start", description="Show the greeting or the command list")
    async def start(interaction: discord.Interaction) -> None:
        user = interaction.user
        await respond(interaction, await guarded(handlers.start(user.id, user.display_name), "/start"))

    @tree.command(name="list", description="List the requests waiting to be watched")
    async def list_queue(interaction: discord.Interaction) -> None:
        await respond(interaction, await guarded(handlers.list_queue(interaction.user.id), "/list"))

    @tree.command(name="archive", description="Archive viewed or all requests")
    async def archive(interaction: discord.Interaction) -> None:
        await respond(interaction, await guarded(handlers.archive_menu(interaction.user.id), "/archive"))

    @tree.command(name="mods", description="List moderators")
    async def mods(interaction: discord.Interaction) -> None:
        await respond(interaction, await guarded(handlers.moderators(interaction.user.id), "/mods"))

    @tree.command(name="addmod", description="Add a moderator")
    async def addmod(interaction: discord.Interaction) -> None:
        await respond(interaction, await guarded(handlers.add_moderator(interaction.user.id), "/addmod"))

    @tree.command(name="remmod", description="Remove a moderator")
    @discord.app_commands.describe(uid="User id or mention of the moderator")
    async def remmod(interaction: discord.Interaction, uid: str) -> None:
        await respond(
            interaction,
            await guarded(handlers.remove_moderator(interaction.user.id, uid), "/remmod"),
        )

    @tree.command(name="notify", description="Toggle new video notifications")
    async def notify(interaction: discord.Interaction) -> None:
        await respond(interaction, await guarded(handlers.toggle_notify(interaction.user.id), "/notify"))

    @tree.command(name="about", description="Show version and debug information")
    async def about(interaction: discord.Interaction) -> None:
        await respond(interaction, await guarded(handlers.about(interaction.user.id), "/about"))
