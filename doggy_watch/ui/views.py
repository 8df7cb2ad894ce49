from __future__ import annotations

from collections.abc import Iterable

import discord

from ..core.inline import CONFIRM, InlineAction
from .markup import Button

_SUCCESS = {CONFIRM, InlineAction.VIEW.value, InlineAction.PARDON.value}
_DANGER = {InlineAction.BAN.value, InlineAction.ARCHIVE_ALL.value}


def button_style(payload: str) -> discord.ButtonStyle:
    action = payload.split(" ", 1)[0]
    if action in _SUCCESS:
        return discord.ButtonStyle.success
    if action in _DANGER:
        return discord.ButtonStyle.danger
    return discord.ButtonStyle.secondary


class PayloadView(discord.ui.View):
    """Row of buttons whose ``custom_id`` is the callback payload.

    The buttons have no callbacks of their own; presses reach the bot's
    ``on_interaction`` listener, which also covers messages sent before a
    restart. Senders stop the view once the message is out.
    """

    def __init__(self, buttons: Iterable[Button]) -> None:
        super().__init__(timeout=None)
        for button in buttons:
            self.add_item(
                discord.ui.Button(
                    label=button.label,
                    custom_id=button.payload,
                    style=button_style(button.payload),
                )
            )


def view_for(buttons: Iterable[Button]) -> PayloadView | None:
    buttons = tuple(buttons)
    return PayloadView(buttons) if buttons else None
