"""Delivery of replies to Discord channels and interactions."""

import asyncio
from types import SimpleNamespace
from typing import Any

import discord

from doggy_watch.bot import deliver, guarded, respond
from doggy_watch.ui.markup import Button, Reply
from doggy_watch.ui.views import PayloadView, button_style


def run(coro: Any) -> Any:
    return asyncio.run(coro)


class Channel:
    def __init__(self) -> None:
        self.sent: list[tuple[str, dict]] = []

    async def send(self, content: str, **kwargs: Any) -> None:
        self.sent.append((content, kwargs))


class Response:
    def __init__(self) -> None:
        self.calls: list[tuple[str, Any, dict]] = []

    async def defer(self) -> None:
        self.calls.append(("defer", None, {}))

    async def send_message(self, content: str, **kwargs: Any) -> None:
        self.calls.append(("send", content, kwargs))

    async def edit_message(self, **kwargs: Any) -> None:
        self.calls.append(("edit", kwargs.get("content"), kwargs))


def interaction() -> SimpleNamespace:
    return SimpleNamespace(response=Response(), followup=Channel(), message=object())


def test_long_reply_is_split_and_buttons_go_last():
    channel = Channel()
    reply = Reply("\n".join(["x" * 1500, "y" * 1500]), (Button("Yes", "yes"),))

    async def scenario():
        await deliver(channel, reply)

    run(scenario())
    assert [c[0][0] for c in channel.sent] == ["x", "y"]
    assert "view" not in channel.sent[0][1]
    view = channel.sent[1][1]["view"]
    assert isinstance(view, PayloadView)
    assert [item.custom_id for item in view.children] == ["yes"]
    assert view.is_finished()


def test_respond_edits_or_sends():
    edited = interaction()
    run(respond(edited, Reply("Added!", edit=True)))
    assert edited.response.calls == [("edit", "Added!", {"content": "Added!", "view": None})]

    sent = interaction()
    run(respond(sent, Reply("Hello")))
    kind, content, kwargs = sent.response.calls[0]
    assert (kind, content, kwargs["ephemeral"]) == ("send", "Hello", True)

    buttons = interaction()
    run(respond(buttons, Reply("Sure?", (Button("Yes", "yes"),))))
    view = buttons.response.calls[0][2]["view"]
    assert view.is_finished()

    edited_with_buttons = interaction()
    run(respond(edited_with_buttons, Reply("Again?", (Button("No", "no"),), edit=True)))
    assert edited_with_buttons.response.calls[0][2]["view"].is_finished()

    ignored = interaction()
    run(respond(ignored, None))
    assert ignored.response.calls == [("defer", None, {})]


def test_guarded_reports_unexpected_errors(caplog):
    async def boom():
        raise RuntimeError("kaput")

    reply = run(guarded(boom(), "test"))
    assert reply.text == "An error occurred!"
    assert "Unhandled error while handling test" in caplog.text


def test_button_styles():
    assert button_style("yes") is discord.ButtonStyle.success
    assert button_style("ban 3") is discord.ButtonStyle.danger
    assert button_style("cancel") is discord.ButtonStyle.secondary
