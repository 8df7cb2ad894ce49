"""Tests for the :mod:`doggy_watch.adapters.discord` module."""

import asyncio
from datetime import UTC, datetime, timedelta
from typing import Any

import httpx
import pytest

from doggy_watch.adapters.base import MemberStanding, SubscriptionChecker
from doggy_watch.adapters.discord import ADMINISTRATOR_BIT, DiscordAdapter
from doggy_watch.core.errors import UpstreamUnavailable


def run(coro: Any) -> Any:
    """Run an async coroutine synchronously for tests."""
    return asyncio.run(coro)


GUILD = {
    "id": "1",
    "owner_id": "10",
    "roles": [
        {"id": "r-admin", "permissions": str(ADMINISTRATOR_BIT)},
        {"id": "r-plain", "permissions": "0"},
    ],
}


def guild_handler(members: dict[str, dict], banned: set[str]):
    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path.endswith("/guilds/1"):
            return httpx.Response(200, json=GUILD)
        user = path.rsplit("/", 1)[-1]
        if "/members/" in path:
            if user in members:
                return httpx.Response(200, json=members[user])
            return httpx.Response(404, json={"message": "Unknown Member"})
        if "/bans/" in path:
            if user in banned:
                return httpx.Response(200, json={"user": {"id": user}})
            return httpx.Response(404, json={"message": "Unknown Ban"})
        return httpx.Response(500)

    return handler


def test_send_direct_message_opens_channel_once() -> None:
    """``send_direct_message`` creates the DM channel and reuses it."""
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if request.url.path.endswith("/users/@me/channels"):
            return httpx.Response(200, json={"id": "555"})
        return httpx.Response(200, json={"id": "1"})

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    adapter = DiscordAdapter("TOKEN", client=client)

    run(adapter.send_direct_message(42, "hello"))
    run(adapter.send_direct_message(42, "again"))

    paths = [r.url.path for r in requests]
    assert paths == [
        "/api/v10/users/@me/channels",
        "/api/v10/channels/555/messages",
        "/api/v10/channels/555/messages",
    ]
    assert requests[0].headers["Authorization"] == "Bot TOKEN"
    run(adapter.close())


@pytest.mark.parametrize(
    "user,expected",
    [
        ("10", MemberStanding.OWNER),
        ("11", MemberStanding.ADMINISTRATOR),
        ("12", MemberStanding.MEMBER),
        ("13", MemberStanding.RESTRICTED),
        ("14", MemberStanding.BANNED),
        ("15", MemberStanding.LEFT),
    ],
)
def test_member_standing(user, expected) -> None:
    later = (datetime.now(tz=UTC) + timedelta(hours=1)).isoformat()
    members = {
        "10": {"roles": []},
        "11": {"roles": ["r-admin"]},
        "12": {"roles": ["r-plain"], "communication_disabled_until": None},
        "13": {"roles": [], "communication_disabled_until": later},
    }
    client = httpx.AsyncClient(transport=httpx.MockTransport(guild_handler(members, {"14"})))
    adapter = DiscordAdapter("TOKEN", client=client)

    assert run(adapter.member_standing(1, int(user))) is expected


def test_unreadable_bans_mean_left() -> None:
    """Without the Ban Members permission an absent user counts as left."""

    def handler(request: httpx.Request) -> httpx.Response:
        if "/bans/" in request.url.path:
            return httpx.Response(403, json={"message": "Missing Permissions"})
        return httpx.Response(404, json={"message": "Unknown Member"})

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    checker = SubscriptionChecker(DiscordAdapter("TOKEN", client=client), guild_id=1)

    assert run(checker.is_subscribed(15)) is False


def test_transport_errors_are_upstream_failures() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("no route", request=request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    adapter = DiscordAdapter("TOKEN", client=client)
    with pytest.raises(UpstreamUnavailable):
        run(adapter.member_standing(1, 2))
