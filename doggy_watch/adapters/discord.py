"""Discord adapter implementing the :class:`~doggy_watch.adapters.base.Adapter`.

The adapter only covers what the queue needs outside the gateway connection:
direct messages for notifications and member lookups for the subscription
check. It uses :mod:`httpx` to talk to Discord's HTTP API which keeps it
usable from background tasks and easy to exercise with a mock transport.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

import httpx

from ..core.errors import UpstreamUnavailable
from .base import Adapter, MemberStanding

log = logging.getLogger("doggy_watch.adapters.discord")

# Permission bit granting every other permission.
ADMINISTRATOR_BIT = 1 << 3


class DiscordAdapter(Adapter):
    """Adapter that sends requests directly to the Discord HTTP API."""

    api_base = "https://discord.com/api/v10"

    def __init__(self, token: str, client: httpx.AsyncClient | None = None) -> None:
        """Store authentication ``token`` and optional HTTP ``client``."""
        self.token = token
        self.client = client or httpx.AsyncClient(timeout=10.0)
        self._dm_channels: dict[int, str] = {}
        self._guilds: dict[int, dict[str, Any]] = {}

    @property
    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bot {self.token}"}

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self.client.request(
                method, f"{self.api_base}{path}", headers=self.headers, **kwargs
            )
        except httpx.HTTPError as exc:
            raise UpstreamUnavailable(f"Discord request failed: {exc}") from exc

    # ------------------------------------------------------------------
    async def send_message(self, channel_id: str, content: str) -> None:
        """Send a message to a channel.

        Parameters
        ----------
        channel_id:
            Identifier of the Discord channel.
        content:
            Message body to send. Link previews are suppressed.

        """
        response = await self._request(
            "POST",
            f"/channels/{channel_id}/messages",
            # SUPPRESS_EMBEDS
            json={"content": content, "flags": 1 << 2},
        )
        response.raise_for_status()

    async def open_dm(self, user_id: int) -> str:
        """Return the DM channel id for ``user_id``, creating it on first use."""
        if user_id in self._dm_channels:
            return self._dm_channels[user_id]
        response = await self._request(
            "POST", "/users/@me/channels", json={"recipient_id": str(user_id)}
        )
        response.raise_for_status()
        channel_id = str(response.json()["id"])
        self._dm_channels[user_id] = channel_id
        return channel_id

    async def send_direct_message(self, user_id: int, content: str) -> None:
        await self.send_message(await self.open_dm(user_id), content)

    # ------------------------------------------------------------------
    async def _guild(self, guild_id: int) -> dict[str, Any]:
        if guild_id not in self._guilds:
            response = await self._request("GET", f"/guilds/{guild_id}")
            if response.status_code >= 400:
                raise UpstreamUnavailable(
                    f"Cannot read guild {guild_id}: HTTP {response.status_code}"
                )
            self._guilds[guild_id] = response.json()
        return self._guilds[guild_id]

    async def member_standing(self, guild_id: int, user_id: int) -> MemberStanding:
        """Classify ``user_id`` within ``guild_id``.

        Absent members are ``BANNED`` when a ban can be read, otherwise
        ``LEFT``. Reading bans needs the Ban Members permission, so any other
        answer from the ban lookup also means ``LEFT``. Members in a timeout
        count as ``RESTRICTED``.
        """
        response = await self._request("GET", f"/guilds/{guild_id}/members/{user_id}")
        if response.status_code == 404:
            ban = await self._request("GET", f"/guilds/{guild_id}/bans/{user_id}")
            if ban.status_code == 200:
                return MemberStanding.BANNED
            if ban.status_code != 404:
                log.debug("Ban lookup for %s answered HTTP %s", user_id, ban.status_code)
            return MemberStanding.LEFT
        if response.status_code >= 400:
            raise UpstreamUnavailable(f"Cannot read member: HTTP {response.status_code}")

        member: dict[str, Any] = response.json()
        guild = await self._guild(guild_id)
        if str(guild.get("owner_id")) == str(user_id):
            return MemberStanding.OWNER
        member_roles = set(member.get("roles", []))
        for role in guild.get("roles", []):
            if role["id"] in member_roles and int(role.get("permissions", 0)) & ADMINISTRATOR_BIT:
                return MemberStanding.ADMINISTRATOR
        timeout = member.get("communication_disabled_until")
        if timeout and datetime.fromisoformat(timeout) > datetime.now(tz=UTC):
            return MemberStanding.RESTRICTED
        return MemberStanding.MEMBER

    async def close(self) -> None:
        """Close the underlying :class:`httpx.AsyncClient`."""
        await self.client.aclose()
