"""Base adapter interface for platform specific implementations."""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum


class MemberStanding(str, Enum):
    """Standing of an identity in the reference community."""

    OWNER = "owner"
    ADMINISTRATOR = "administrator"
    MEMBER = "member"
    RESTRICTED = "restricted"
    LEFT = "left"
    BANNED = "banned"

    @property
    def is_subscribed(self) -> bool:
        return self not in {MemberStanding.LEFT, MemberStanding.BANNED}


class Adapter(ABC):
    """Abstract adapter for communication platforms."""

    @abstractmethod
    async def send_message(self, channel_id: str, content: str) -> None:
        """Send ``content`` to the specified ``channel_id``."""

    @abstractmethod
    async def send_direct_message(self, user_id: int, content: str) -> None:
        """Send ``content`` privately to ``user_id``."""

    @abstractmethod
    async def member_standing(self, guild_id: int, user_id: int) -> MemberStanding:
        """Report how ``user_id`` stands in ``guild_id``."""


class SubscriptionChecker:
    """Answers whether an identity is subscribed to the reference community."""

    def __init__(self, adapter: Adapter, guild_id: int) -> None:
        self.adapter = adapter
        self.guild_id = guild_id

    async def standing(self, user_id: int) -> MemberStanding:
        return await self.adapter.member_standing(self.guild_id, user_id)

    async def is_subscribed(self, user_id: int) -> bool:
        return (await self.standing(user_id)).is_subscribed
