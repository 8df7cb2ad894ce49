"""Shared fakes and fixtures for the test-suite."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta

import pytest

from doggy_watch.adapters.base import Adapter, MemberStanding
from doggy_watch.data.store import WatchStore


class FakeAdapter(Adapter):
    """Records outgoing messages; standings default to ``MEMBER``."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []
        self.direct: list[tuple[int, str]] = []
        self.standings: dict[int, MemberStanding] = {}
        self.failing: set[int] = set()

    async def send_message(self, channel_id: str, content: str) -> None:
        self.sent.append((channel_id, content))

    async def send_direct_message(self, user_id: int, content: str) -> None:
        if user_id in self.failing:
            raise RuntimeError(f"cannot reach {user_id}")
        self.direct.append((user_id, content))

    async def member_standing(self, guild_id: int, user_id: int) -> MemberStanding:
        return self.standings.get(user_id, MemberStanding.MEMBER)


class Clock:
    """Wall clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 12, 11, 18, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class Ticker:
    """Monotonic clock for the rate limiter and dialogue expiry."""

    def __init__(self) -> None:
        self.value = 1000.0

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float) -> None:
        self.value += seconds


@pytest.fixture
def store(tmp_path) -> WatchStore:
    s = WatchStore(path=str(tmp_path / "watch.sqlite3"))
    asyncio.run(s.init())
    return s


@pytest.fixture
def adapter() -> FakeAdapter:
    return FakeAdapter()


@pytest.fixture
def clock() -> Clock:
    return Clock()


@pytest.fixture
def ticker() -> Ticker:
    return Ticker()
