import asyncio
import logging
from typing import Any

from doggy_watch.core.models import Video
from doggy_watch.core.notify import NotificationFanout


def run(coro: Any) -> Any:
    return asyncio.run(coro)


async def seed(store, clock, *uids, muted=()):
    async with store.transaction() as tx:
        for uid in uids:
            await tx.insert_moderator(uid, clock.now)
        for uid in muted:
            await tx.set_moderator_notify(uid, False)


def test_failures_are_logged_and_swallowed(store, clock, adapter, caplog):
    run(seed(store, clock, 1, 2, 3, 4, muted=[4]))
    adapter.failing.add(2)
    fanout = NotificationFanout(store, adapter)

    with caplog.at_level(logging.ERROR, logger="doggy_watch.notify"):
        delivered = run(fanout.notify("hello", exclude=[3]))

    assert delivered == 1
    assert adapter.direct == [(1, "hello")]
    assert "Failed to notify moderator 2" in caplog.text


def test_announce_video(store, clock, adapter):
    run(seed(store, clock, 1))
    fanout = NotificationFanout(store, adapter)

    assert run(fanout.announce_video(Video(ytid="abc12345678", title="Demo"))) == 1
    assert adapter.direct == [(1, "New video added: **Demo**!")]


def test_no_recipients(store, adapter):
    fanout = NotificationFanout(store, adapter)
    assert run(fanout.notify("hello")) == 0
    assert adapter.direct == []
