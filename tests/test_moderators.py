import asyncio
from typing import Any

import pytest

from doggy_watch.adapters.base import MemberStanding, SubscriptionChecker
from doggy_watch.core.errors import (
    AlreadyModerator,
    NotFound,
    NotSubscribed,
    PermissionDenied,
)
from doggy_watch.core.notify import NotificationFanout
from doggy_watch.core.workflow import Rights, WatchWorkflow


def run(coro: Any) -> Any:
    return asyncio.run(coro)


ADMIN = 100


@pytest.fixture
def wf(store, clock) -> WatchWorkflow:
    workflow = WatchWorkflow(store, clock=clock, administrators=[ADMIN])
    run(workflow.ensure_administrators())
    return workflow


def test_bootstrap_administrators(wf):
    moderators = run(wf.list_moderators())
    assert [(m.id, m.can_add_mods, m.notify) for m in moderators] == [(ADMIN, True, True)]
    # Running the bootstrap twice keeps one row.
    run(wf.ensure_administrators())
    assert len(run(wf.list_moderators())) == 1
    assert run(wf.rights(ADMIN)) is Rights.ADMINISTRATOR
    assert run(wf.rights(5)) is Rights.NONE


def test_enroll_and_remove(wf, adapter):
    checker = SubscriptionChecker(adapter, guild_id=1)

    moderator = run(wf.enroll_moderator(ADMIN, 5, checker))
    assert (moderator.notify, moderator.can_add_mods) == (True, False)
    assert run(wf.rights(5)) is Rights.MODERATOR

    with pytest.raises(AlreadyModerator):
        run(wf.enroll_moderator(ADMIN, 5, checker))
    # Plain moderators cannot manage the staff.
    with pytest.raises(PermissionDenied):
        run(wf.enroll_moderator(5, 6, checker))
    with pytest.raises(PermissionDenied):
        run(wf.remove_moderator(5, ADMIN))

    assert run(wf.remove_moderator(ADMIN, 5)) is True
    assert run(wf.remove_moderator(ADMIN, 5)) is False
    assert run(wf.rights(5)) is Rights.NONE


@pytest.mark.parametrize(
    "standing,subscribed",
    [
        (MemberStanding.OWNER, True),
        (MemberStanding.ADMINISTRATOR, True),
        (MemberStanding.MEMBER, True),
        (MemberStanding.RESTRICTED, True),
        (MemberStanding.LEFT, False),
        (MemberStanding.BANNED, False),
    ],
)
def test_enrollment_requires_subscription(wf, adapter, standing, subscribed):
    adapter.standings[7] = standing
    checker = SubscriptionChecker(adapter, guild_id=1)
    if subscribed:
        run(wf.enroll_moderator(ADMIN, 7, checker))
        assert run(wf.rights(7)) is Rights.MODERATOR
    else:
        with pytest.raises(NotSubscribed):
            run(wf.enroll_moderator(ADMIN, 7, checker))
        assert run(wf.rights(7)) is Rights.NONE


def test_toggle_notify_limits_recipients(wf, adapter, store):
    checker = SubscriptionChecker(adapter, guild_id=1)
    run(wf.enroll_moderator(ADMIN, 5, checker))
    run(wf.enroll_moderator(ADMIN, 6, checker))

    assert run(wf.toggle_notify(6)).notify is False
    fanout = NotificationFanout(store, adapter)
    assert sorted(run(fanout.recipients())) == [5, ADMIN]
    assert run(fanout.recipients(exclude=[ADMIN])) == [5]

    assert run(wf.toggle_notify(6)).notify is True
    with pytest.raises(NotFound):
        run(wf.toggle_notify(99))
