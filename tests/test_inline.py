import pytest

from doggy_watch.core.inline import InlineAction, InlineCommand


@pytest.mark.parametrize(
    "payload,expected",
    [
        ("ban 12", InlineCommand(InlineAction.BAN, 12)),
        ("pardon 3", InlineCommand(InlineAction.PARDON, 3)),
        ("view 7", InlineCommand(InlineAction.VIEW, 7)),
        ("unview 7", InlineCommand(InlineAction.UNVIEW, 7)),
        ("archive_viewed", InlineCommand(InlineAction.ARCHIVE_VIEWED)),
        ("archive_all", InlineCommand(InlineAction.ARCHIVE_ALL)),
        ("list_unviewed", InlineCommand(InlineAction.LIST_UNVIEWED)),
        ("cancel", InlineCommand(InlineAction.CANCEL)),
    ],
)
def test_parse_known_payloads(payload, expected):
    command = InlineCommand.parse(payload)
    assert command == expected
    assert command.payload == payload


@pytest.mark.parametrize("payload", [None, "", "yes", "no", "ban", "ban x", "explode 1"])
def test_unknown_payloads_are_ignored(payload):
    assert InlineCommand.parse(payload) is None


def test_classification():
    assert InlineCommand(InlineAction.VIEW, 1).is_moderation
    assert not InlineCommand(InlineAction.CANCEL).is_moderation
    assert InlineCommand(InlineAction.ARCHIVE_ALL).is_archive
    assert not InlineCommand(InlineAction.LIST_UNVIEWED).is_archive
