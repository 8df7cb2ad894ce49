import logging

import pytest

from doggy_watch import main as main_module
from doggy_watch.config import (
    ConfigError,
    load_settings,
    parse_administrators,
    parse_database_url,
)
from doggy_watch.logging_config import setup_logging

REQUIRED = {
    "DISCORD_BOT_TOKEN": "abc123",
    "SUBSCRIPTION_GUILD_ID": "987654321",
    "DATABASE_URL": "sqlite:///data/watch.sqlite3",
}
OPTIONAL = ("INVITE_CODE", "ADMINISTRATORS", "COOLDOWN_SECONDS", "DIALOGUE_TTL_SECONDS", "LOG_LEVEL")


@pytest.fixture
def env(monkeypatch):
    for name in OPTIONAL:
        monkeypatch.delenv(name, raising=False)
    for name, value in REQUIRED.items():
        monkeypatch.setenv(name, value)
    return monkeypatch


def test_load_settings(env):
    s = load_settings()
    assert s.token == "abc123"
    assert s.guild_id == 987654321
    assert s.database_path == "data/watch.sqlite3"
    assert s.invite_code is None
    assert s.administrators == frozenset()
    assert s.cooldown == 30
    assert s.dialogue_ttl == 600
    assert s.log_level == "INFO"

    env.setenv("ADMINISTRATORS", "1, 2,oops,,3")
    env.setenv("INVITE_CODE", "doggies")
    env.setenv("COOLDOWN_SECONDS", "5")
    env.setenv("DIALOGUE_TTL_SECONDS", "0")
    env.setenv("LOG_LEVEL", "debug")
    s2 = load_settings()
    assert s2.administrators == {1, 2, 3}
    assert s2.invite_code == "doggies"
    assert s2.cooldown == 5
    assert s2.dialogue_ttl is None
    assert s2.log_level == "DEBUG"


@pytest.mark.parametrize(
    "name,value",
    [
        ("DISCORD_BOT_TOKEN", ""),
        ("SUBSCRIPTION_GUILD_ID", "not-a-number"),
        ("DATABASE_URL", "postgres://localhost/watch"),
        ("COOLDOWN_SECONDS", "-1"),
        ("LOG_LEVEL", "LOUD"),
    ],
)
def test_bad_settings(env, name, value):
    env.setenv(name, value)
    with pytest.raises(ConfigError):
        load_settings()


def test_parsers():
    assert parse_administrators("") == frozenset()
    assert parse_administrators("12,-3, 4") == {12, 4}
    assert parse_database_url("watch.sqlite3") == "watch.sqlite3"
    assert parse_database_url("sqlite:////var/lib/watch.sqlite3") == "/var/lib/watch.sqlite3"
    with pytest.raises(ConfigError):
        parse_database_url("sqlite:///")


def test_main_exits_without_configuration(env):
    env.delenv("DISCORD_BOT_TOKEN")
    assert main_module.main() == 2


def test_setup_logging_idempotent():
    logger1 = setup_logging(logging.DEBUG)
    logger2 = setup_logging(logging.DEBUG)
    assert logger1 is logger2
    assert logger1.name == "doggy_watch"
    assert len(logger1.handlers) == 1
    assert logging.getLogger("discord").level == logging.WARNING
