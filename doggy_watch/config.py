"""Startup configuration read from the environment."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from .core.dialogue import DEFAULT_TTL
from .core.ratelimit import DEFAULT_COOLDOWN

SQLITE_PREFIX = "sqlite:///"


class ConfigError(RuntimeError):
    """A required setting is missing or malformed."""


@dataclass(frozen=True)
class Settings:
    token: str
    guild_id: int
    database_path: str
    invite_code: str | None = None
    administrators: frozenset[int] = field(default_factory=frozenset)
    cooldown: float = DEFAULT_COOLDOWN
    # None keeps pending dialogues until they are finished
    dialogue_ttl: float | None = DEFAULT_TTL
    log_level: str = "INFO"


def _required(name: str) -> str:
    value = os.getenv(name, "").strip()
    if not value:
        raise ConfigError(f"{name} is not set. Export it in your environment before running.")
    return value


def _number(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from exc
    if value < 0:
        raise ConfigError(f"{name} must not be negative, got {raw!r}")
    return value


def parse_administrators(raw: str) -> frozenset[int]:
    """Ids from a comma separated list; entries that are not integers are skipped."""
    ids = set()
    for part in raw.split(","):
        part = part.strip()
        if part.isdigit():
            ids.add(int(part))
    return frozenset(ids)


def parse_database_url(url: str) -> str:
    """File path of an SQLite database given as ``sqlite:///path`` or a bare path."""
    if url.startswith(SQLITE_PREFIX):
        path = url[len(SQLITE_PREFIX):]
    elif "://" in url:
        raise ConfigError(f"Only SQLite databases are supported, got {url!r}")
    else:
        path = url
    if not path:
        raise ConfigError("DATABASE_URL does not name a file")
    return path


def load_settings(env_file: str | None = None) -> Settings:
    """Read :class:`Settings`, loading ``.env`` without overriding the environment."""
    load_dotenv(env_file, override=False)

    token = _required("DISCORD_BOT_TOKEN")
    guild = _required("SUBSCRIPTION_GUILD_ID")
    try:
        guild_id = int(guild)
    except ValueError as exc:
        raise ConfigError(f"SUBSCRIPTION_GUILD_ID must be an integer, got {guild!r}") from exc

    level = os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO"
    if not isinstance(logging.getLevelName(level), int):
        raise ConfigError(f"LOG_LEVEL {level!r} is not a logging level")

    ttl = _number("DIALOGUE_TTL_SECONDS", DEFAULT_TTL)
    return Settings(
        token=token,
        guild_id=guild_id,
        database_path=parse_database_url(_required("DATABASE_URL")),
        invite_code=os.getenv("INVITE_CODE", "").strip() or None,
        administrators=parse_administrators(os.getenv("ADMINISTRATORS", "")),
        cooldown=_number("COOLDOWN_SECONDS", DEFAULT_COOLDOWN),
        dialogue_ttl=ttl or None,
        log_level=level,
    )
