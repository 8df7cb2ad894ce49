from __future__ import annotations

import asyncio

from .adapters.base import SubscriptionChecker
from .adapters.discord import DiscordAdapter
from .bot import WatchBot
from .commands.handlers import WatchHandlers
from .commands.register import register_commands
from .config import ConfigError, Settings, load_settings
from .core.dialogue import DialogueStore
from .core.notify import NotificationFanout
from .core.ratelimit import RateLimiter
from .core.workflow import WatchWorkflow
from .data.store import WatchStore
from .logging_config import setup_logging


def build(settings: Settings) -> tuple[WatchBot, WatchWorkflow, DiscordAdapter]:
    """Wire the store, workflow, handlers and bot for ``settings``."""
    store = WatchStore(path=settings.database_path)
    adapter = DiscordAdapter(settings.token)
    workflow = WatchWorkflow(
        store,
        limiter=RateLimiter(settings.cooldown),
        notifier=NotificationFanout(store, adapter),
        administrators=settings.administrators,
    )
    handlers = WatchHandlers(
        workflow,
        DialogueStore(ttl=settings.dialogue_ttl),
        SubscriptionChecker(adapter, settings.guild_id),
        invite_code=settings.invite_code,
    )
    bot = WatchBot(handlers)
    register_commands(bot, handlers)
    return bot, workflow, adapter


def main() -> int:
    log = setup_logging()
    try:
        settings = load_settings()
    except ConfigError as exc:
        log.error("%s", exc)
        return 2
    log.setLevel(settings.log_level)

    bot, workflow, adapter = build(settings)

    async def runner():
        try:
            await workflow.store.init()
            admins = await workflow.ensure_administrators()
            log.info("Bootstrap administrators: %s", [m.id for m in admins])
            async with bot:
                await bot.start(settings.token)
        except KeyboardInterrupt:
            log.info("Shutting down...")
        finally:
            await workflow.drain()
            await adapter.close()
        return 0

    return asyncio.run(runner())


if __name__ == "__main__":
    raise SystemExit(main())
