from __future__ import annotations

import logging

import discord
from discord.ext import commands, tasks
from dotenv import load_dotenv

from .commands import register_commands
from .config import Config, load_config
from .reporter import Reporter, format_hm
from .store import SQLiteStore
from .tracker import ShiftTracker


def presence_text(tracker: ShiftTracker) -> str:
    snapshot = tracker.get_snapshot()
    if snapshot.running is None:
        return f"Off shift | today {format_hm(snapshot.totals.today_sec)}"
    return f"On shift | today {format_hm(snapshot.elapsed_sec)}"


class ShiftClockBot(commands.Bot):
    def __init__(self, config: Config, store: SQLiteStore) -> None:
        intents = discord.Intents.none()
        intents.guilds = True

        super().__init__(command_prefix="!", intents=intents)

        self.config = config
        self.store = store
        self.tracker = ShiftTracker(store=store, tz=config.timezone)
        self.reporter = Reporter(self.tracker)

        self.logger = logging.getLogger("shiftclock-bot")
        self._last_presence: str | None = None

    async def setup_hook(self) -> None:
        register_commands(self)
        await self.tree.sync(guild=discord.Object(id=self.config.guild_id))
        self.presence_loop.change_interval(seconds=self.config.presence_refresh_seconds)
        self.presence_loop.start()

    async def on_ready(self) -> None:
        self.logger.info("Connected as %s (%s)", self.user, self.user.id if self.user else "unknown")
        running = self.tracker.get_running()
        if running is not None:
            self.logger.info("Resuming running shift started at %s", running.started_at_day_key)

    async def refresh_presence(self) -> None:
        text = presence_text(self.tracker)
        # Skip the gateway call when nothing visible changed.
        if text == self._last_presence:
            return
        await self.change_presence(activity=discord.CustomActivity(name=text))
        self._last_presence = text

    @tasks.loop(seconds=60)
    async def presence_loop(self) -> None:
        try:
            await self.refresh_presence()
        except Exception:  # pragma: no cover - runtime safety
            self.logger.exception("Failed to refresh presence")

    @presence_loop.before_loop
    async def before_presence_loop(self) -> None:
        await self.wait_until_ready()

    async def close(self) -> None:
        if self.presence_loop.is_running():
            self.presence_loop.cancel()
        self.store.close()
        await super().close()


def configure_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )


def main() -> None:
    load_dotenv()
    configure_logging()

    config = load_config()
    store = SQLiteStore(config.db_path)
    store.initialize()

    bot = ShiftClockBot(config=config, store=store)
    bot.run(config.discord_token)


if __name__ == "__main__":
    main()
