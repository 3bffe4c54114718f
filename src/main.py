"""Application bootstrap for the PowerWatch Discord bot.

Startup is split in two phases. ``setup_hook`` is the initialisation phase: it
reconciles the stored heartbeat against the clock, posts the outage report and
only then starts the heartbeat writer and loads the message listeners. The
gateway, and therefore the command dispatcher, only begins receiving messages
after ``setup_hook`` returns, so no status query can observe state the
reconciler has not written yet. Launch with ``python -m src.main``.
"""

import logging
import os
from datetime import timedelta
from typing import Optional

import discord
from discord.ext import commands

from src.configs.schema import AppConfig
from src.services.approval_service import ApprovalService
from src.services.discord_endpoint import DiscordEndpoint
from src.services.dispatch_service import CommandDispatcher
from src.services.heartbeat_service import HeartbeatService
from src.services.outage_service import OutageReconciler, OutageReport
from src.services.state_store import StateStorageError, StateStore
from src.utils.clock import Clock, utc_now
from src.utils.logger import setup_logging


def build_intents(config: AppConfig) -> discord.Intents:
    intents = discord.Intents.default()
    intents.guilds = True
    intents.messages = True
    intents.message_content = config.bot.message_content_intent  # Requires privileged intent
    return intents


class PowerWatch(commands.Bot):
    """Discord bot that infers mains outages from gaps in its own heartbeat."""

    def __init__(self, config: AppConfig, *, store: Optional[StateStore] = None, clock: Clock = utc_now):
        super().__init__(
            command_prefix=config.bot.command_prefix,
            intents=build_intents(config),
            help_command=None,
        )
        self.config = config
        self.logger: Optional[logging.Logger] = None
        self.startup_report: Optional[OutageReport] = None
        monitor = config.monitor
        self.store = store or StateStore(config.redis)
        self.endpoint = DiscordEndpoint(self)
        self.heartbeat = HeartbeatService(
            self.store,
            interval=monitor.heartbeat_interval_seconds,
            clock=clock,
        )
        self.reconciler = OutageReconciler(
            self.store,
            heartbeat=self.heartbeat,
            brief_restart_threshold=timedelta(seconds=monitor.brief_restart_seconds),
            clock=clock,
        )
        self.approvals = ApprovalService(self.store)
        self.command_dispatcher = CommandDispatcher(
            self.endpoint,
            self.approvals,
            self.reconciler,
            admin_user_id=config.access.admin_user_id,
            prefix=config.bot.command_prefix,
            stale_after=timedelta(seconds=monitor.stale_message_seconds),
            clock=clock,
        )

    async def on_message(self, message: discord.Message) -> None:
        """Commands are routed by ``MessageEvents``, not the discord.ext parser."""
        return

    async def setup_hook(self):
        """Reconcile the outage, then start the heartbeat and load listeners."""
        setup_logging()

        self.logger = logging.getLogger("PowerWatch")
        self.logger.info("Initializing PowerWatch...")

        try:
            await self.store.ping()
        except StateStorageError:
            self.logger.warning("State store is unreachable; outage figures will assume no prior record.")

        # Failures here are fatal: the process must not run with an unreported outage.
        self.startup_report = await self.reconciler.reconcile(
            self.endpoint,
            self.config.reporting.channel_id,
        )

        await self.heartbeat.start()

        folder = os.path.join(os.path.dirname(__file__), "events")
        for file in sorted(os.listdir(folder)):
            if file.endswith(".py") and not file.startswith("__"):
                ext = f"src.events.{file[:-3]}"
                await self.load_extension(ext)
                self.logger.info("Loaded extension: %s", ext)

    async def close(self):
        """Stop the heartbeat writer and release the store before disconnecting."""
        await self.heartbeat.close()
        try:
            await self.store.close()
        except Exception as e:
            if self.logger:
                self.logger.error("Error closing state store: %s", e)
        await super().close()


def main() -> None:
    from src.configs.settings import CONFIG, DISCORD_TOKEN

    setup_logging()
    bot = PowerWatch(CONFIG)
    bot.run(DISCORD_TOKEN, log_handler=None)


if __name__ == "__main__":
    main()
