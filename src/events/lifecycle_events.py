"""Lifecycle hooks for updating presence and handling readiness."""

import discord
from discord.ext import commands
import logging

log = logging.getLogger(__name__)

PRESENCE_TEXT = "the mains"


class LifecycleEvents(commands.Cog):
    """Log gateway state changes and advertise what the bot watches."""

    def __init__(self, bot: commands.Bot) -> None:
        self.bot = bot

    @commands.Cog.listener()
    async def on_ready(self) -> None:
        log.info("Bot ready as %s.", self.bot.user)
        await self._safe_presence_update()

    @commands.Cog.listener()
    async def on_resumed(self) -> None:
        log.warning("Connection resumed – refreshing presence.")
        await self._safe_presence_update()

    @commands.Cog.listener()
    async def on_disconnect(self) -> None:
        log.warning("Gateway disconnected.")

    async def _safe_presence_update(self) -> None:
        activity = discord.Activity(type=discord.ActivityType.watching, name=PRESENCE_TEXT)
        try:
            await self.bot.change_presence(status=discord.Status.online, activity=activity)
        except Exception:
            log.exception("Presence update failed.")


async def setup(bot: commands.Bot) -> None:
    await bot.add_cog(LifecycleEvents(bot))
