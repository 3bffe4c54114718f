"""Feed gateway messages into the command dispatcher."""

import logging

import discord
from discord.ext import commands

log = logging.getLogger(__name__)


class MessageEvents(commands.Cog):
    """Translate ``on_message`` into transport-neutral dispatcher calls.

    discord.py runs each listener invocation in its own task, so messages are
    handled concurrently and independently.
    """

    def __init__(self, bot: commands.Bot) -> None:
        self.bot = bot

    @commands.Cog.listener()
    async def on_message(self, message: discord.Message) -> None:
        if message.author.bot:
            return
        dispatcher = getattr(self.bot, "command_dispatcher", None)
        endpoint = getattr(self.bot, "endpoint", None)
        if dispatcher is None or endpoint is None:
            log.warning("Dispatcher not initialised; dropping message %s", message.id)
            return
        try:
            inbound = await endpoint.to_inbound(message)
        except Exception:
            log.exception("Could not read message %s", message.id)
            return
        await dispatcher.dispatch(inbound)


async def setup(bot: commands.Bot) -> None:
    await bot.add_cog(MessageEvents(bot))
