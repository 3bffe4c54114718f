"""discord.py implementation of the messaging endpoint."""

from __future__ import annotations

import logging
from typing import Optional

import discord

from src.utils.clock import ensure_utc
from src.utils.messages import InboundMessage


class MessagingError(RuntimeError):
    """Raised when Discord rejects an outbound message."""


class DiscordEndpoint:
    """Send replies and reports through a connected discord.py client."""

    def __init__(self, client: discord.Client):
        self.client = client
        self.logger = logging.getLogger("PowerWatch.Discord")

    # ------------------------------------------------------------------ outbound
    async def _channel(self, channel_id: int) -> discord.abc.Messageable:
        channel = self.client.get_channel(channel_id)
        if channel is None:
            try:
                channel = await self.client.fetch_channel(channel_id)
            except discord.HTTPException as exc:
                raise MessagingError(f"channel {channel_id} unavailable: {exc}") from exc
        if not isinstance(channel, discord.abc.Messageable):
            raise MessagingError(f"channel {channel_id} cannot receive messages")
        return channel

    async def send_to(self, destination: int, text: str) -> None:
        channel = await self._channel(destination)
        try:
            await channel.send(text)
        except discord.HTTPException as exc:
            raise MessagingError(f"sending to {destination} failed: {exc}") from exc

    async def reply(self, message: InboundMessage, text: str) -> None:
        original = message.raw
        try:
            if isinstance(original, discord.Message):
                await original.reply(text, mention_author=False)
                return
        except discord.HTTPException as exc:
            raise MessagingError(f"reply to {message.sender_id} failed: {exc}") from exc
        if message.channel_id is None:
            raise MessagingError("message has neither a Discord origin nor a channel")
        await self.send_to(message.channel_id, text)

    # ------------------------------------------------------------------ inbound
    async def to_inbound(self, message: discord.Message) -> InboundMessage:
        reference = message.reference
        is_forward = reference is not None and reference.type == discord.MessageReferenceType.forward
        origin_id = await self._forward_origin(reference) if is_forward else None
        return InboundMessage(
            sender_id=message.author.id,
            sent_at=ensure_utc(message.created_at),
            text=message.content or "",
            channel_id=message.channel.id,
            is_forward=is_forward,
            forward_origin_id=origin_id,
            raw=message,
        )

    async def _forward_origin(self, reference: discord.MessageReference) -> Optional[int]:
        """Best-effort lookup of who wrote the forwarded original."""
        original = reference.resolved if isinstance(reference.resolved, discord.Message) else None
        if original is None:
            original = reference.cached_message
        if original is None and reference.channel_id and reference.message_id:
            try:
                channel = await self._channel(reference.channel_id)
                original = await channel.fetch_message(reference.message_id)
            except (MessagingError, discord.HTTPException) as exc:
                self.logger.debug("Forward origin %s not reachable: %s", reference.message_id, exc)
                return None
        if original is None or original.webhook_id is not None:
            return None
        return original.author.id
