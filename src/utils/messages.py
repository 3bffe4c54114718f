"""Transport-neutral message types consumed by the command dispatcher."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional, Protocol


@dataclass(frozen=True)
class InboundMessage:
    """A chat message reduced to the fields the dispatcher routes on."""

    sender_id: int
    sent_at: datetime
    text: str
    channel_id: Optional[int] = None
    is_forward: bool = False
    # Author of the forwarded original; None when hidden or not a user.
    forward_origin_id: Optional[int] = None
    raw: Any = None


class MessagingEndpoint(Protocol):
    """Outbound half of the chat transport."""

    async def reply(self, message: InboundMessage, text: str) -> None: ...

    async def send_to(self, destination: int, text: str) -> None: ...
