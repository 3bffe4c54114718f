"""Routing of inbound chat messages to the status query and admin handlers."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional, Tuple

from src.services.approval_service import ApprovalService
from src.services.outage_service import OutageReconciler
from src.utils.clock import Clock, ensure_utc, utc_now
from src.utils.durations import format_duration
from src.utils.messages import InboundMessage, MessagingEndpoint

STATUS_COMMAND = "status"
ADMIN_COMMANDS = ("approve", "disapprove")

REFUSAL_TEXT = "You are not entitled to use this command"
STATUS_TEMPLATE = "Light is on for {span}"
APPROVED_TEXT = "Approved user"
DISAPPROVED_TEXT = "Disapproved user"
FORWARD_TEMPLATE = "Forwarded from {user_id}"
FORWARD_UNKNOWN_TEXT = "Can't get user id, ask user directly"


@dataclass(frozen=True)
class ParsedCommand:
    name: str
    args: Tuple[str, ...] = ()


def parse_command(text: str, prefix: str) -> Optional[ParsedCommand]:
    """Split ``"<prefix>name arg ..."`` into a lowercase name and its arguments."""
    if not text:
        return None
    stripped = text.strip()
    if not stripped.startswith(prefix):
        return None
    parts = stripped[len(prefix):].split()
    if not parts:
        return None
    return ParsedCommand(name=parts[0].lower(), args=tuple(parts[1:]))


def _target_user(command: ParsedCommand) -> Optional[int]:
    if len(command.args) != 1 or not command.args[0].isdigit():
        return None
    return int(command.args[0])


class CommandDispatcher:
    """First-match routing: status command, admin command, admin forward."""

    def __init__(
        self,
        endpoint: MessagingEndpoint,
        approvals: ApprovalService,
        reconciler: OutageReconciler,
        *,
        admin_user_id: int,
        prefix: str = "!",
        stale_after: timedelta = timedelta(minutes=1),
        clock: Clock = utc_now,
    ):
        self.endpoint = endpoint
        self.approvals = approvals
        self.reconciler = reconciler
        self.admin_user_id = admin_user_id
        self.prefix = prefix
        self.stale_after = stale_after
        self.clock = clock
        self.logger = logging.getLogger("PowerWatch.Dispatch")

    def is_admin(self, message: InboundMessage) -> bool:
        return message.sender_id == self.admin_user_id

    async def dispatch(self, message: InboundMessage) -> bool:
        """Handle ``message``; returns True if a route matched.

        Handler failures are logged and never raised so one bad message cannot
        stall the ones behind it.
        """
        try:
            return await self._route(message)
        except Exception:
            self.logger.exception("Handling message from %s failed", message.sender_id)
            return True

    async def _route(self, message: InboundMessage) -> bool:
        command = parse_command(message.text, self.prefix)

        if command and command.name == STATUS_COMMAND:
            await self._handle_status(message)
            return True

        if command and command.name in ADMIN_COMMANDS and self.is_admin(message):
            target = _target_user(command)
            if target is not None:
                await self._handle_admin(message, command.name, target)
                return True

        if message.is_forward and self.is_admin(message):
            await self._handle_forward(message)
            return True

        return False

    # ------------------------------------------------------------------ handlers
    async def _handle_status(self, message: InboundMessage) -> None:
        if not self.is_admin(message) and not await self.approvals.is_approved(message.sender_id):
            await self.endpoint.reply(message, REFUSAL_TEXT)
            return

        age = self.clock() - ensure_utc(message.sent_at)
        if age > self.stale_after:
            # Sent while we were down; the startup report already covered it.
            self.logger.debug("Ignoring stale status query from %s (%s old)", message.sender_id, age)
            return

        span = await self.reconciler.light_on_for()
        if span is None:
            self.logger.debug("No resumption instant available for status query")
            return
        await self.endpoint.reply(message, STATUS_TEMPLATE.format(span=format_duration(span)))

    async def _handle_admin(self, message: InboundMessage, name: str, target: int) -> None:
        if name == "approve":
            await self.approvals.approve(target)
            await self.endpoint.reply(message, APPROVED_TEXT)
        else:
            await self.approvals.disapprove(target)
            await self.endpoint.reply(message, DISAPPROVED_TEXT)

    async def _handle_forward(self, message: InboundMessage) -> None:
        if message.forward_origin_id is None:
            await self.endpoint.reply(message, FORWARD_UNKNOWN_TEXT)
            return
        await self.endpoint.reply(message, FORWARD_TEMPLATE.format(user_id=message.forward_origin_id))
