"""Per-user approval flags gating the status command."""

from __future__ import annotations

import logging

from src.services.state_store import ApprovalState, StateStorageError, StateStore


class ApprovalService:
    """Read and mutate approval flags.

    Callers are responsible for checking the administrator identity before
    invoking :meth:`approve` or :meth:`disapprove`.
    """

    def __init__(self, store: StateStore):
        self.store = store
        self.logger = logging.getLogger("PowerWatch.Approval")

    async def approve(self, user_id: int) -> None:
        await self.store.set_approval(user_id, ApprovalState.APPROVED)
        self.logger.info("Approved user %s", user_id)

    async def disapprove(self, user_id: int) -> None:
        await self.store.set_approval(user_id, ApprovalState.DISAPPROVED)
        self.logger.info("Disapproved user %s", user_id)

    async def is_approved(self, user_id: int) -> bool:
        """True only for an explicit approval; unreadable state counts as not approved."""
        try:
            state = await self.store.get_approval(user_id)
        except StateStorageError as exc:
            self.logger.warning("Approval lookup failed for %s, denying: %s", user_id, exc)
            return False
        return state is ApprovalState.APPROVED
