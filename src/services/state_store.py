"""Redis-backed persistence for heartbeat, resumption and approval state."""

# pyright: reportMissingTypeStubs=false

from __future__ import annotations

import enum
import logging
from datetime import datetime
from typing import Optional

import redis.asyncio as redis
from redis import RedisError

from src.configs.schema import RedisConfig
from src.utils.clock import ensure_utc

HEARTBEAT_KEY = "power_on_time"
POWER_RESUMED_KEY = "wake_up_time"


class StateStorageError(RuntimeError):
    """Raised when the state store is unreachable or holds an unreadable value."""


class ApprovalState(str, enum.Enum):
    APPROVED = "approved"
    DISAPPROVED = "disapproved"
    ABSENT = "absent"


class StateStore:
    """Single shared Redis client used by every long-lived task.

    ``redis.asyncio.Redis`` draws a pooled connection per command, so one
    instance is safe to share between the heartbeat loop and message handlers.
    """

    def __init__(self, config: RedisConfig, *, client=None):
        self.config = config
        self.logger = logging.getLogger("PowerWatch.Store")
        if client is not None:
            self._redis = client
        elif config.url:
            self._redis = redis.Redis.from_url(config.url, decode_responses=True)
        else:
            self._redis = redis.Redis(
                host=config.host,
                port=config.port,
                password=config.password or None,
                db=config.db,
                decode_responses=True,
            )

    # ------------------------------------------------------------------ helpers
    @staticmethod
    def _approval_key(user_id: int) -> str:
        return f"approval:{user_id}"

    async def _get(self, key: str) -> Optional[str]:
        try:
            return await self._redis.get(key)
        except RedisError as exc:
            raise StateStorageError(f"reading {key!r} failed: {exc}") from exc

    async def _set(self, key: str, value: str) -> None:
        try:
            await self._redis.set(key, value)
        except RedisError as exc:
            raise StateStorageError(f"writing {key!r} failed: {exc}") from exc

    # ------------------------------------------------------------------ timestamps
    async def get_timestamp(self, key: str) -> Optional[datetime]:
        """Return the instant stored under ``key`` or ``None`` if it was never written."""
        value = await self._get(key)
        if value is None:
            return None
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError as exc:
            raise StateStorageError(f"value under {key!r} is not a timestamp: {value!r}") from exc
        return ensure_utc(parsed)

    async def set_timestamp(self, key: str, value: datetime) -> None:
        await self._set(key, ensure_utc(value).isoformat())

    # ------------------------------------------------------------------ approvals
    async def get_approval(self, user_id: int) -> ApprovalState:
        value = await self._get(self._approval_key(user_id))
        if value is None:
            return ApprovalState.ABSENT
        try:
            state = ApprovalState(value)
        except ValueError as exc:
            raise StateStorageError(f"unknown approval token for {user_id}: {value!r}") from exc
        if state is ApprovalState.ABSENT:
            raise StateStorageError(f"approval token 'absent' stored for {user_id}")
        return state

    async def set_approval(self, user_id: int, state: ApprovalState) -> None:
        if state is ApprovalState.ABSENT:
            raise ValueError("absent is not a storable approval state")
        await self._set(self._approval_key(user_id), state.value)

    # ------------------------------------------------------------------ lifecycle
    async def ping(self) -> bool:
        """Check connectivity with the backing Redis instance."""
        try:
            await self._redis.ping()
        except RedisError as exc:
            self.logger.error("State store ping failed: %s", exc)
            raise StateStorageError(str(exc)) from exc
        self.logger.info("State store reachable at %s", self._describe())
        return True

    async def close(self) -> None:
        """Close the Redis connection."""
        try:
            await self._redis.aclose()
        except RedisError:
            pass

    def _describe(self) -> str:
        if self.config.url:
            return self.config.url.rsplit("@", 1)[-1]
        return f"{self.config.host}:{self.config.port} db={self.config.db}"
