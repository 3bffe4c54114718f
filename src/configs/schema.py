"""Typed configuration models used throughout the project."""

from typing import Optional

from pydantic import BaseModel, field_validator


class RedisConfig(BaseModel):
    """Redis connection configuration for the durable power state."""

    url: Optional[str] = None
    host: str = "127.0.0.1"
    port: int = 6379
    password: Optional[str] = None
    db: int = 0

    @field_validator("host", mode="before")
    @classmethod
    def _strip_host(cls, value):
        """Ensure configuration strings do not accidentally contain whitespace."""
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("url", "password", mode="before")
    @classmethod
    def _blank_as_none(cls, value):
        if isinstance(value, str):
            return value.strip() or None
        return value


class ReportingConfig(BaseModel):
    """Where startup outage reports are delivered."""

    channel_id: Optional[int] = None


class AccessConfig(BaseModel):
    """Identity allowed to approve users and inspect forwards."""

    admin_user_id: Optional[int] = None


class MonitorConfig(BaseModel):
    """Timing knobs for the heartbeat and outage heuristics."""

    heartbeat_interval_seconds: int = 60
    brief_restart_seconds: int = 60
    stale_message_seconds: int = 60

    @field_validator(
        "heartbeat_interval_seconds",
        "brief_restart_seconds",
        "stale_message_seconds",
    )
    @classmethod
    def _positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be a positive number of seconds")
        return value


class BotConfig(BaseModel):
    """Runtime behaviour toggles for the bot."""

    command_prefix: str = "!"
    message_content_intent: bool = True

    @field_validator("command_prefix", mode="before")
    @classmethod
    def _non_empty_prefix(cls, value):
        if isinstance(value, str):
            value = value.strip()
            if not value:
                raise ValueError("command prefix may not be blank")
        return value


class AppConfig(BaseModel):
    """Root configuration container loaded from ``config.yml`` and ``.env``."""

    bot: BotConfig = BotConfig()
    redis: RedisConfig = RedisConfig()
    reporting: ReportingConfig = ReportingConfig()
    access: AccessConfig = AccessConfig()
    monitor: MonitorConfig = MonitorConfig()
