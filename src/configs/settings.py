"""Configuration loader for PowerWatch.

This module centralises configuration concerns: it loads ``config.yml``,
overrides with environment variables (``.env``) and exposes globally accessible
objects the rest of the code base can rely on.
"""

import os
from pathlib import Path
from typing import Dict, Optional

import yaml
from dotenv import find_dotenv, load_dotenv

from .schema import AccessConfig, AppConfig, BotConfig, MonitorConfig, RedisConfig, ReportingConfig

# Resolve env file precedence: .env.local (dev), .env.production (prod), then .env
_base_dir = Path(__file__).resolve().parents[2]
_env_files = [".env.local", ".env.production", ".env"]
_loaded = False
for _candidate in _env_files:
    _path = _base_dir / _candidate
    if _path.exists():
        load_dotenv(_path)
        _loaded = True
        break
if not _loaded:
    dotenv_path = find_dotenv(usecwd=True)
    if dotenv_path:
        load_dotenv(dotenv_path)


def _load_yaml(path: str) -> Dict:
    """Load a YAML config file, returning an empty dict if the file is blank or absent."""
    if not os.path.exists(path):
        return {}
    with open(path, "r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle)
        return data or {}


def _first_env(*names: str) -> Optional[str]:
    for name in names:
        value = os.getenv(name)
        if value:
            return value.strip()
    return None


_raw = _load_yaml(os.getenv("CONFIG_PATH", "config.yml"))
CONFIG = AppConfig(**_raw)

redis_url = _first_env("REDIS_ADDRESS", "REDIS_URL")
redis_host = os.getenv("REDIS_HOST")
redis_port = os.getenv("REDIS_PORT")
redis_pwd = os.getenv("REDIS_PASSWORD")
redis_db = os.getenv("REDIS_DB")
if redis_url or redis_host or redis_port or redis_pwd or redis_db:
    CONFIG.redis = RedisConfig(
        url=redis_url or CONFIG.redis.url,
        host=redis_host or CONFIG.redis.host,
        port=int(redis_port) if redis_port else CONFIG.redis.port,
        password=redis_pwd or CONFIG.redis.password,
        db=int(redis_db) if redis_db else CONFIG.redis.db,
    )

report_channel = _first_env("REPORT_CHANNEL_ID", "CHAT_ID_TO_REPORT")
if report_channel:
    CONFIG.reporting = ReportingConfig(channel_id=int(report_channel))

admin_user = _first_env("ADMIN_USER_ID")
if admin_user:
    CONFIG.access = AccessConfig(admin_user_id=int(admin_user))

heartbeat_interval = os.getenv("HEARTBEAT_INTERVAL_SECONDS")
brief_restart = os.getenv("BRIEF_RESTART_SECONDS")
stale_message = os.getenv("STALE_MESSAGE_SECONDS")
if heartbeat_interval or brief_restart or stale_message:
    CONFIG.monitor = MonitorConfig(
        heartbeat_interval_seconds=int(heartbeat_interval)
        if heartbeat_interval
        else CONFIG.monitor.heartbeat_interval_seconds,
        brief_restart_seconds=int(brief_restart) if brief_restart else CONFIG.monitor.brief_restart_seconds,
        stale_message_seconds=int(stale_message) if stale_message else CONFIG.monitor.stale_message_seconds,
    )

command_prefix = os.getenv("COMMAND_PREFIX")
if command_prefix:
    CONFIG.bot = BotConfig(
        command_prefix=command_prefix,
        message_content_intent=CONFIG.bot.message_content_intent,
    )

if CONFIG.reporting.channel_id is None:
    raise RuntimeError("REPORT_CHANNEL_ID missing in .env")
if CONFIG.access.admin_user_id is None:
    raise RuntimeError("ADMIN_USER_ID missing in .env")

_discord_token = _first_env("DISCORD_TOKEN", "BOT_TOKEN")
if not _discord_token:
    raise RuntimeError("DISCORD_TOKEN missing in .env")
DISCORD_TOKEN: str = _discord_token
