"""Pytest configuration helpers."""

import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from redis import ConnectionError as RedisConnectionError

ROOT = Path(__file__).resolve().parents[1]

if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Ensure config bootstrap has the secrets it needs during CI/unit tests.
os.environ.setdefault("DISCORD_TOKEN", "TEST_TOKEN")
os.environ.setdefault("REPORT_CHANNEL_ID", "1000")
os.environ.setdefault("ADMIN_USER_ID", "42")

from src.configs.schema import RedisConfig  # noqa: E402
from src.services.state_store import StateStore  # noqa: E402

T0 = datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeRedis:
    """In-memory stand-in for ``redis.asyncio.Redis`` with switchable outages."""

    def __init__(self):
        self.data = {}
        self.down = False
        self.writes = []

    def _check(self):
        if self.down:
            raise RedisConnectionError("connection refused")

    async def get(self, key):
        self._check()
        return self.data.get(key)

    async def set(self, key, value):
        self._check()
        self.writes.append((key, value))
        self.data[key] = value
        return True

    async def ping(self):
        self._check()
        return True

    async def aclose(self):
        return None


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def store(fake_redis):
    return StateStore(RedisConfig(), client=fake_redis)


@pytest.fixture
def clock():
    return FakeClock()
