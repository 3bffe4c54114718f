"""
Tests for outage reconciliation (src/services/outage_service.py).
Clocks are fixed so every span is exact.
"""

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from src.services.heartbeat_service import HeartbeatService
from src.services.outage_service import (
    OutageReconciler,
    compute_outage,
    render_report,
)
from src.services.state_store import HEARTBEAT_KEY, POWER_RESUMED_KEY

REPORT_CHANNEL = 1000


@pytest.fixture
def endpoint():
    ep = AsyncMock()
    ep.send_to = AsyncMock()
    return ep


@pytest.fixture
def reconciler(store, clock):
    heartbeat = HeartbeatService(store, clock=clock)
    return OutageReconciler(store, heartbeat=heartbeat, clock=clock)


def sent_text(endpoint) -> str:
    endpoint.send_to.assert_awaited_once()
    destination, text = endpoint.send_to.await_args.args
    assert destination == REPORT_CHANNEL
    return text


# ─── compute_outage ───────────────────────────────────────────────────────────

class TestComputeOutage:
    def test_no_gap_is_not_brief(self, clock):
        report = compute_outage(clock.now, clock.now, clock.now)
        assert report.time_off == timedelta(0)
        assert report.brief_restart is False

    @pytest.mark.parametrize(
        "gap",
        [timedelta(milliseconds=1), timedelta(seconds=10), timedelta(seconds=59)],
    )
    def test_sub_minute_gap_is_brief(self, clock, gap):
        report = compute_outage(clock.now + gap, clock.now, clock.now)
        assert report.brief_restart is True

    @pytest.mark.parametrize("gap", [timedelta(seconds=60), timedelta(hours=3)])
    def test_minute_or_more_is_outage(self, clock, gap):
        report = compute_outage(clock.now + gap, clock.now, clock.now)
        assert report.brief_restart is False
        assert report.time_off == gap

    def test_time_on_excludes_time_off(self, clock):
        resumed = clock.now - timedelta(hours=2)
        heartbeat = clock.now
        now = clock.now + timedelta(minutes=5)
        report = compute_outage(now, heartbeat, resumed)
        assert report.time_off == timedelta(minutes=5)
        assert report.time_on == timedelta(hours=2)

    def test_heartbeat_in_future_clamps_to_zero(self, clock):
        report = compute_outage(clock.now, clock.now + timedelta(minutes=10), clock.now - timedelta(hours=1))
        assert report.time_off == timedelta(0)
        assert report.time_on == timedelta(hours=1)
        assert report.brief_restart is False

    def test_resumed_after_heartbeat_clamps_time_on(self, clock):
        report = compute_outage(
            clock.now + timedelta(minutes=5),
            clock.now,
            clock.now + timedelta(minutes=1),
        )
        assert report.time_on == timedelta(0)

    def test_custom_threshold(self, clock):
        report = compute_outage(
            clock.now + timedelta(seconds=90), clock.now, clock.now, threshold=timedelta(minutes=2)
        )
        assert report.brief_restart is True


class TestRenderReport:
    def test_outage_phrasing(self, clock):
        report = compute_outage(clock.now + timedelta(minutes=5), clock.now, clock.now - timedelta(hours=1))
        assert render_report(report) == "The power was off for 5 minutes .\nThe power was on for 1 hours \n"

    def test_brief_phrasing_mentions_only_on_time(self, clock):
        report = compute_outage(clock.now + timedelta(seconds=10), clock.now, clock.now - timedelta(hours=1))
        text = render_report(report)
        assert text.startswith("Less than 1 minute bot outage.")
        assert "off" not in text
        assert text.endswith("The power was on for 1 hours \n")


# ─── reconcile ────────────────────────────────────────────────────────────────

class TestReconcile:
    @pytest.mark.asyncio
    async def test_five_minute_outage(self, store, clock, reconciler, endpoint):
        t = clock.now
        await store.set_timestamp(HEARTBEAT_KEY, t)
        await store.set_timestamp(POWER_RESUMED_KEY, t)
        clock.advance(minutes=5)

        report = await reconciler.reconcile(endpoint, REPORT_CHANNEL)

        assert report.time_off == timedelta(minutes=5)
        assert report.time_on == timedelta(0)
        assert sent_text(endpoint) == "The power was off for 5 minutes .\nThe power was on for \n"
        assert await store.get_timestamp(POWER_RESUMED_KEY) == t + timedelta(minutes=5)

    @pytest.mark.asyncio
    async def test_ten_second_restart_keeps_resumption(self, store, clock, reconciler, endpoint):
        resumed = clock.now - timedelta(hours=3)
        await store.set_timestamp(POWER_RESUMED_KEY, resumed)
        await store.set_timestamp(HEARTBEAT_KEY, clock.now)
        clock.advance(seconds=10)

        report = await reconciler.reconcile(endpoint, REPORT_CHANNEL)

        assert report.brief_restart is True
        text = sent_text(endpoint)
        assert text.startswith("Less than 1 minute bot outage.")
        assert "3 hours" in text
        assert await store.get_timestamp(POWER_RESUMED_KEY) == resumed

    @pytest.mark.asyncio
    async def test_first_ever_run_reports_zero_and_records_resumption(self, store, clock, reconciler, endpoint):
        report = await reconciler.reconcile(endpoint, REPORT_CHANNEL)
        assert report.time_off == timedelta(0)
        assert report.brief_restart is False
        assert sent_text(endpoint) == "The power was off for .\nThe power was on for \n"
        assert await store.get_timestamp(POWER_RESUMED_KEY) == clock.now

    @pytest.mark.asyncio
    async def test_second_run_right_after_is_brief(self, store, clock, reconciler, endpoint):
        await reconciler.reconcile(endpoint, REPORT_CHANNEL)
        first_resumed = await store.get_timestamp(POWER_RESUMED_KEY)
        clock.advance(seconds=2)
        endpoint.send_to.reset_mock()

        report = await reconciler.reconcile(endpoint, REPORT_CHANNEL)

        assert report.time_off == timedelta(seconds=2)
        assert report.brief_restart is True
        assert await store.get_timestamp(POWER_RESUMED_KEY) == first_resumed

    @pytest.mark.asyncio
    async def test_reconcile_stamps_heartbeat(self, store, clock, reconciler, endpoint):
        await reconciler.reconcile(endpoint, REPORT_CHANNEL)
        assert await store.get_timestamp(HEARTBEAT_KEY) == clock.now

    @pytest.mark.asyncio
    async def test_unreadable_heartbeat_counts_as_now(self, store, fake_redis, clock, reconciler, endpoint):
        fake_redis.data[HEARTBEAT_KEY] = "not a time"
        await store.set_timestamp(POWER_RESUMED_KEY, clock.now - timedelta(hours=1))
        report = await reconciler.reconcile(endpoint, REPORT_CHANNEL)
        assert report.time_off == timedelta(0)
        assert report.time_on == timedelta(hours=1)

    @pytest.mark.asyncio
    async def test_send_failure_propagates_without_advancing(self, store, clock, reconciler, endpoint):
        t = clock.now
        await store.set_timestamp(HEARTBEAT_KEY, t)
        await store.set_timestamp(POWER_RESUMED_KEY, t)
        clock.advance(minutes=5)
        endpoint.send_to.side_effect = RuntimeError("discord down")

        with pytest.raises(RuntimeError):
            await reconciler.reconcile(endpoint, REPORT_CHANNEL)
        assert await store.get_timestamp(POWER_RESUMED_KEY) == t

    @pytest.mark.asyncio
    async def test_resumption_write_failure_propagates(self, store, fake_redis, clock, endpoint):
        from src.services.state_store import StateStorageError

        reconciler = OutageReconciler(store, clock=clock)
        original_set = fake_redis.set

        async def failing_set(key, value):
            if key == POWER_RESUMED_KEY:
                fake_redis.down = True
            return await original_set(key, value)

        fake_redis.set = failing_set
        with pytest.raises(StateStorageError):
            await reconciler.reconcile(endpoint, REPORT_CHANNEL)
        endpoint.send_to.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_store_down_still_reports(self, fake_redis, store, clock, endpoint):
        from src.services.state_store import StateStorageError

        fake_redis.down = True
        reconciler = OutageReconciler(store, clock=clock)
        with pytest.raises(StateStorageError):
            await reconciler.reconcile(endpoint, REPORT_CHANNEL)
        assert "off for" in sent_text(endpoint)


# ─── light_on_for ─────────────────────────────────────────────────────────────

class TestLightOnFor:
    @pytest.mark.asyncio
    async def test_reads_live_resumption(self, store, clock, reconciler):
        await store.set_timestamp(POWER_RESUMED_KEY, clock.now - timedelta(minutes=30))
        assert await reconciler.light_on_for() == timedelta(minutes=30)
        await store.set_timestamp(POWER_RESUMED_KEY, clock.now - timedelta(minutes=5))
        assert await reconciler.light_on_for() == timedelta(minutes=5)

    @pytest.mark.asyncio
    async def test_missing_or_unreadable_is_none(self, store, fake_redis, reconciler):
        assert await reconciler.light_on_for() is None
        fake_redis.down = True
        assert await reconciler.light_on_for() is None

    @pytest.mark.asyncio
    async def test_zero_span_is_none(self, store, clock, reconciler):
        await store.set_timestamp(POWER_RESUMED_KEY, clock.now)
        assert await reconciler.light_on_for() is None
