"""Startup outage reconciliation and the live "light is on" query."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from src.services.heartbeat_service import HeartbeatService
from src.services.state_store import HEARTBEAT_KEY, POWER_RESUMED_KEY, StateStorageError, StateStore
from src.utils.clock import Clock, utc_now
from src.utils.durations import format_duration
from src.utils.messages import MessagingEndpoint

BRIEF_RESTART_TEMPLATE = (
    "Less than 1 minute bot outage. Probably updating the bot. The power was on for {on}\n"
)
OUTAGE_TEMPLATE = "The power was off for {off}.\nThe power was on for {on}\n"

_ZERO = timedelta(0)


@dataclass(frozen=True)
class OutageReport:
    """Result of comparing the last heartbeat and resumption against ``now``."""

    now: datetime
    time_off: timedelta
    time_on: timedelta
    brief_restart: bool


def compute_outage(
    now: datetime,
    heartbeat: datetime,
    resumed: datetime,
    threshold: timedelta = timedelta(minutes=1),
) -> OutageReport:
    """Derive off/on spans from the stored instants.

    ``time_on`` is the part of ``now - resumed`` that was not spent off. Both
    spans are clamped at zero since the store may have been reset under us.
    """
    since_resumed = now - resumed
    time_off = max(now - heartbeat, _ZERO)
    time_on = max(since_resumed - time_off, _ZERO)
    brief = _ZERO < time_off < threshold
    return OutageReport(now=now, time_off=time_off, time_on=time_on, brief_restart=brief)


def render_report(report: OutageReport) -> str:
    if report.brief_restart:
        return BRIEF_RESTART_TEMPLATE.format(on=format_duration(report.time_on))
    return OUTAGE_TEMPLATE.format(
        off=format_duration(report.time_off),
        on=format_duration(report.time_on),
    )


class OutageReconciler:
    """Owns the power-resumed timestamp and reports outages on startup."""

    def __init__(
        self,
        store: StateStore,
        *,
        heartbeat: Optional[HeartbeatService] = None,
        brief_restart_threshold: timedelta = timedelta(minutes=1),
        clock: Clock = utc_now,
    ):
        self.store = store
        self.heartbeat = heartbeat
        self.threshold = brief_restart_threshold
        self.clock = clock
        self.logger = logging.getLogger("PowerWatch.Outage")

    async def _read_or(self, key: str, fallback: datetime) -> datetime:
        try:
            value = await self.store.get_timestamp(key)
        except StateStorageError as exc:
            self.logger.warning("Could not read %s, assuming now: %s", key, exc)
            return fallback
        if value is None:
            self.logger.info("No %s recorded yet, assuming now.", key)
            return fallback
        return value

    async def reconcile(self, endpoint: MessagingEndpoint, destination: int) -> OutageReport:
        """Report the outage since the last heartbeat and advance the resumption mark.

        Send and store failures propagate; the caller must treat them as a
        failed startup.
        """
        now = self.clock()
        heartbeat = await self._read_or(HEARTBEAT_KEY, now)
        resumed = await self._read_or(POWER_RESUMED_KEY, now)
        report = compute_outage(now, heartbeat, resumed, self.threshold)

        if report.brief_restart:
            self.logger.info("Brief restart detected (off %s); keeping resumption at %s.", report.time_off, resumed)
        else:
            self.logger.info("Power was off for %s after being on for %s.", report.time_off, report.time_on)

        await endpoint.send_to(destination, render_report(report))
        if not report.brief_restart:
            await self.store.set_timestamp(POWER_RESUMED_KEY, now)

        if self.heartbeat is not None:
            await self.heartbeat.beat()
        return report

    async def light_on_for(self) -> Optional[timedelta]:
        """Return how long power has been on according to the live store, if known."""
        now = self.clock()
        try:
            resumed = await self.store.get_timestamp(POWER_RESUMED_KEY)
        except StateStorageError as exc:
            self.logger.warning("Could not read %s for status query: %s", POWER_RESUMED_KEY, exc)
            return None
        if resumed is None:
            return None
        span = now - resumed
        if span <= _ZERO:
            return None
        return span
