"""
Daily trigger for the soil moisture check.

Runs inside the application's event loop: one optional check at startup,
then one check per day at a fixed wall-clock time. Times are resolved in
the configured timezone, or the host's local timezone when none is set,
so the check stays at the same wall-clock time across DST changes. Each
check runs in a worker thread so the blocking sensor, DB and Twilio calls
never stall request handling.
"""

import asyncio
import logging
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Optional

from soil_alert.workflow import AlertWorkflow

logger = logging.getLogger(__name__)


def _utc(moment: datetime) -> datetime:
    # Datetimes sharing one tzinfo compare and subtract in wall time, which
    # is off by the DST shift; absolute arithmetic goes through UTC
    return moment.astimezone(timezone.utc)


def _localize(naive: datetime, tz: Optional[tzinfo]) -> datetime:
    # astimezone() on a naive datetime applies the host's local DST rules
    if tz is None:
        return naive.astimezone()
    return naive.replace(tzinfo=tz)


def next_run_at(now: datetime, at: time, tz: Optional[tzinfo] = None) -> datetime:
    """
    Next occurrence of the wall-clock time `at` strictly after `now`.

    `now` may be naive (taken as host local time) or aware. The result is
    aware, with the UTC offset in force on the day it falls on.
    """
    if now.tzinfo is None:
        now = now.astimezone()
    local_day = now.astimezone(tz).date()

    next_run = _localize(datetime.combine(local_day, at), tz)
    if _utc(next_run) <= _utc(now):
        next_run = _localize(datetime.combine(local_day + timedelta(days=1), at), tz)
    return next_run


def seconds_until_next_run(now: datetime, at: time, tz: Optional[tzinfo] = None) -> float:
    """
    Real seconds from `now` until the next occurrence of `at`.

    A run time equal to `now` counts as already passed, so the result is
    always positive.
    """
    if now.tzinfo is None:
        now = now.astimezone()
    return (_utc(next_run_at(now, at, tz)) - _utc(now)).total_seconds()


class DailyScheduler:
    """Fires AlertWorkflow.run_check once at startup and daily at `at`."""

    def __init__(
        self,
        workflow: AlertWorkflow,
        at: time,
        run_on_startup: bool = True,
        tz: Optional[tzinfo] = None,
    ):
        self.workflow = workflow
        self.at = at
        self.run_on_startup = run_on_startup
        self.tz = tz
        self._last_run_date: Optional[date] = None
        self._task: Optional[asyncio.Task] = None

    def _now(self) -> datetime:
        return datetime.now(self.tz) if self.tz is not None else datetime.now().astimezone()

    def next_run(self, now: datetime) -> datetime:
        """Next daily run, never twice on the same calendar date."""
        next_run = next_run_at(now, self.at, self.tz)
        if next_run.date() == self._last_run_date:
            next_run = next_run_at(next_run, self.at, self.tz)
        return next_run

    async def _run_check(self, trigger: str) -> None:
        try:
            result = await asyncio.to_thread(self.workflow.run_check, trigger)
        except Exception:
            # Unexpected failures must not end the daily loop
            logger.exception("Soil moisture check crashed")
            return
        logger.info(f"Soil moisture check finished: {result.outcome.value}")

    async def _run_loop(self) -> None:
        if self.run_on_startup:
            await self._run_check("startup")

        while True:
            next_run = self.next_run(self._now())
            delay = max(0.0, (_utc(next_run) - _utc(self._now())).total_seconds())
            logger.info(f"Next soil moisture check in {delay:.0f}s at {next_run.isoformat()}")
            await asyncio.sleep(delay)

            self._last_run_date = next_run.date()
            logger.info(f"Running daily soil moisture check for {next_run.date().isoformat()}")
            await self._run_check("scheduled")

    def start(self) -> None:
        """Start the loop as a task on the running event loop."""
        if self._task is None:
            self._task = asyncio.create_task(self._run_loop())
            logger.info("Daily scheduler started")

    async def stop(self) -> None:
        """Cancel the loop and wait for it to exit."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Daily scheduler stopped")
