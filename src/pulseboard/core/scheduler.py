"""Periodic and on-demand triggering of sync passes.

At most one pass runs at a time. Triggers that arrive while a pass is
running are coalesced into a single follow-up pass.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from collections.abc import Callable
from datetime import UTC
from enum import StrEnum

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from pulseboard.config.settings import DEFAULT_REFRESH_INTERVAL_MINUTES

logger = logging.getLogger(__name__)

JOB_ID = "pulseboard-sync"


class SchedulerState(StrEnum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


class SyncScheduler:
    """Drives sync passes on an interval and on manual request.

    The interval timer is an APScheduler job; each tick is handled like a
    manual trigger. ``stop()`` is terminal.
    """

    def __init__(
        self,
        run_pass: Callable[[], Awaitable[object]],
        interval_minutes: int = DEFAULT_REFRESH_INTERVAL_MINUTES,
        scheduler: AsyncIOScheduler | None = None,
    ) -> None:
        if interval_minutes < 1:
            raise ValueError("Refresh interval must be at least one minute")
        self._run_pass = run_pass
        self._interval_minutes = interval_minutes
        self._scheduler = scheduler if scheduler is not None else AsyncIOScheduler(timezone=UTC)
        self._state = SchedulerState.IDLE
        self._task: asyncio.Task | None = None
        self._pending = False
        self._started = False
        self._stopping = False
        self.passes_run = 0

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def interval_minutes(self) -> int:
        return self._interval_minutes

    @property
    def pending(self) -> bool:
        """Whether a follow-up pass is owed after the running one."""
        return self._pending

    def start(self, run_immediately: bool = True) -> None:
        """Start the interval timer. Must be called from a running event loop."""
        if self._state is SchedulerState.STOPPED:
            raise RuntimeError("Scheduler has been stopped")
        if self._started:
            return

        self._scheduler.add_job(
            self._on_tick,
            IntervalTrigger(minutes=self._interval_minutes, timezone=UTC),
            id=JOB_ID,
            replace_existing=True,
            coalesce=True,
            max_instances=1,
        )
        self._scheduler.start()
        self._started = True
        logger.info("Scheduler started, syncing every %d minutes", self._interval_minutes)

        if run_immediately:
            self.trigger("startup")

    def trigger(self, reason: str = "manual") -> bool:
        """Request a pass.

        Returns:
            True if a pass started now, False if the request was coalesced
            into the running pass or the scheduler is stopped
        """
        if self._state is SchedulerState.STOPPED or self._stopping:
            logger.debug("Ignoring %s trigger, scheduler is stopped", reason)
            return False

        if self._state is SchedulerState.RUNNING:
            self._pending = True
            logger.debug("Pass already running, %s trigger coalesced", reason)
            return False

        self._state = SchedulerState.RUNNING
        self._task = asyncio.get_running_loop().create_task(self._drive(reason))
        return True

    def set_interval(self, minutes: int) -> None:
        """Change the interval. The tick already scheduled is not moved."""
        if minutes < 1:
            raise ValueError("Refresh interval must be at least one minute")
        if minutes == self._interval_minutes:
            return

        self._interval_minutes = minutes
        if self._started and self._state is not SchedulerState.STOPPED:
            self._scheduler.modify_job(
                JOB_ID, trigger=IntervalTrigger(minutes=minutes, timezone=UTC)
            )
        logger.info("Refresh interval set to %d minutes", minutes)

    async def wait_idle(self) -> None:
        """Wait until no pass is running or owed."""
        while self._task is not None and not self._task.done():
            await asyncio.shield(self._task)

    async def stop(self) -> None:
        """Let the in-flight pass finish, then stop all further passes."""
        if self._state is SchedulerState.STOPPED:
            return

        self._stopping = True
        self._pending = False
        if self._started:
            self._scheduler.shutdown(wait=False)

        if self._task is not None and not self._task.done():
            await asyncio.shield(self._task)

        self._state = SchedulerState.STOPPED
        logger.info("Scheduler stopped after %d passes", self.passes_run)

    async def _on_tick(self) -> None:
        self.trigger("interval")

    async def _drive(self, reason: str) -> None:
        try:
            while True:
                self._pending = False
                logger.info("Sync pass starting (%s)", reason)
                try:
                    await self._run_pass()
                except Exception:
                    logger.exception("Sync pass failed")
                self.passes_run += 1

                if not self._pending or self._stopping:
                    break
                reason = "coalesced"
        finally:
            self._pending = False
            if self._state is SchedulerState.RUNNING:
                self._state = SchedulerState.IDLE
