"""
scheduler.py

Responsibility: Drives the failover cycle on a fixed interval with APScheduler's
AsyncIOScheduler, serializes cycles, and runs the daily audit log cleanup.
Exposes start/stop/run helpers and the job functions wired up by app.py.
Does NOT: contain failover decision logic, HTTP calls, or configuration reading
— those are delegated to FailoverService and its collaborators.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Any

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from db.database import session_scope
from providers.gslb_provider import FailoverTargets
from repositories.status_repository import StatusRepository
from services.failover_service import FailoverEvaluator, FailoverService
from services.log_service import LogService
from services.outcome import EvaluationOutcome
from services.status_service import StatusService

logger = logging.getLogger(__name__)

# Job IDs used to identify the jobs in APScheduler
_JOB_ID = "gslb_failover"
_CLEANUP_JOB_ID = "audit_log_cleanup"

# Hours between audit log cleanup runs
_CLEANUP_INTERVAL_HOURS = 24


# ---------------------------------------------------------------------------
# Scheduler jobs
# ---------------------------------------------------------------------------


async def failover_cycle_job(evaluator: FailoverEvaluator, targets: FailoverTargets) -> EvaluationOutcome:
    """
    Runs one failover cycle with a fresh DB session.

    The session only backs the status snapshot and the audit log; the
    decision itself reads the live record from the provider every time.

    Args:
        evaluator: The long-lived evaluator built at startup.
        targets: The configured primary/secondary addresses.

    Returns:
        The cycle's EvaluationOutcome.
    """
    with session_scope() as session:
        service = FailoverService(
            evaluator,
            targets,
            StatusService(StatusRepository(session)),
            LogService(session),
        )
        return await service.run_cycle()


def audit_log_cleanup_job(days_to_keep: int) -> int:
    """
    Deletes audit entries older than days_to_keep days.

    Args:
        days_to_keep: Retention period in days.

    Returns:
        The number of entries deleted.
    """
    with session_scope() as session:
        return LogService(session).prune(keep_days=days_to_keep)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


class FailoverScheduler:
    """
    Ticks the failover cycle every interval until stopped.

    Cadence is fixed from tick to tick, not from the end of the previous
    cycle, and the first tick fires one interval after start(). A cycle lock
    guarantees that scheduled and manual cycles never overlap; a tick that
    comes due while a cycle is still running is skipped by APScheduler
    (max_instances=1). An exception from a cycle is logged and the next tick
    proceeds as usual.

    Collaborators:
        - AsyncIOScheduler: owns the timers; created on start() inside the loop
        - run_cycle: coroutine function performing one cycle
        - cleanup: optional sync callable pruning the audit log
    """

    def __init__(
        self,
        run_cycle: Callable[[], Awaitable[EvaluationOutcome]],
        interval_seconds: float,
        cleanup: Callable[[], Any] | None = None,
    ) -> None:
        """
        Initialises the scheduler without starting any timers.

        Args:
            run_cycle: Coroutine function that runs one failover cycle.
            interval_seconds: Seconds between ticks; must be positive.
            cleanup: Optional callable run at startup and then daily.
        """
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._run_cycle = run_cycle
        self.interval_seconds = interval_seconds
        self._cleanup = cleanup
        self._lock = asyncio.Lock()
        self._scheduler: AsyncIOScheduler | None = None
        self._stopping = False

    @property
    def running(self) -> bool:
        return self._scheduler is not None

    def start(self) -> None:
        """
        Registers the jobs and starts the scheduler on the running event loop.

        Must be called from inside a coroutine.
        """
        if self._scheduler is not None:
            return

        self._stopping = False
        scheduler = AsyncIOScheduler(event_loop=asyncio.get_running_loop())
        scheduler.add_job(
            self._tick,
            trigger="interval",
            seconds=self.interval_seconds,
            id=_JOB_ID,
            max_instances=1,  # Never overlap cycles
            coalesce=True,
        )
        if self._cleanup is not None:
            scheduler.add_job(
                self._cleanup,
                trigger="interval",
                hours=_CLEANUP_INTERVAL_HOURS,
                id=_CLEANUP_JOB_ID,
                # NOTE: prune once at startup, then daily.
                next_run_time=datetime.now(timezone.utc),
                max_instances=1,
            )
        scheduler.start()
        self._scheduler = scheduler
        logger.info("GSLB failover job scheduled — interval: %ss.", self.interval_seconds)

    async def stop(self) -> None:
        """
        Removes the jobs, waits for an in-flight cycle to finish, and shuts down.

        An in-flight cycle is not interrupted; cancellation takes effect
        between cycles.
        """
        scheduler = self._scheduler
        if scheduler is None:
            return

        self._stopping = True
        scheduler.remove_all_jobs()
        async with self._lock:
            scheduler.shutdown(wait=False)
        self._scheduler = None
        logger.info("GSLB failover job stopped.")

    async def run(self, stop: asyncio.Future[Any]) -> Any:
        """
        Runs cycles until the stop future resolves, then returns its result.

        Args:
            stop: Future whose result is the reason for stopping
                  (e.g. "SIGTERM" or "application shutdown").

        Returns:
            The stop future's result.
        """
        self.start()
        try:
            reason = await stop
        finally:
            await self.stop()
        logger.info("Failover loop finished: %s", reason)
        return reason

    async def run_now(self) -> EvaluationOutcome:
        """
        Runs one cycle immediately, serialized with the scheduled ones.

        Returns:
            The cycle's EvaluationOutcome.
        """
        async with self._lock:
            return await self._run_cycle()

    def seconds_until_next_run(self) -> float | None:
        """
        Returns the seconds left until the next scheduled tick.

        Returns:
            A non-negative number, or None when the scheduler is not running.
        """
        if self._scheduler is None:
            return None
        job = self._scheduler.get_job(_JOB_ID)
        if job is None or job.next_run_time is None:
            return None
        delta = job.next_run_time - datetime.now(timezone.utc)
        return max(0.0, delta.total_seconds())

    # ---------------------------------------------------------------------------
    # Internal helpers
    # ---------------------------------------------------------------------------

    async def _tick(self) -> None:
        async with self._lock:
            if self._stopping:
                return
            try:
                await self._run_cycle()
            except Exception:
                logger.exception("Failover cycle crashed; continuing with the next tick.")
