"""
routes/action_routes.py

Responsibility: POST handlers that trigger work on demand. Responses are JSON.
Does NOT: decide failover, call the DNS provider directly, or manage DB
sessions for the cycle itself.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends

from dependencies import get_failover_scheduler, get_log_service
from scheduler import FailoverScheduler
from services.log_service import LogService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


# ---------------------------------------------------------------------------
# Failover
# ---------------------------------------------------------------------------


@router.post("/evaluate")
async def evaluate_now(
    scheduler: FailoverScheduler = Depends(get_failover_scheduler),
) -> dict[str, Any]:
    """
    Runs one failover cycle immediately and returns its outcome.

    The cycle waits for any scheduled cycle in flight, so the two never
    overlap. A failed cycle is reported in the body, not as an HTTP error.

    Args:
        scheduler: The running FailoverScheduler from app.state.

    Returns:
        A dict with "action", "succeeded", "healthy", "previous_ip",
        "current_ip", "error" and "message" keys.
    """
    logger.info("Manual failover cycle requested.")
    outcome = await scheduler.run_now()
    return {
        "action": outcome.action.value,
        "succeeded": outcome.succeeded,
        "healthy": outcome.verdict.healthy if outcome.verdict else None,
        "previous_ip": outcome.previous_ip,
        "current_ip": outcome.current_ip,
        "error": str(outcome.error) if outcome.error is not None else None,
        "message": outcome.describe(),
    }


# ---------------------------------------------------------------------------
# Logs
# ---------------------------------------------------------------------------


@router.post("/clear-logs")
async def clear_logs(
    log_service: LogService = Depends(get_log_service),
) -> dict[str, int]:
    """
    Deletes all audit entries and records that the log was cleared.

    Args:
        log_service: Deletes all log entries.

    Returns:
        A dict with the number of deleted entries under "deleted".
    """
    deleted = log_service.clear()
    log_service.log("Logs cleared.", level="INFO")
    return {"deleted": deleted}
