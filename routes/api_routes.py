"""
routes/api_routes.py

Responsibility: Read-only JSON endpoints for operators and monitoring: current
failover status, the audit log tail, and a JSON health endpoint.
Does NOT: mutate state, run failover cycles, or call the DNS provider.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, Query

from db.models import FailoverStatus, LogEntry
from dependencies import get_failover_scheduler, get_log_service, get_settings, get_status_service
from scheduler import FailoverScheduler
from services.log_service import LogService
from services.status_service import StatusService
from settings import Settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


def _status_payload(status: FailoverStatus) -> dict[str, Any]:
    return {
        "last_checked": status.last_checked.isoformat() if status.last_checked else None,
        "last_healthy": status.last_healthy,
        "last_detail": status.last_detail,
        "current_ip": status.current_ip,
        "active_target": status.active_target,
        "last_switched": status.last_switched.isoformat() if status.last_switched else None,
        "switches": status.switches,
        "failures": status.failures,
        "last_error": status.last_error,
    }


def _log_payload(entry: LogEntry) -> dict[str, Any]:
    return {
        "timestamp": entry.timestamp.isoformat(),
        "level": entry.level,
        "action": entry.action,
        "message": entry.message,
    }


@router.get("/status")
async def get_status(
    settings: Settings = Depends(get_settings),
    scheduler: FailoverScheduler = Depends(get_failover_scheduler),
    status_service: StatusService = Depends(get_status_service),
) -> dict[str, Any]:
    """
    Returns the latest cycle snapshot together with the configured targets.

    Args:
        settings: Provides the managed host, addresses and interval.
        scheduler: Provides the live time until the next tick.
        status_service: Provides the FailoverStatus snapshot.

    Returns:
        A dict with "host", "primary_ip", "secondary_ip", "interval",
        "next_check_in" (seconds, or None when stopped) and "status".
    """
    status = await status_service.get_status()
    next_in = scheduler.seconds_until_next_run()
    return {
        "host": settings.gslb_host,
        "primary_ip": settings.primary_ip,
        "secondary_ip": settings.secondary_ip,
        "interval": settings.interval_seconds,
        "next_check_in": int(next_in) if next_in is not None else None,
        "status": _status_payload(status),
    }


@router.get("/logs/recent")
async def get_recent_logs(
    limit: int = Query(50, ge=1, le=500),
    action: str = Query(""),
    log_service: LogService = Depends(get_log_service),
) -> list[dict[str, Any]]:
    """
    Returns recent audit entries, newest first.

    Args:
        limit: Maximum number of entries (1-500).
        action: Optional cycle action filter, e.g. "switched_to_secondary".
        log_service: Provides audit entries from the DB.

    Returns:
        A list of entry dicts with timestamp, level, action and message.
    """
    entries = log_service.get_recent(limit=limit, action=action or None)
    return [_log_payload(entry) for entry in entries]


@router.get("/health/json")
async def health_json() -> dict:
    """
    Returns application health as a JSON response.

    Returns:
        A dict with a "status" key set to "ok".
    """
    return {"status": "ok"}
