"""
dependencies.py

Responsibility: Declares all FastAPI Depends() provider functions for
services, repositories and app-level singletons used by the routes.
Does NOT: contain business logic, HTTP handlers, or DB schema definitions.
"""

from __future__ import annotations

from fastapi import Depends, Request
from sqlmodel import Session

from db.database import request_session
from repositories.status_repository import StatusRepository
from scheduler import FailoverScheduler
from services.log_service import LogService
from services.status_service import StatusService
from settings import Settings

# ---------------------------------------------------------------------------
# Infrastructure: shared app-level resources
# ---------------------------------------------------------------------------


def get_settings(request: Request) -> Settings:
    """
    Returns the immutable Settings loaded during the FastAPI lifespan.

    Args:
        request: The current FastAPI Request (injected automatically).

    Returns:
        The application Settings.
    """
    return request.app.state.settings


def get_failover_scheduler(request: Request) -> FailoverScheduler:
    """
    Returns the running FailoverScheduler stored on app.state.

    Manual cycles go through it so they share the scheduled cycles' lock.

    Args:
        request: The current FastAPI Request (injected automatically).

    Returns:
        The application-level FailoverScheduler.
    """
    return request.app.state.scheduler


# ---------------------------------------------------------------------------
# Repository providers
# ---------------------------------------------------------------------------


def get_status_repo(session: Session = Depends(request_session)) -> StatusRepository:
    """
    Provides a StatusRepository for the current request's DB session.

    Args:
        session: The DB session injected by request_session.

    Returns:
        A StatusRepository instance.
    """
    return StatusRepository(session)


# ---------------------------------------------------------------------------
# Service providers
# ---------------------------------------------------------------------------


def get_status_service(
    status_repo: StatusRepository = Depends(get_status_repo),
) -> StatusService:
    """
    Provides a StatusService backed by the current request's DB session.

    Args:
        status_repo: The repository injected by get_status_repo.

    Returns:
        A StatusService instance.
    """
    return StatusService(status_repo)


def get_log_service(session: Session = Depends(request_session)) -> LogService:
    """
    Provides a LogService backed by the current request's DB session.

    Args:
        session: The DB session injected by request_session.

    Returns:
        A LogService instance.
    """
    return LogService(session)
