"""
repositories/status_repository.py

Responsibility: Provides low-level read/write access to the single
FailoverStatus row in SQLite via SQLModel.
Does NOT: contain business logic, health checks, or provider calls.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlmodel import Session, select

from db.models import FailoverStatus

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class StatusRepository:
    """
    Manages persistence of the latest failover cycle snapshot.

    Collaborators:
        - Session: SQLModel DB session injected at construction time
    """

    def __init__(self, session: Session) -> None:
        """
        Initialises the repository with an active DB session.

        Args:
            session: An open SQLModel Session.
        """
        self._session = session

    # ---------------------------------------------------------------------------
    # Public API
    # ---------------------------------------------------------------------------

    def load(self) -> FailoverStatus:
        """
        Returns the FailoverStatus row, creating an empty one if absent.

        Returns:
            The FailoverStatus ORM instance (never None).
        """
        status = self._session.exec(select(FailoverStatus)).first()
        if status is None:
            logger.debug("No FailoverStatus row found — creating one.")
            status = FailoverStatus()
            status = self.save(status)
        return status

    def save(self, status: FailoverStatus) -> FailoverStatus:
        """
        Persists the FailoverStatus instance.

        Args:
            status: The instance to save.

        Returns:
            The refreshed instance after commit.
        """
        self._session.add(status)
        self._session.commit()
        self._session.refresh(status)
        return status

    def record_check(
        self,
        healthy: bool,
        detail: str,
        current_ip: str,
        active_target: str,
    ) -> FailoverStatus:
        """
        Stores the verdict and record state of a successful cycle.

        Also clears last_error, since the cycle completed.

        Args:
            healthy: The health verdict of the primary.
            detail: Status line or transport error text of the last check attempt.
            current_ip: Address the provider serves after the cycle.
            active_target: "primary", "secondary", or "".

        Returns:
            The updated FailoverStatus instance.
        """
        status = self.load()
        status.last_checked = _now()
        status.last_healthy = healthy
        status.last_detail = detail
        status.current_ip = current_ip
        status.active_target = active_target
        status.last_error = ""
        return self.save(status)

    def record_switch(self) -> FailoverStatus:
        """
        Increments the switch counter and stamps last_switched.

        Returns:
            The updated FailoverStatus instance.
        """
        status = self.load()
        status.switches += 1
        status.last_switched = _now()
        return self.save(status)

    def record_failure(self, error: str) -> FailoverStatus:
        """
        Increments the failure counter and stores the error text.

        Args:
            error: Human-readable description of the failed cycle.

        Returns:
            The updated FailoverStatus instance.
        """
        status = self.load()
        status.last_checked = _now()
        status.failures += 1
        status.last_error = error
        return self.save(status)
