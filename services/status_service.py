"""
services/status_service.py

Responsibility: Provides a business-level API for recording and reading the
latest failover cycle snapshot. Delegates all persistence to StatusRepository.
Does NOT: make HTTP calls, read configuration, or manage log entries.
"""

from __future__ import annotations

import logging

from db.models import FailoverStatus
from providers.gslb_provider import FailoverTargets
from repositories.status_repository import StatusRepository
from services.outcome import EvaluationOutcome

logger = logging.getLogger(__name__)


class StatusService:
    """
    Keeps the FailoverStatus row in step with each cycle's outcome.

    Collaborators:
        - StatusRepository: handles all database access for FailoverStatus
    """

    def __init__(self, status_repo: StatusRepository) -> None:
        """
        Initialises the service with a status repository.

        Args:
            status_repo: An initialised StatusRepository for the current session.
        """
        self._repo = status_repo

    async def record_outcome(
        self,
        outcome: EvaluationOutcome,
        targets: FailoverTargets,
    ) -> FailoverStatus:
        """
        Applies one cycle's outcome to the status snapshot.

        A failed cycle only bumps the failure counter; the last known verdict
        and address are left in place.

        Args:
            outcome: The outcome returned by FailoverService.
            targets: The configured addresses, used to label current_ip.

        Returns:
            The updated FailoverStatus instance.
        """
        if outcome.error is not None:
            logger.warning("Status: failure recorded (%s).", outcome.error)
            return self._repo.record_failure(str(outcome.error))

        if outcome.switched:
            self._repo.record_switch()

        target = targets.target_for(outcome.current_ip)
        verdict = outcome.verdict
        return self._repo.record_check(
            healthy=bool(verdict and verdict.healthy),
            detail=verdict.detail if verdict else "",
            current_ip=outcome.current_ip,
            active_target=target.value if target else "",
        )

    async def get_status(self) -> FailoverStatus:
        """
        Returns the current snapshot (an empty row before the first cycle).

        Returns:
            The FailoverStatus instance.
        """
        return self._repo.load()
