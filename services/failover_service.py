"""
services/failover_service.py

Responsibility: Decides, once per cycle, whether the managed record must move
between the primary and secondary address, issues at most one switch, and
records the outcome.
Does NOT: make HTTP calls directly, read configuration, or schedule cycles.
"""

from __future__ import annotations

import logging

from checkers.health_checker import HealthChecker
from exceptions import GslbError
from providers.gslb_provider import FailoverTargets, GslbProvider, Target, same_ip
from services.log_service import LogService
from services.outcome import EvaluationOutcome, FailoverAction
from services.status_service import StatusService

logger = logging.getLogger(__name__)


class FailoverEvaluator:
    """
    Reconciles the primary's health with the record the provider serves.

    Desired target is the primary when healthy, otherwise the secondary.
    A switch is issued only when the provider's address differs from the
    desired one, so repeated cycles in a stable state never write.

    Collaborators:
        - HealthChecker: produces a fresh verdict every cycle
        - GslbProvider: source of truth for the record; read then maybe written
    """

    def __init__(
        self,
        checker: HealthChecker,
        provider: GslbProvider,
        targets: FailoverTargets,
    ) -> None:
        """
        Initialises the evaluator with its collaborators.

        Args:
            checker: Health checker for the primary endpoint.
            provider: The DNS backend serving the managed record.
            targets: The configured primary/secondary addresses.
        """
        self._checker = checker
        self._provider = provider
        self._targets = targets

    async def evaluate(self) -> EvaluationOutcome:
        """
        Runs one evaluation: check health, read the record, switch if needed.

        No retries happen here; a failed cycle is retried by the next tick.

        Returns:
            The EvaluationOutcome of a completed cycle (error is None).

        Raises:
            ConfigurationError: If the checker is misconfigured or the record
                state cannot be interpreted. No switch is attempted after a
                checker error.
            ProviderError: If reading or writing the record fails.

            A provider-side error carries the verdict and the address read
            before the failure in its verdict and previous_ip attributes.
        """
        verdict = await self._checker.check_health()
        current_ip = ""
        try:
            current_ip = await self._provider.get_current_ip()

            desired = Target.PRIMARY if verdict.healthy else Target.SECONDARY
            desired_ip = self._targets.ip_for(desired)

            if same_ip(current_ip, desired_ip):
                return EvaluationOutcome(
                    action=FailoverAction.NOOP,
                    desired=desired,
                    verdict=verdict,
                    previous_ip=current_ip,
                    current_ip=current_ip,
                )

            if desired is Target.PRIMARY:
                await self._provider.switch_to_primary_ip()
            else:
                await self._provider.switch_to_secondary_ip()
        except GslbError as exc:
            exc.verdict = verdict
            exc.previous_ip = current_ip
            raise

        logger.info("Switched GSLB record to %s IP: %s", desired.value, desired_ip)
        return EvaluationOutcome(
            action=FailoverAction.switch_to(desired),
            desired=desired,
            verdict=verdict,
            previous_ip=current_ip,
            current_ip=desired_ip,
        )


class FailoverService:
    """
    Runs one failover cycle end to end and makes its outcome observable.

    Wraps FailoverEvaluator so that a cycle error becomes an outcome rather
    than an exception, then records it in the status snapshot and the audit
    log.

    Collaborators:
        - FailoverEvaluator: performs the decision and the switch
        - StatusService: keeps the latest-cycle snapshot
        - LogService: writes the audit entry for the cycle
    """

    def __init__(
        self,
        evaluator: FailoverEvaluator,
        targets: FailoverTargets,
        status_service: StatusService,
        log_service: LogService,
    ) -> None:
        self._evaluator = evaluator
        self._targets = targets
        self._status = status_service
        self._log = log_service

    async def run_cycle(self) -> EvaluationOutcome:
        """
        Evaluates once and records the outcome, never raising GslbError.

        Returns:
            The EvaluationOutcome; on failure its error field is set.
        """
        try:
            outcome = await self._evaluator.evaluate()
        except GslbError as exc:
            logger.error("Error during GSLB evaluation: %s", exc)
            outcome = EvaluationOutcome(
                action=FailoverAction.NOOP,
                verdict=exc.verdict,
                previous_ip=exc.previous_ip,
                current_ip=exc.previous_ip,
                error=exc,
            )

        await self._status.record_outcome(outcome, self._targets)
        self._log.record_outcome(outcome)
        return outcome
