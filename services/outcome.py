"""
services/outcome.py

Responsibility: Defines the EvaluationOutcome value object produced once per
failover cycle and the FailoverAction enum it carries.
Does NOT: perform evaluations, persist anything, or log.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

from checkers.health_checker import HealthVerdict
from providers.gslb_provider import Target


class FailoverAction(str, enum.Enum):
    """What a cycle did to the managed record."""

    NOOP = "noop"
    SWITCHED_TO_PRIMARY = "switched_to_primary"
    SWITCHED_TO_SECONDARY = "switched_to_secondary"

    @classmethod
    def switch_to(cls, target: Target) -> FailoverAction:
        if target is Target.PRIMARY:
            return cls.SWITCHED_TO_PRIMARY
        return cls.SWITCHED_TO_SECONDARY


@dataclass(frozen=True)
class EvaluationOutcome:
    """
    Result of one failover cycle, used for logging and the status snapshot.

    error is set when the cycle aborted; in that case action is NOOP,
    verdict holds the health verdict if the check completed, and
    previous_ip/current_ip hold the address read before the failure (empty
    when the record could not be read).
    """

    action: FailoverAction
    desired: Target | None = None
    verdict: HealthVerdict | None = None

    # Address the provider served before the cycle acted
    previous_ip: str = ""

    # Address the provider serves after the cycle (the target IP on a switch)
    current_ip: str = ""

    error: Exception | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    @property
    def switched(self) -> bool:
        return self.error is None and self.action is not FailoverAction.NOOP

    def describe(self) -> str:
        """
        Returns a one-line, human-readable summary for the audit log.

        Returns:
            A message such as "Primary unhealthy (503 Service Unavailable);
            switched record 10.0.0.1 → 10.0.0.2."
        """
        health = ""
        if self.verdict is not None:
            state = "healthy" if self.verdict.healthy else "unhealthy"
            health = f"Primary {state} ({self.verdict.detail or 'no detail'}); "

        if self.error is not None:
            return f"{health}Failover cycle failed: {self.error}"
        if self.action is FailoverAction.NOOP:
            return f"{health}record already at {self.desired.value if self.desired else 'target'} ({self.current_ip})."
        return f"{health}switched record {self.previous_ip} → {self.current_ip}."
