"""
checkers/health_checker.py

Responsibility: Defines the HealthChecker Protocol and the HealthVerdict value object.
Does NOT: make HTTP calls or decide anything about DNS records.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class HealthVerdict:
    """
    Result of one health check of the primary endpoint.

    Produced fresh every cycle and never cached.
    """

    healthy: bool

    # Last HTTP status line ("200 OK") or transport error text
    detail: str


@runtime_checkable
class HealthChecker(Protocol):
    """
    Abstract protocol for probing the primary endpoint.

    An unreachable or failing target is a normal verdict, not an exception.
    Implementations raise only when they are misconfigured.
    """

    async def check_health(self) -> HealthVerdict:
        """
        Checks the target and returns a verdict.

        Returns:
            A HealthVerdict describing the last attempt.

        Raises:
            ConfigurationError: If the checker cannot check at all (e.g. a
                malformed URL).
        """
        ...
