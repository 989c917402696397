"""
exceptions.py

Responsibility: Defines all custom exception classes used across the application.
Does NOT: contain business logic, logging, or HTTP handling.
"""

from __future__ import annotations


class GslbError(Exception):
    """
    Base class for every error raised by a failover cycle.

    FailoverService catches this type and records the cycle as failed.
    FailoverEvaluator fills verdict and previous_ip with whatever the cycle
    observed before the failure, so the failed outcome can still report it.
    """

    verdict = None
    previous_ip = ""


class ConfigurationError(GslbError):
    """
    Raised when the switcher itself is misconfigured, as opposed to the
    primary being unhealthy.

    Examples: missing environment variables at startup, a malformed
    health-check URL, or a host override whose state cannot be interpreted.
    """


class InvalidCheckUrlError(ConfigurationError):
    """
    Raised by HttpHealthChecker before any network attempt when the target
    URL is not an absolute http(s) URL.
    """


class RecordStateError(ConfigurationError):
    """
    Raised by a GslbProvider when the managed record is ambiguous or
    incomplete: no matching record, several matching records, no A/AAAA
    resource record selected, or a selected record with no address.

    The record may be mid-edit externally, so a cycle that hits this is
    retried on the next tick rather than stopping the process.
    """


class ProviderError(GslbError):
    """
    Raised by any GslbProvider implementation when a call to the DNS
    backend fails (transport error, non-2xx status, rejected change).
    """
