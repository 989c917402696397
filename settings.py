"""
settings.py

Responsibility: Reads the process configuration from environment variables
once at startup and exposes it as an immutable Settings value.
Does NOT: open connections, create clients, or hold mutable state. Core
modules receive the values they need through their constructors and never
read the environment themselves.
"""

from __future__ import annotations

import ipaddress
import logging
import math
import os
from collections.abc import Mapping
from dataclasses import dataclass

from exceptions import ConfigurationError
from providers.gslb_provider import FailoverTargets

logger = logging.getLogger(__name__)

# Seconds between failover cycles
_DEFAULT_INTERVAL = 60

# Days of audit log kept by the daily cleanup job
_DEFAULT_RETENTION_DAYS = 7

_REQUIRED = (
    "GSLB_HOST",
    "GSLB_PRIMARY_IP",
    "GSLB_PRIMARY_CHECK",
    "GSLB_SECONDARY_IP",
    "OPNSENSE_HOST",
    "OPNSENSE_AUTH",
)

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Settings:
    """
    Immutable configuration for one switcher process.

    Build it with Settings.from_env(); tests construct it directly.
    """

    # Managed host override, "host" or "host.domain"
    gslb_host: str
    primary_ip: str
    primary_check_url: str
    secondary_ip: str

    # Firewall base URL and "key:secret" API credentials
    opnsense_host: str
    opnsense_auth: str
    opnsense_verify_tls: bool = True

    interval_seconds: float = _DEFAULT_INTERVAL
    log_retention_days: int = _DEFAULT_RETENTION_DAYS
    log_level: str = "INFO"

    @property
    def targets(self) -> FailoverTargets:
        return FailoverTargets(primary_ip=self.primary_ip, secondary_ip=self.secondary_ip)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """
        Builds Settings from environment variables.

        Args:
            environ: Mapping to read from; defaults to os.environ.

        Returns:
            A validated Settings instance.

        Raises:
            ConfigurationError: If a required variable is missing or a value
                cannot be parsed. The OPNsense credentials are never echoed.
        """
        env = os.environ if environ is None else environ

        def get(key: str, default: str = "") -> str:
            return env.get(key, default).strip()

        missing = [key for key in _REQUIRED if not get(key)]
        if missing:
            raise ConfigurationError(
                "missing required environment variables: " + ", ".join(missing)
            )

        for key in ("GSLB_PRIMARY_IP", "GSLB_SECONDARY_IP"):
            try:
                ipaddress.ip_address(get(key))
            except ValueError as exc:
                raise ConfigurationError(f"{key} is not a valid IP address: {get(key)!r}") from exc

        interval = _parse_number(get("GSLB_INTERVAL", str(_DEFAULT_INTERVAL)), "GSLB_INTERVAL", float)
        if not math.isfinite(interval) or interval <= 0:
            raise ConfigurationError("GSLB_INTERVAL must be a finite number greater than zero")

        retention = _parse_number(
            get("GSLB_LOG_RETENTION_DAYS", str(_DEFAULT_RETENTION_DAYS)),
            "GSLB_LOG_RETENTION_DAYS",
            int,
        )
        if retention < 0:
            raise ConfigurationError("GSLB_LOG_RETENTION_DAYS must not be negative")

        return cls(
            gslb_host=get("GSLB_HOST"),
            primary_ip=get("GSLB_PRIMARY_IP"),
            primary_check_url=get("GSLB_PRIMARY_CHECK"),
            secondary_ip=get("GSLB_SECONDARY_IP"),
            opnsense_host=get("OPNSENSE_HOST"),
            opnsense_auth=get("OPNSENSE_AUTH"),
            opnsense_verify_tls=_parse_bool(get("OPNSENSE_VERIFY_TLS", "true"), "OPNSENSE_VERIFY_TLS"),
            interval_seconds=interval,
            log_retention_days=retention,
            log_level=get("LOG_LEVEL", "INFO").upper() or "INFO",
        )

    def masked(self) -> dict[str, object]:
        """
        Returns the settings as a dict safe to log or serve over the API.

        Returns:
            A dict with the OPNsense credentials replaced by "masked".
        """
        return {
            "gslb_host": self.gslb_host,
            "primary_ip": self.primary_ip,
            "primary_check_url": self.primary_check_url,
            "secondary_ip": self.secondary_ip,
            "opnsense_host": self.opnsense_host,
            "opnsense_auth": "masked",
            "opnsense_verify_tls": self.opnsense_verify_tls,
            "interval_seconds": self.interval_seconds,
            "log_retention_days": self.log_retention_days,
        }


def _parse_bool(value: str, key: str) -> bool:
    lowered = value.lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"{key} must be a boolean, got {value!r}")


def _parse_number(value: str, key: str, kind: type) -> float | int:
    try:
        return kind(value)
    except ValueError as exc:
        raise ConfigurationError(f"{key} must be a number, got {value!r}") from exc
