"""
providers/gslb_provider.py

Responsibility: Defines the GslbProvider Protocol, the FailoverTargets value
object, and the semantic IP comparison shared by the evaluator and providers.
Does NOT: make HTTP calls, access the database, or implement any provider logic.
"""

from __future__ import annotations

import enum
import ipaddress
from dataclasses import dataclass
from typing import Protocol, runtime_checkable


# ---------------------------------------------------------------------------
# Value objects
# ---------------------------------------------------------------------------


class Target(str, enum.Enum):
    """Which side of the service pair the managed record should point at."""

    PRIMARY = "primary"
    SECONDARY = "secondary"


@dataclass(frozen=True)
class FailoverTargets:
    """
    The primary and secondary addresses of the service pair.

    Configured once at startup and never mutated afterwards.
    """

    primary_ip: str
    secondary_ip: str

    def ip_for(self, target: Target) -> str:
        """
        Returns the configured address for the given side.

        Args:
            target: Target.PRIMARY or Target.SECONDARY.

        Returns:
            The IP address string configured for that side.
        """
        if target is Target.PRIMARY:
            return self.primary_ip
        return self.secondary_ip

    def target_for(self, ip: str) -> Target | None:
        """
        Maps an address served by the provider back to a side, if it is one
        of ours.

        Args:
            ip: An address as read from the provider.

        Returns:
            The matching Target, or None for an unknown/unparsable address.
        """
        if same_ip(ip, self.primary_ip):
            return Target.PRIMARY
        if same_ip(ip, self.secondary_ip):
            return Target.SECONDARY
        return None


def _parse_ip(value: str) -> ipaddress.IPv4Address | ipaddress.IPv6Address | None:
    try:
        addr = ipaddress.ip_address(value)
    except ValueError:
        return None
    # NOTE: "::ffff:10.0.0.1" and "10.0.0.1" name the same host.
    if isinstance(addr, ipaddress.IPv6Address) and addr.ipv4_mapped is not None:
        return addr.ipv4_mapped
    return addr


def same_ip(left: str, right: str) -> bool:
    """
    Compares two addresses by value rather than by spelling.

    "2001:0DB8::1" and "2001:db8::1" are equal. If either side does not parse
    as an IP address the result is False, which forces a switch attempt.

    Args:
        left: First address string.
        right: Second address string.

    Returns:
        True if both parse and denote the same address.
    """
    left_addr = _parse_ip(left)
    right_addr = _parse_ip(right)
    if left_addr is None or right_addr is None:
        return False
    return left_addr == right_addr


# ---------------------------------------------------------------------------
# Abstract interface: all GSLB backends must implement this contract
# ---------------------------------------------------------------------------


@runtime_checkable
class GslbProvider(Protocol):
    """
    Abstract protocol for the DNS backend that serves the managed record.

    FailoverService depends on this abstraction only. A firewall resolver,
    a cloud DNS API, or a zone file editor can all satisfy it with the same
    three operations.
    """

    async def get_current_ip(self) -> str:
        """
        Returns the address the managed record currently resolves to.

        Returns:
            The IP address string served by the provider.

        Raises:
            RecordStateError: If the record is ambiguous or incomplete.
            ProviderError: If the backend cannot be read.
        """
        ...

    async def switch_to_primary_ip(self) -> None:
        """
        Points the managed record at the primary address.

        Raises:
            RecordStateError: If the record is ambiguous or incomplete.
            ProviderError: If the change is rejected or cannot be sent.
        """
        ...

    async def switch_to_secondary_ip(self) -> None:
        """
        Points the managed record at the secondary address.

        Raises:
            RecordStateError: If the record is ambiguous or incomplete.
            ProviderError: If the change is rejected or cannot be sent.
        """
        ...
