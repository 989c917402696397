"""
db/models.py

Responsibility: Defines all SQLModel table models used by the application.
Does NOT: contain business logic, repositories, or session management.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlmodel import Field, SQLModel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


# ---------------------------------------------------------------------------
# FailoverStatus: single-row snapshot of the latest cycle
# ---------------------------------------------------------------------------


class FailoverStatus(SQLModel, table=True):
    """
    Holds the outcome of the most recent failover cycle.

    Only one row is expected; it is overwritten by StatusRepository after
    every cycle. Nothing here is read back by the failover logic, which
    always asks the provider for the live record state.
    """

    id: Optional[int] = Field(default=None, primary_key=True)

    last_checked: Optional[datetime] = Field(default=None)

    # Latest health verdict; None until the first successful check
    last_healthy: Optional[bool] = Field(default=None)
    last_detail: str = Field(default="")

    # Address the provider served at the end of the latest successful cycle
    current_ip: str = Field(default="")

    # "primary", "secondary", or "" when the address is neither
    active_target: str = Field(default="")

    last_switched: Optional[datetime] = Field(default=None)

    # Cumulative counters since the database was created
    switches: int = Field(default=0)
    failures: int = Field(default=0)

    # Error text of the latest failed cycle; cleared by the next successful one
    last_error: str = Field(default="")


# ---------------------------------------------------------------------------
# LogEntry: failover audit trail
# ---------------------------------------------------------------------------


class LogEntry(SQLModel, table=True):
    """
    One line of the failover audit log.

    Written by LogService once per cycle (plus lifecycle events) so an
    operator can reconstruct when the record moved and why.
    """

    id: Optional[int] = Field(default=None, primary_key=True)

    timestamp: datetime = Field(default_factory=_utcnow, index=True)
    level: str = Field(default="INFO")

    # Cycle action ("noop", "switched_to_primary", "switched_to_secondary",
    # "error"); empty for lifecycle messages
    action: str = Field(default="", index=True)

    message: str = Field(default="")
