"""
services/log_service.py

Responsibility: Writes failover audit entries to the database and reads them
back for the operator API. Also handles retention cleanup.
Does NOT: evaluate health, talk to the DNS provider, or read configuration.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from sqlmodel import Session, delete, select

from db.models import LogEntry
from services.outcome import EvaluationOutcome

logger = logging.getLogger(__name__)

# Audit action recorded for cycles that raised
ERROR_ACTION = "error"


class LogService:
    """
    Manages the failover audit trail stored in the LogEntry table.

    Every entry is also mirrored to Python logging so it reaches the
    container log stream; the table is what survives restarts.

    Collaborators:
        - Session: SQLModel DB session injected at construction time
    """

    def __init__(self, session: Session) -> None:
        """
        Initialises the log service with an active DB session.

        Args:
            session: An open SQLModel Session.
        """
        self._session = session

    # ---------------------------------------------------------------------------
    # Write operations
    # ---------------------------------------------------------------------------

    def log(self, message: str, level: str = "INFO", action: str = "") -> LogEntry:
        """
        Writes a single audit entry and mirrors it to Python logging.

        Args:
            message: The human-readable log message.
            level: Log severity string ("INFO", "WARNING", "ERROR").
            action: Cycle action the entry belongs to, or "" for lifecycle events.

        Returns:
            The persisted LogEntry instance.
        """
        entry = LogEntry(
            timestamp=datetime.now(timezone.utc).replace(tzinfo=None),
            level=level.upper(),
            action=action,
            message=message,
        )
        self._session.add(entry)
        self._session.commit()
        self._session.refresh(entry)

        logger.log(getattr(logging, level.upper(), logging.INFO), message)
        return entry

    def record_outcome(self, outcome: EvaluationOutcome) -> LogEntry:
        """
        Writes the audit entry for one failover cycle.

        Switches are logged at WARNING so they stand out in the container
        log; failures at ERROR; no-op cycles at INFO.

        Args:
            outcome: The outcome returned by FailoverService.

        Returns:
            The persisted LogEntry instance.
        """
        if outcome.error is not None:
            return self.log(outcome.describe(), level="ERROR", action=ERROR_ACTION)
        level = "WARNING" if outcome.switched else "INFO"
        return self.log(outcome.describe(), level=level, action=outcome.action.value)

    # ---------------------------------------------------------------------------
    # Read operations
    # ---------------------------------------------------------------------------

    def get_recent(self, limit: int = 100, action: str | None = None) -> list[LogEntry]:
        """
        Returns the audit tail, newest first, optionally for one cycle action.

        Entries written in the same second keep their insertion order through
        the id tiebreak.

        Args:
            limit: Maximum number of entries to return.
            action: E.g. "switched_to_secondary" or "error"; None for all.
        """
        statement = select(LogEntry)
        if action is not None:
            statement = statement.where(LogEntry.action == action)
        statement = statement.order_by(
            LogEntry.timestamp.desc(), LogEntry.id.desc()  # type: ignore[union-attr]
        ).limit(limit)
        return list(self._session.exec(statement).all())

    # ---------------------------------------------------------------------------
    # Retention
    # ---------------------------------------------------------------------------

    def prune(self, keep_days: int) -> int:
        """
        Drops audit entries written more than keep_days ago in one DELETE.

        Returns:
            The number of rows removed.
        """
        cutoff = datetime.now(timezone.utc).replace(tzinfo=None) - timedelta(days=keep_days)
        removed = self._purge(LogEntry.timestamp < cutoff)
        logger.info("Audit log retention: removed %d entries older than %d days.", removed, keep_days)
        return removed

    def clear(self) -> int:
        """Drops the whole audit trail and returns how many rows went."""
        removed = self._purge()
        logger.info("Audit log cleared: removed %d entries.", removed)
        return removed

    def _purge(self, *criteria) -> int:
        statement = delete(LogEntry)
        if criteria:
            statement = statement.where(*criteria)
        result = self._session.exec(statement)
        self._session.commit()
        return result.rowcount
