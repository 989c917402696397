"""
db/database.py

Responsibility: Owns the SQLite engine holding the failover status row and the
audit trail, and hands out sessions to the lifespan, the scheduler jobs and
the request handlers.
Does NOT: define table models, run queries, or contain business logic.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager

from sqlmodel import Session, SQLModel, create_engine

# Registers table metadata before create_all
import db.models  # noqa: F401

logger = logging.getLogger(__name__)

# Mounted volume in the container image; overridden by DB_PATH in tests
DB_PATH = os.getenv("DB_PATH", "/config/gslb.db")

# Scheduler jobs and request handlers run on different threads
engine = create_engine(
    f"sqlite:///{DB_PATH}",
    connect_args={"check_same_thread": False},
)


def init_db() -> None:
    """Creates the data directory and the status/audit tables if missing."""
    data_dir = os.path.dirname(DB_PATH)
    if data_dir:
        os.makedirs(data_dir, exist_ok=True)

    SQLModel.metadata.create_all(engine)
    logger.info("Status and audit tables ready in %s", DB_PATH)


@contextmanager
def session_scope() -> Iterator[Session]:
    """Short-lived session for work done outside a request (jobs, lifecycle audit)."""
    with Session(engine) as session:
        yield session


def request_session() -> Iterator[Session]:
    """
    FastAPI dependency: one session per request, closed once the response is sent.
    """
    with session_scope() as session:
        yield session
