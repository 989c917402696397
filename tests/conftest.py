"""
tests/conftest.py

Shared pytest fixtures used by both unit and integration test suites.
All DB fixtures use in-memory SQLite (StaticPool) and all HTTP fixtures
use respx.mock. The only real sockets are the loopback servers that the
slow-target checker tests start on 127.0.0.1. The provider
and checker fakes keep their state in memory so failover scenarios can be
replayed cycle by cycle.
"""

from __future__ import annotations

import os

import pytest
import respx
import httpx
from sqlmodel import SQLModel, Session, create_engine
from sqlmodel.pool import StaticPool

# NOTE: Models must be imported before SQLModel.metadata.create_all so that
# all table definitions are registered in the metadata before we call create_all.
import db.models  # noqa: F401

# ---------------------------------------------------------------------------
# Redirect the DB to /tmp for all test runs: never write to /config/gslb.db
# ---------------------------------------------------------------------------

os.environ.setdefault("DB_PATH", "/tmp/gslb_test.db")

from checkers.health_checker import HealthVerdict  # noqa: E402
from providers.gslb_provider import FailoverTargets, Target, same_ip  # noqa: E402

PRIMARY_IP = "192.0.2.10"
SECONDARY_IP = "198.51.100.20"


# ---------------------------------------------------------------------------
# In-memory fakes
# ---------------------------------------------------------------------------


class FakeProvider:
    """GslbProvider double that stores the record address in memory."""

    def __init__(self, targets: FailoverTargets, current_ip: str) -> None:
        self.targets = targets
        self.current_ip = current_ip
        self.writes: list[Target] = []
        self.read_error: Exception | None = None
        self.write_error: Exception | None = None

    async def get_current_ip(self) -> str:
        if self.read_error is not None:
            raise self.read_error
        return self.current_ip

    async def switch_to_primary_ip(self) -> None:
        await self._switch(Target.PRIMARY)

    async def switch_to_secondary_ip(self) -> None:
        await self._switch(Target.SECONDARY)

    async def _switch(self, target: Target) -> None:
        if self.write_error is not None:
            raise self.write_error
        ip = self.targets.ip_for(target)
        if same_ip(self.current_ip, ip):
            return
        self.writes.append(target)
        self.current_ip = ip


class FakeChecker:
    """HealthChecker double that replays a scripted list of verdicts."""

    def __init__(self, script: list[bool], error: Exception | None = None) -> None:
        self._script = list(script)
        self.error = error
        self.calls = 0

    async def check_health(self) -> HealthVerdict:
        self.calls += 1
        if self.error is not None:
            raise self.error
        healthy = self._script.pop(0)
        return HealthVerdict(healthy=healthy, detail="200 OK" if healthy else "503 Service Unavailable")


@pytest.fixture()
def targets() -> FailoverTargets:
    """The primary/secondary pair shared by the failover tests."""
    return FailoverTargets(primary_ip=PRIMARY_IP, secondary_ip=SECONDARY_IP)


@pytest.fixture()
def make_provider(targets):
    """Factory for FakeProvider instances starting at a given address."""

    def _make(current_ip: str = PRIMARY_IP) -> FakeProvider:
        return FakeProvider(targets, current_ip)

    return _make


@pytest.fixture()
def make_checker():
    """Factory for FakeChecker instances replaying a verdict script."""

    def _make(*script: bool, error: Exception | None = None) -> FakeChecker:
        return FakeChecker(list(script), error=error)

    return _make


# ---------------------------------------------------------------------------
# Database fixture: in-memory SQLite, isolated per test
# ---------------------------------------------------------------------------


@pytest.fixture(name="db_session")
def db_session_fixture():
    """
    Yields a fresh in-memory SQLite session for each test.

    Tables are created before the test and dropped after, ensuring full
    isolation between tests. Never touches the real /config/gslb.db file.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session
    SQLModel.metadata.drop_all(engine)


# ---------------------------------------------------------------------------
# HTTP mock fixture: intercepts all httpx calls
# ---------------------------------------------------------------------------


@pytest.fixture()
def mock_http():
    """
    Yields a respx router that intercepts all httpx.AsyncClient calls.

    No real network traffic is allowed during tests. Use this fixture
    wherever a checker or provider would normally make an outbound request.
    """
    with respx.mock(assert_all_called=False) as router:
        yield router


# ---------------------------------------------------------------------------
# Shared httpx.AsyncClient fixture
# ---------------------------------------------------------------------------


@pytest.fixture()
async def http_client():
    """
    Yields a real httpx.AsyncClient instance for use in tests.

    Pair with the mock_http fixture so all requests are intercepted by respx.
    The client is closed after each test.
    """
    async with httpx.AsyncClient() as client:
        yield client
