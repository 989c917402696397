"""
tests/unit/test_failover_service.py

Unit tests for services/failover_service.py.
The evaluator runs against in-memory provider/checker fakes from conftest.py;
FailoverService additionally uses the in-memory DB session for status and logs.
"""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from checkers.health_checker import HealthVerdict
from exceptions import InvalidCheckUrlError, ProviderError, RecordStateError
from providers.gslb_provider import FailoverTargets, Target
from repositories.status_repository import StatusRepository
from services.failover_service import FailoverEvaluator, FailoverService
from services.log_service import ERROR_ACTION, LogService
from services.outcome import FailoverAction
from services.status_service import StatusService

# Must match the targets fixture in conftest.py
PRIMARY_IP = "192.0.2.10"
SECONDARY_IP = "198.51.100.20"


def _make_failover_service(db_session, evaluator, targets):
    return FailoverService(
        evaluator,
        targets,
        StatusService(StatusRepository(db_session)),
        LogService(db_session),
    )


# ---------------------------------------------------------------------------
# Decision table
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("healthy", "start_ip", "expected_action", "expected_ip"),
    [
        (True, PRIMARY_IP, FailoverAction.NOOP, PRIMARY_IP),
        (True, SECONDARY_IP, FailoverAction.SWITCHED_TO_PRIMARY, PRIMARY_IP),
        (False, SECONDARY_IP, FailoverAction.NOOP, SECONDARY_IP),
        (False, PRIMARY_IP, FailoverAction.SWITCHED_TO_SECONDARY, SECONDARY_IP),
        (True, "203.0.113.99", FailoverAction.SWITCHED_TO_PRIMARY, PRIMARY_IP),
        (False, "203.0.113.99", FailoverAction.SWITCHED_TO_SECONDARY, SECONDARY_IP),
    ],
)
async def test_evaluate_decision_table(
    make_provider, make_checker, targets, healthy, start_ip, expected_action, expected_ip
):
    """The record must follow the primary's health, switching only on mismatch."""
    provider = make_provider(start_ip)
    evaluator = FailoverEvaluator(make_checker(healthy), provider, targets)

    outcome = await evaluator.evaluate()

    assert outcome.action is expected_action
    assert outcome.previous_ip == start_ip
    assert outcome.current_ip == expected_ip
    assert provider.current_ip == expected_ip
    assert len(provider.writes) == (0 if expected_action is FailoverAction.NOOP else 1)


@pytest.mark.asyncio
async def test_evaluate_is_idempotent(make_provider, make_checker, targets):
    """Evaluating twice in a stable state must not write on the second run."""
    provider = make_provider(PRIMARY_IP)
    evaluator = FailoverEvaluator(make_checker(False, False), provider, targets)

    first = await evaluator.evaluate()
    second = await evaluator.evaluate()

    assert first.action is FailoverAction.SWITCHED_TO_SECONDARY
    assert second.action is FailoverAction.NOOP
    assert provider.writes == [Target.SECONDARY]


@pytest.mark.asyncio
async def test_evaluate_compares_addresses_semantically(make_checker):
    """Differently written forms of the same IPv6 address must not trigger a switch."""
    targets = FailoverTargets(primary_ip="2001:db8::1", secondary_ip="2001:db8::2")
    provider = AsyncMock()
    provider.get_current_ip.return_value = "2001:0DB8::1"
    evaluator = FailoverEvaluator(make_checker(True), provider, targets)

    outcome = await evaluator.evaluate()

    assert outcome.action is FailoverAction.NOOP
    provider.switch_to_primary_ip.assert_not_called()
    provider.switch_to_secondary_ip.assert_not_called()


@pytest.mark.asyncio
async def test_evaluate_switches_when_current_address_unparsable(make_checker, targets):
    """An address that does not parse never equals a target, so a switch is issued."""
    provider = AsyncMock()
    provider.get_current_ip.return_value = "not-an-ip"
    evaluator = FailoverEvaluator(make_checker(True), provider, targets)

    outcome = await evaluator.evaluate()

    assert outcome.action is FailoverAction.SWITCHED_TO_PRIMARY
    provider.switch_to_primary_ip.assert_awaited_once()


@pytest.mark.asyncio
async def test_evaluate_checks_health_every_cycle(make_provider, make_checker, targets):
    """The checker must run on every cycle, including no-op cycles."""
    checker = make_checker(True, True, True)
    evaluator = FailoverEvaluator(checker, make_provider(PRIMARY_IP), targets)

    for _ in range(3):
        await evaluator.evaluate()

    assert checker.calls == 3


# ---------------------------------------------------------------------------
# Error propagation
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_provider_read_failure_propagates_without_writes(make_provider, make_checker, targets):
    """When reading the record fails, the error propagates and nothing is written."""
    provider = make_provider(PRIMARY_IP)
    provider.read_error = ProviderError("getHostOverride request failed: 500 Internal Server Error")
    evaluator = FailoverEvaluator(make_checker(False), provider, targets)

    with pytest.raises(ProviderError):
        await evaluator.evaluate()

    assert provider.writes == []


@pytest.mark.asyncio
async def test_ambiguous_record_propagates(make_provider, make_checker, targets):
    """A RecordStateError from the provider aborts the cycle."""
    provider = make_provider(PRIMARY_IP)
    provider.read_error = RecordStateError("host override record has no A or AAAA record selected")
    evaluator = FailoverEvaluator(make_checker(True), provider, targets)

    with pytest.raises(RecordStateError):
        await evaluator.evaluate()


@pytest.mark.asyncio
async def test_checker_error_prevents_switch(make_checker, targets):
    """A checker configuration error must abort before the provider is touched."""
    provider = AsyncMock()
    checker = make_checker(error=InvalidCheckUrlError("invalid health check URL 'x'"))
    evaluator = FailoverEvaluator(checker, provider, targets)

    with pytest.raises(InvalidCheckUrlError):
        await evaluator.evaluate()

    provider.get_current_ip.assert_not_called()
    provider.switch_to_primary_ip.assert_not_called()
    provider.switch_to_secondary_ip.assert_not_called()


@pytest.mark.asyncio
async def test_provider_write_failure_propagates(make_provider, make_checker, targets):
    """A failed switch must surface as ProviderError, not be retried."""
    provider = make_provider(PRIMARY_IP)
    provider.write_error = ProviderError("setHostOverride request failed: unexpected result 'failed'")
    evaluator = FailoverEvaluator(make_checker(False), provider, targets)

    with pytest.raises(ProviderError):
        await evaluator.evaluate()

    assert provider.current_ip == PRIMARY_IP


# ---------------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_steady_health_produces_no_switches(make_provider, make_checker, targets):
    """[H, H, H] starting at the primary must produce three no-op cycles."""
    provider = make_provider(PRIMARY_IP)
    evaluator = FailoverEvaluator(make_checker(True, True, True), provider, targets)

    actions = [(await evaluator.evaluate()).action for _ in range(3)]

    assert actions == [FailoverAction.NOOP] * 3
    assert provider.writes == []


@pytest.mark.asyncio
async def test_failover_and_recovery(make_provider, make_checker, targets):
    """[H, U, H] starting at the primary must fail over once and recover once."""
    provider = make_provider(PRIMARY_IP)
    evaluator = FailoverEvaluator(make_checker(True, False, True), provider, targets)

    actions = [(await evaluator.evaluate()).action for _ in range(3)]

    assert actions == [
        FailoverAction.NOOP,
        FailoverAction.SWITCHED_TO_SECONDARY,
        FailoverAction.SWITCHED_TO_PRIMARY,
    ]
    assert provider.writes == [Target.SECONDARY, Target.PRIMARY]
    assert provider.current_ip == PRIMARY_IP


# ---------------------------------------------------------------------------
# FailoverService: recording outcomes
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_run_cycle_records_switch(db_session, make_provider, make_checker, targets):
    """A switching cycle must update the status row and write a WARNING audit entry."""
    evaluator = FailoverEvaluator(make_checker(False), make_provider(PRIMARY_IP), targets)
    service = _make_failover_service(db_session, evaluator, targets)

    outcome = await service.run_cycle()

    assert outcome.switched
    status = StatusRepository(db_session).load()
    assert status.current_ip == SECONDARY_IP
    assert status.active_target == "secondary"
    assert status.last_healthy is False
    assert status.switches == 1

    entries = LogService(db_session).get_recent(limit=10)
    assert len(entries) == 1
    assert entries[0].level == "WARNING"
    assert entries[0].action == "switched_to_secondary"


@pytest.mark.asyncio
async def test_run_cycle_turns_error_into_outcome(db_session, make_provider, make_checker, targets):
    """A failed cycle must not raise; it bumps failures and writes an ERROR entry."""
    provider = make_provider(PRIMARY_IP)
    provider.read_error = ProviderError("getHostOverride request: connection refused")
    evaluator = FailoverEvaluator(make_checker(True), provider, targets)
    service = _make_failover_service(db_session, evaluator, targets)

    outcome = await service.run_cycle()

    assert not outcome.succeeded
    assert outcome.action is FailoverAction.NOOP
    status = StatusRepository(db_session).load()
    assert status.failures == 1
    assert "connection refused" in status.last_error

    entries = LogService(db_session).get_recent(action=ERROR_ACTION)
    assert len(entries) == 1
    assert entries[0].level == "ERROR"


@pytest.mark.asyncio
async def test_run_cycle_noop_logs_info(db_session, make_provider, make_checker, targets):
    """A no-op cycle must write an INFO entry and leave the switch counter at zero."""
    evaluator = FailoverEvaluator(make_checker(True), make_provider(PRIMARY_IP), targets)
    service = _make_failover_service(db_session, evaluator, targets)

    await service.run_cycle()

    status = StatusRepository(db_session).load()
    assert status.switches == 0
    assert status.active_target == "primary"
    entry = LogService(db_session).get_recent(limit=1)[0]
    assert entry.level == "INFO"
    assert entry.action == "noop"


@pytest.mark.asyncio
async def test_outcome_describe_mentions_verdict_and_addresses():
    """describe() must summarise the verdict and the addresses involved."""
    from services.outcome import EvaluationOutcome

    outcome = EvaluationOutcome(
        action=FailoverAction.SWITCHED_TO_SECONDARY,
        desired=Target.SECONDARY,
        verdict=HealthVerdict(healthy=False, detail="503 Service Unavailable"),
        previous_ip=PRIMARY_IP,
        current_ip=SECONDARY_IP,
    )

    message = outcome.describe()

    assert "unhealthy" in message
    assert "503 Service Unavailable" in message
    assert PRIMARY_IP in message and SECONDARY_IP in message


@pytest.mark.asyncio
async def test_failed_switch_keeps_observed_verdict(db_session, make_provider, make_checker, targets):
    """A write failure after an unhealthy verdict must still report that verdict and address."""
    provider = make_provider(PRIMARY_IP)
    provider.write_error = ProviderError("setHostOverride request failed: 500 Internal Server Error")
    evaluator = FailoverEvaluator(make_checker(False), provider, targets)
    service = _make_failover_service(db_session, evaluator, targets)

    outcome = await service.run_cycle()

    assert outcome.error is provider.write_error
    assert outcome.verdict is not None and outcome.verdict.healthy is False
    assert outcome.previous_ip == PRIMARY_IP
    assert outcome.current_ip == PRIMARY_IP

    entry = LogService(db_session).get_recent(action=ERROR_ACTION)[0]
    assert "unhealthy" in entry.message
    assert "503 Service Unavailable" in entry.message


@pytest.mark.asyncio
async def test_failed_read_keeps_verdict_without_address(db_session, make_provider, make_checker, targets):
    """A read failure keeps the verdict; no address was observed."""
    provider = make_provider(PRIMARY_IP)
    provider.read_error = ProviderError("getHostOverride request: connection refused")
    evaluator = FailoverEvaluator(make_checker(False), provider, targets)
    service = _make_failover_service(db_session, evaluator, targets)

    outcome = await service.run_cycle()

    assert outcome.verdict is not None and outcome.verdict.healthy is False
    assert outcome.previous_ip == ""
    assert outcome.describe().startswith("Primary unhealthy (503 Service Unavailable); ")


@pytest.mark.asyncio
async def test_checker_error_outcome_has_no_verdict(db_session, make_provider, make_checker, targets):
    """When the check itself fails there is no verdict to report."""
    checker = make_checker(error=InvalidCheckUrlError("invalid health check URL 'x'"))
    evaluator = FailoverEvaluator(checker, make_provider(PRIMARY_IP), targets)
    service = _make_failover_service(db_session, evaluator, targets)

    outcome = await service.run_cycle()

    assert outcome.verdict is None
    assert outcome.describe() == "Failover cycle failed: invalid health check URL 'x'"
