"""Testes do sweeper de expiração."""

from __future__ import annotations

from unittest.mock import MagicMock

from pos_handoff.application.repository import SessionRepository
from pos_handoff.application.sweeper import ExpirationSweeper, SweepResult
from pos_handoff.domain.session import AuditAction, SessionStatus


def test_expires_past_due_sessions(service, store, issued, clock) -> None:
    fresh = service.create_session({"user_id": "u", "expiration_minutes": 120})
    clock.advance(minutes=61)

    result = service.sweep_expired_sessions()

    assert result == SweepResult(expired_count=1, failed_count=0)
    expired = store.load(issued.session_id)
    assert expired.status == SessionStatus.EXPIRED
    assert expired.audit_log[-1].action == AuditAction.EXPIRED
    assert store.load(fresh.session_id).status == SessionStatus.PENDING


def test_sweep_is_idempotent(service, store, issued, clock) -> None:
    clock.advance(minutes=61)
    service.sweep_expired_sessions()

    again = service.sweep_expired_sessions()

    assert again.expired_count == 0
    actions = [e.action for e in store.load(issued.session_id).audit_log]
    assert actions.count(AuditAction.EXPIRED) == 1


def test_active_sessions_expire_too(service, store, issued, clock) -> None:
    service.activate_session(issued.session_id, issued.session_token)
    clock.advance(hours=2)
    assert service.sweep_expired_sessions().expired_count == 1
    assert store.load(issued.session_id).status == SessionStatus.EXPIRED


def test_terminal_sessions_ignored(service, store, issued, clock) -> None:
    service.cancel_session(issued.session_id)
    clock.advance(hours=2)
    assert service.sweep_expired_sessions().expired_count == 0
    assert store.load(issued.session_id).status == SessionStatus.CANCELLED


def test_zero_ttl_session_expired_on_next_sweep(service, store, clock) -> None:
    issued = service.create_session({"user_id": "u", "expiration_minutes": 0})
    clock.advance(seconds=1)
    assert service.sweep_expired_sessions().expired_count == 1
    assert store.load(issued.session_id).status == SessionStatus.EXPIRED


def test_concurrent_run_is_skipped(store, clock) -> None:
    sweeper = ExpirationSweeper(SessionRepository(store, clock=clock))
    sweeper._running.acquire()
    try:
        assert sweeper.sweep() == SweepResult(skipped=True)
    finally:
        sweeper._running.release()


def test_record_failure_does_not_abort_batch(service, store, clock) -> None:
    first = service.create_session({"user_id": "u", "expiration_minutes": 1})
    second = service.create_session({"user_id": "u", "expiration_minutes": 1})
    clock.advance(minutes=5)

    original = store.compare_and_set

    def flaky(session, expected_version):
        if session.session_id == first.session_id:
            raise RuntimeError("backend down")
        return original(session, expected_version)

    store.compare_and_set = MagicMock(side_effect=flaky)

    result = service.sweep_expired_sessions()

    assert result.expired_count == 1
    assert result.failed_count == 1
    assert store.load(first.session_id).status == SessionStatus.PENDING
    assert store.load(second.session_id).status == SessionStatus.EXPIRED


def test_extension_between_scan_and_write_wins(service, store, issued, clock) -> None:
    clock.advance(minutes=61)
    stale = store.find_expirable(clock.now, 10)
    service.extend_session(issued.session_id, 30)

    repo = SessionRepository(store, clock=clock)
    repo.find_expirable = MagicMock(return_value=stale)

    result = ExpirationSweeper(repo).sweep()

    assert result == SweepResult(expired_count=0, failed_count=0)
    assert store.load(issued.session_id).status == SessionStatus.PENDING


def test_vanished_candidate_is_skipped(store, clock) -> None:
    repo = SessionRepository(store, clock=clock)
    ghost = MagicMock(session_id="pos_0_missing", expires_at=clock.now)
    repo.find_expirable = MagicMock(return_value=[ghost])

    assert ExpirationSweeper(repo).sweep() == SweepResult()


def test_session_at_exact_expiry_waits_for_next_run(service, store, issued, clock) -> None:
    """Varredura usa expires_at < now: no instante exato nada muda."""
    clock.advance(minutes=60)
    assert service.sweep_expired_sessions().expired_count == 0

    clock.advance(seconds=1)
    assert service.sweep_expired_sessions().expired_count == 1
    assert store.load(issued.session_id).status == SessionStatus.EXPIRED


def test_drains_backlog_larger_than_batch(service, store, clock) -> None:
    created = [
        service.create_session({"user_id": "u", "expiration_minutes": 1}) for _ in range(5)
    ]
    clock.advance(minutes=5)
    sweeper = ExpirationSweeper(SessionRepository(store, clock=clock), batch_size=2)

    result = sweeper.sweep()

    assert result == SweepResult(expired_count=5, failed_count=0)
    assert all(store.load(c.session_id).status == SessionStatus.EXPIRED for c in created)


def test_failing_record_does_not_stall_later_batches(service, store, clock) -> None:
    first, second, third = (
        service.create_session({"user_id": "u", "expiration_minutes": 1}) for _ in range(3)
    )
    clock.advance(minutes=5)
    original = store.compare_and_set

    def flaky(session, expected_version):
        if session.session_id == first.session_id:
            raise RuntimeError("backend down")
        return original(session, expected_version)

    store.compare_and_set = MagicMock(side_effect=flaky)

    result = ExpirationSweeper(SessionRepository(store, clock=clock), batch_size=2).sweep()

    assert result == SweepResult(expired_count=2, failed_count=1)
    assert store.load(first.session_id).status == SessionStatus.PENDING
    assert store.load(second.session_id).status == SessionStatus.EXPIRED
    assert store.load(third.session_id).status == SessionStatus.EXPIRED
