"""Testes da máquina de estados da sessão de handoff."""

from __future__ import annotations

import pytest

from pos_handoff.domain.session import (
    NON_TERMINAL_STATES,
    TERMINAL_STATES,
    TRANSITION_ACTIONS,
    TRANSITIONS,
    AuditAction,
    SessionStatus,
    validate_transition,
)

LEGAL = {
    (SessionStatus.PENDING, SessionStatus.ACTIVE),
    (SessionStatus.PENDING, SessionStatus.COMPLETED),
    (SessionStatus.PENDING, SessionStatus.EXPIRED),
    (SessionStatus.PENDING, SessionStatus.CANCELLED),
    (SessionStatus.PENDING, SessionStatus.FAILED),
    (SessionStatus.ACTIVE, SessionStatus.COMPLETED),
    (SessionStatus.ACTIVE, SessionStatus.EXPIRED),
    (SessionStatus.ACTIVE, SessionStatus.CANCELLED),
    (SessionStatus.ACTIVE, SessionStatus.FAILED),
}


class TestStates:
    def test_six_states(self) -> None:
        assert len(SessionStatus) == 6

    def test_terminal_partition(self) -> None:
        assert TERMINAL_STATES | NON_TERMINAL_STATES == set(SessionStatus)
        assert not TERMINAL_STATES & NON_TERMINAL_STATES
        assert NON_TERMINAL_STATES == {SessionStatus.PENDING, SessionStatus.ACTIVE}

    def test_terminal_states_have_no_outgoing_edges(self) -> None:
        for state in TERMINAL_STATES:
            assert state not in TRANSITIONS


class TestValidateTransition:
    @pytest.mark.parametrize("current", list(SessionStatus))
    @pytest.mark.parametrize("target", list(SessionStatus))
    def test_full_graph(self, current: SessionStatus, target: SessionStatus) -> None:
        """Somente as arestas da tabela são válidas."""
        allowed, reason = validate_transition(current, target)
        assert allowed is ((current, target) in LEGAL)
        assert (reason == "") is allowed

    @pytest.mark.parametrize("terminal", sorted(TERMINAL_STATES))
    def test_terminal_reason_mentions_state(self, terminal: SessionStatus) -> None:
        allowed, reason = validate_transition(terminal, SessionStatus.ACTIVE)
        assert allowed is False
        assert "Terminal" in reason

    def test_active_cannot_reactivate(self) -> None:
        allowed, _ = validate_transition(SessionStatus.ACTIVE, SessionStatus.ACTIVE)
        assert allowed is False


class TestTransitionActions:
    def test_every_target_has_audit_action(self) -> None:
        targets = {t for targets in TRANSITIONS.values() for t in targets}
        assert targets <= set(TRANSITION_ACTIONS)

    def test_action_names(self) -> None:
        assert TRANSITION_ACTIONS[SessionStatus.ACTIVE] == AuditAction.ACTIVATED
        assert TRANSITION_ACTIONS[SessionStatus.EXPIRED] == AuditAction.EXPIRED
        assert TRANSITION_ACTIONS[SessionStatus.CANCELLED] == AuditAction.CANCELLED
