"""Máquina de estados da sessão de handoff.

Exporta:
- SessionStatus: 6 estados canônicos
- AuditAction / TrackedEvent: ações do audit_log e eventos de engajamento
- validate_transition: validador puro
"""

from pos_handoff.domain.session.events import TRACKED_EVENT_ACTIONS, AuditAction, TrackedEvent
from pos_handoff.domain.session.states import (
    NON_TERMINAL_STATES,
    TERMINAL_STATES,
    SessionStatus,
)
from pos_handoff.domain.session.transitions import (
    TRANSITION_ACTIONS,
    TRANSITIONS,
    validate_transition,
)

__all__ = [
    "SessionStatus",
    "AuditAction",
    "TrackedEvent",
    "TRACKED_EVENT_ACTIONS",
    "TRANSITIONS",
    "TRANSITION_ACTIONS",
    "validate_transition",
    "TERMINAL_STATES",
    "NON_TERMINAL_STATES",
]
