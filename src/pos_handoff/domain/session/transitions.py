"""Tabela de transições da sessão de handoff.

- TRANSITIONS[current_state] = estados de destino permitidos
- Estados terminais não aparecem como origem
- Validação pura: sem side effects
"""

from __future__ import annotations

from pos_handoff.domain.session.events import AuditAction
from pos_handoff.domain.session.states import TERMINAL_STATES, SessionStatus

TRANSITIONS: dict[SessionStatus, frozenset[SessionStatus]] = {
    # Ativação; conclusão direta sem ativação também é permitida
    SessionStatus.PENDING: frozenset({
        SessionStatus.ACTIVE,
        SessionStatus.COMPLETED,
        SessionStatus.EXPIRED,
        SessionStatus.CANCELLED,
        SessionStatus.FAILED,
    }),
    SessionStatus.ACTIVE: frozenset({
        SessionStatus.COMPLETED,
        SessionStatus.EXPIRED,
        SessionStatus.CANCELLED,
        SessionStatus.FAILED,
    }),
    # === Estados Terminais: SEM transições de saída ===
}

# Ação de auditoria registrada ao entrar em cada estado
TRANSITION_ACTIONS: dict[SessionStatus, AuditAction] = {
    SessionStatus.ACTIVE: AuditAction.ACTIVATED,
    SessionStatus.COMPLETED: AuditAction.COMPLETED,
    SessionStatus.EXPIRED: AuditAction.EXPIRED,
    SessionStatus.CANCELLED: AuditAction.CANCELLED,
    SessionStatus.FAILED: AuditAction.FAILED,
}


def validate_transition(
    current_state: SessionStatus, target_state: SessionStatus
) -> tuple[bool, str]:
    """Valida se uma transição é permitida.

    Retorna:
    - (True, ""): transição válida
    - (False, motivo): transição inválida

    Nunca lança exceção; apenas valida.
    """
    if current_state in TERMINAL_STATES:
        return False, f"Terminal state {current_state} has no transitions"

    if target_state not in TRANSITIONS.get(current_state, frozenset()):
        return False, f"No transition from {current_state} to {target_state}"

    return True, ""
