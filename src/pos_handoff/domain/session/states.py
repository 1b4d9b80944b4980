"""Estados canônicos de uma sessão de handoff POS.

- Toda sessão nasce em PENDING
- Toda sessão termina em exatamente 1 estado terminal
- Transições são explícitas (ver transitions.py)
"""

from __future__ import annotations

from enum import StrEnum


class SessionStatus(StrEnum):
    """6 estados de uma sessão de handoff."""

    # === Entrada ===
    PENDING = "pending"
    """Sessão emitida; usuário ainda não abriu o POS."""

    # === Em andamento ===
    ACTIVE = "active"
    """Usuário autenticou a sessão (sessionId + sessionToken) no POS."""

    # === Terminais ===
    COMPLETED = "completed"
    """POS reportou conclusão via callback."""

    EXPIRED = "expired"
    """expires_at passou sem conclusão (sweeper)."""

    CANCELLED = "cancelled"
    """Cancelada explicitamente pelo dono ou admin."""

    FAILED = "failed"
    """Falha irrecuperável reportada."""


TERMINAL_STATES = frozenset({
    SessionStatus.COMPLETED,
    SessionStatus.EXPIRED,
    SessionStatus.CANCELLED,
    SessionStatus.FAILED,
})
"""Estados que encerram a sessão (sem transições posteriores)."""

NON_TERMINAL_STATES = frozenset({s for s in SessionStatus if s not in TERMINAL_STATES})
"""Estados que permitem transições posteriores."""
