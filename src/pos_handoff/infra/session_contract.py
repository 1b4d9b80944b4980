"""Contrato de persistência de HandoffSession e helpers compartilhados.

Backends devem garantir:
- create falha se o session_id já existir
- compare_and_set grava somente se a versão persistida == expected_version
- leituras devolvem cópias (mutar o objeto não altera o store)
"""

from __future__ import annotations

from datetime import datetime

from pos_handoff.domain.models import HandoffSession
from pos_handoff.domain.protocols.session_store import SessionQuery, SessionStoreProtocol
from pos_handoff.domain.session import NON_TERMINAL_STATES


class SessionStoreError(Exception):
    """Erro ao persistir ou recuperar sessão."""

    pass


# Alias público usado pelas implementações de infraestrutura
SessionStore = SessionStoreProtocol


def matches_query(session: HandoffSession, query: SessionQuery) -> bool:
    if query.user_id is not None and session.user_id != query.user_id:
        return False
    if query.loan_officer_id is not None and session.loan_officer_id != query.loan_officer_id:
        return False
    if query.status is not None and session.status != query.status:
        return False
    if query.pos_system is not None and session.pos_system != query.pos_system:
        return False
    return query.purpose is None or session.purpose == query.purpose


def paginate(sessions: list[HandoffSession], query: SessionQuery) -> list[HandoffSession]:
    """Ordena por created_at desc e aplica offset/limit."""
    ordered = sorted(sessions, key=lambda s: s.created_at, reverse=True)
    return ordered[query.offset : query.offset + query.limit]


def is_expirable(session: HandoffSession, now: datetime) -> bool:
    return session.status in NON_TERMINAL_STATES and session.is_past_expiry(now)
