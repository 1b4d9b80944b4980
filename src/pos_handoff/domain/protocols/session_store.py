"""Protocolo de domínio para persistência de sessões de handoff."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pos_handoff.domain.enums import PosSystem, SessionPurpose
    from pos_handoff.domain.models import HandoffSession
    from pos_handoff.domain.session import SessionStatus


@dataclass(frozen=True, slots=True)
class SessionQuery:
    """Filtro de listagem (por usuário ou por loan officer)."""

    user_id: str | None = None
    loan_officer_id: str | None = None
    status: SessionStatus | None = None
    pos_system: PosSystem | None = None
    purpose: SessionPurpose | None = None
    limit: int = 50
    offset: int = 0


class SessionStoreProtocol(ABC):
    """Contrato mínimo para armazenamento de HandoffSession.

    `compare_and_set` é o único ponto de controle de concorrência: grava
    somente se a versão persistida ainda for `expected_version`.
    """

    @abstractmethod
    def create(self, session: HandoffSession) -> None: ...

    @abstractmethod
    def load(self, session_id: str) -> HandoffSession | None: ...

    @abstractmethod
    def compare_and_set(self, session: HandoffSession, expected_version: int) -> bool: ...

    @abstractmethod
    def find_expirable(self, now: datetime, limit: int = 500) -> list[HandoffSession]: ...

    @abstractmethod
    def list_sessions(self, query: SessionQuery) -> list[HandoffSession]: ...

    @abstractmethod
    def count_sessions(self, query: SessionQuery) -> int: ...
