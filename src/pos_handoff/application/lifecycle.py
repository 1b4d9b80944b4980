"""Operações explícitas de ciclo de vida: cancel, fail e extend."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta
from typing import Any

from pos_handoff.application.repository import SessionRepository
from pos_handoff.domain.errors import HandoffError, HandoffValidationError, InvalidStateTransition
from pos_handoff.domain.models import ClientInfo, HandoffSession
from pos_handoff.domain.session import TERMINAL_STATES, AuditAction, SessionStatus
from pos_handoff.observability.logging import get_logger

logger: logging.Logger = get_logger(__name__)

SESSION_FAILED = "SESSION_FAILED"


class SessionLifecycle:
    def __init__(self, repository: SessionRepository, max_ttl_minutes: int = 1440) -> None:
        self._repo = repository
        self._max_ttl_minutes = max_ttl_minutes

    def cancel(
        self,
        session_id: str,
        reason: str | None = None,
        actor: str | None = None,
        client: ClientInfo | None = None,
    ) -> HandoffSession:
        """Cancela sessão não-terminal. Autorização do ator é do chamador."""
        details = json.dumps({"reason": reason, "actor": actor}, separators=(",", ":"))
        try:
            updated = self._repo.transition(
                session_id, SessionStatus.CANCELLED, details=details, client=client
            )
        except HandoffError as e:
            logger.warning("Cancel rejected", extra={"session_id": session_id, "code": e.code})
            self._repo.record_error(session_id, e)
            raise

        logger.info("Session cancelled", extra={"session_id": session_id, "actor": actor})
        return updated

    def fail(
        self,
        session_id: str,
        message: str,
        code: str = SESSION_FAILED,
        details: dict[str, Any] | None = None,
        client: ClientInfo | None = None,
    ) -> HandoffSession:
        """Falha irrecuperável reportada (POS ou integração)."""

        def _apply(session: HandoffSession, now: datetime) -> None:
            session.append_error(code, message, details=details, timestamp=now)

        try:
            updated = self._repo.transition(
                session_id,
                SessionStatus.FAILED,
                mutate=_apply,
                details=f"{code}: {message}",
                client=client,
            )
        except HandoffError as e:
            logger.warning("Failure report rejected", extra={"session_id": session_id, "code": e.code})
            self._repo.record_error(session_id, e)
            raise

        logger.info("Session failed", extra={"session_id": session_id, "code": code})
        return updated

    def extend(
        self,
        session_id: str,
        additional_minutes: int,
        actor: str | None = None,
        client: ClientInfo | None = None,
    ) -> HandoffSession:
        """Prorroga expires_at de sessão não-terminal (só para frente)."""
        if additional_minutes <= 0 or additional_minutes > self._max_ttl_minutes:
            raise HandoffValidationError(
                details={"additional_minutes": additional_minutes, "max": self._max_ttl_minutes}
            )

        def _apply(session: HandoffSession, now: datetime) -> None:
            if session.status in TERMINAL_STATES:
                raise InvalidStateTransition(
                    details={"from": session.status.value, "operation": "extend"}
                )
            previous = session.expires_at
            session.expires_at = max(previous, now) + timedelta(minutes=additional_minutes)
            session.append_audit(
                AuditAction.EXTENDED,
                details=json.dumps(
                    {
                        "previous_expires_at": previous.isoformat(),
                        "expires_at": session.expires_at.isoformat(),
                        "actor": actor,
                    },
                    separators=(",", ":"),
                ),
                client=client,
                timestamp=now,
            )

        try:
            updated = self._repo.update(session_id, _apply)
        except HandoffError as e:
            logger.warning("Extend rejected", extra={"session_id": session_id, "code": e.code})
            self._repo.record_error(session_id, e)
            raise

        logger.info(
            "Session expiry extended",
            extra={"session_id": session_id, "expires_at": updated.expires_at.isoformat()},
        )
        return updated
