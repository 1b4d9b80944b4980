"""Autenticação e ativação da sessão pelo par (session_id, session_token).

Ordem das verificações: posse do token → expiração → status PENDING.
Sessão inexistente e token incorreto produzem o mesmo InvalidToken.
"""

from __future__ import annotations

import hmac
import logging
from datetime import datetime

from pos_handoff.application.repository import SessionRepository
from pos_handoff.application.user_agent import detect_device_type, detect_platform
from pos_handoff.domain.errors import (
    HandoffError,
    InvalidStateTransition,
    InvalidToken,
    SessionExpired,
)
from pos_handoff.domain.models import ClientInfo, HandoffSession
from pos_handoff.domain.session import SessionStatus
from pos_handoff.observability.logging import get_logger

logger: logging.Logger = get_logger(__name__)

# Tentativas com token errado registradas em errors[] por sessão
MAX_RECORDED_UNAUTHORIZED = 5


def tokens_match(expected: str, provided: str | None) -> bool:
    if not provided:
        return False
    return hmac.compare_digest(expected.encode("utf-8"), provided.encode("utf-8"))


class SessionActivator:
    def __init__(self, repository: SessionRepository) -> None:
        self._repo = repository

    def activate(
        self,
        session_id: str,
        session_token: str | None,
        client: ClientInfo | None = None,
    ) -> HandoffSession:
        client = client or ClientInfo()
        session = self._repo.find(session_id)

        if session is None:
            logger.warning("Activation rejected", extra={"session_id": session_id})
            raise InvalidToken()

        try:
            if not tokens_match(session.session_token, session_token):
                raise InvalidToken()

            now = self._repo.now()
            if session.is_expired(now):
                raise SessionExpired(details={"expires_at": session.expires_at.isoformat()})
            if session.status != SessionStatus.PENDING:
                raise InvalidStateTransition(
                    details={"from": session.status.value, "to": SessionStatus.ACTIVE.value}
                )

            updated = self._repo.transition(
                session_id,
                SessionStatus.ACTIVE,
                mutate=lambda s, ts: self._apply_activation(s, ts, client),
                details="session activated",
                client=client,
            )
        except HandoffError as e:
            logger.warning(
                "Activation rejected",
                extra={"session_id": session_id, "code": e.code},
            )
            if self._should_record(session, e):
                self._repo.record_error(session_id, e)
            raise

        logger.info(
            "Session activated",
            extra={
                "session_id": session_id,
                "device_type": updated.analytics.device_type.value,
                "platform": updated.analytics.platform.value,
                "time_to_activation_seconds": updated.analytics.time_to_activation_seconds,
            },
        )
        return updated

    @staticmethod
    def _should_record(session: HandoffSession, error: HandoffError) -> bool:
        if not isinstance(error, InvalidToken):
            return True
        recorded = sum(1 for entry in session.errors if entry.code == error.code)
        return recorded < MAX_RECORDED_UNAUTHORIZED

    @staticmethod
    def _apply_activation(session: HandoffSession, now: datetime, client: ClientInfo) -> None:
        session.activated_at = now
        analytics = session.analytics
        analytics.time_to_activation_seconds = max(0, int((now - session.created_at).total_seconds()))
        if client.ip_address:
            analytics.ip_address = client.ip_address
        if client.user_agent:
            analytics.user_agent = client.user_agent
        analytics.device_type = client.device_type or detect_device_type(analytics.user_agent)
        analytics.platform = client.platform or detect_platform(analytics.user_agent)
