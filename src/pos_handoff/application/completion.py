"""Conclusão da sessão via callback do POS.

O token de callback (quando enviado) é verificado antes de qualquer leitura:
falha → InvalidCallbackToken e a sessão fica intacta. Após a transição para
COMPLETED, sincroniza o Loan e o contador do referral source; falhas desses
colaboradores vão para errors[] sem desfazer a conclusão.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from pydantic import ValidationError

from pos_handoff.adapters.pos.tokens import CALLBACK_TOKEN_TYPE, verify_token
from pos_handoff.application.repository import SessionRepository
from pos_handoff.domain.errors import (
    HandoffError,
    HandoffValidationError,
    InvalidCallbackToken,
    TokenVerificationError,
)
from pos_handoff.domain.models import ClientInfo, CompletionData, HandoffSession
from pos_handoff.domain.protocols.collaborators import (
    ExternalReference,
    LoanRepository,
    ReferralSourceRepository,
)
from pos_handoff.domain.session import SessionStatus
from pos_handoff.observability.logging import get_logger

logger: logging.Logger = get_logger(__name__)

LOAN_SYNC_FAILED = "LOAN_SYNC_FAILED"
REFERRAL_COUNTER_FAILED = "REFERRAL_COUNTER_FAILED"


def parse_completion_data(data: CompletionData | dict[str, Any] | None) -> CompletionData:
    if data is None:
        return CompletionData()
    if isinstance(data, CompletionData):
        return data
    try:
        return CompletionData.model_validate(data)
    except ValidationError as e:
        raise HandoffValidationError(
            details={"errors": [err["msg"] for err in e.errors(include_url=False)]}
        ) from e


class SessionCompleter:
    def __init__(
        self,
        repository: SessionRepository,
        token_secret: str,
        loans: LoanRepository | None = None,
        referral_sources: ReferralSourceRepository | None = None,
    ) -> None:
        self._repo = repository
        self._token_secret = token_secret
        self._loans = loans
        self._referral_sources = referral_sources

    def complete(
        self,
        session_id: str,
        callback_token: str | None,
        completion_data: CompletionData | dict[str, Any] | None,
        client: ClientInfo | None = None,
    ) -> HandoffSession:
        if callback_token is not None:
            self._verify_callback_token(session_id, callback_token)

        incoming = parse_completion_data(completion_data)

        def _apply(session: HandoffSession, now: datetime) -> None:
            session.completed_at = now
            started_at = session.activated_at or session.created_at
            session.analytics.time_to_completion_seconds = max(
                0, int((now - started_at).total_seconds())
            )
            session.completion_data = session.completion_data.merged_with(incoming)

        try:
            updated = self._repo.transition(
                session_id,
                SessionStatus.COMPLETED,
                mutate=_apply,
                details=f"application_id={incoming.application_id}" if incoming.application_id else None,
                client=client,
            )
        except HandoffError as e:
            logger.warning("Completion rejected", extra={"session_id": session_id, "code": e.code})
            self._repo.record_error(session_id, e)
            raise

        logger.info(
            "Session completed",
            extra={
                "session_id": session_id,
                "pos_system": updated.pos_system.value,
                "time_to_completion_seconds": updated.analytics.time_to_completion_seconds,
            },
        )

        side_effect_failed = self._sync_loan(updated)
        side_effect_failed |= self._increment_referral_counter(updated)
        return self._repo.get(session_id) if side_effect_failed else updated

    def _verify_callback_token(self, session_id: str, token: str) -> None:
        try:
            claims = verify_token(token, self._token_secret, expected_type=CALLBACK_TOKEN_TYPE)
        except TokenVerificationError as e:
            logger.warning(
                "Callback token rejected",
                extra={"session_id": session_id, "reason": e.reason},
            )
            raise InvalidCallbackToken() from e

        if claims.get("session_id") != session_id:
            logger.warning(
                "Callback token rejected",
                extra={"session_id": session_id, "reason": "session_mismatch"},
            )
            raise InvalidCallbackToken()

    def _sync_loan(self, session: HandoffSession) -> bool:
        data = session.completion_data
        if not session.loan_id or not data.application_id or self._loans is None:
            return False

        try:
            if self._loans.find_by_id(session.loan_id) is None:
                raise LookupError("loan not found")
            self._loans.update_external_reference(
                session.loan_id,
                ExternalReference(
                    external_loan_id=data.external_loan_id or data.application_id,
                    last_synced_at=session.completed_at or self._repo.now(),
                ),
            )
        except Exception as e:
            logger.error(
                "Loan external reference sync failed",
                extra={
                    "session_id": session.session_id,
                    "loan_id": session.loan_id,
                    "error": type(e).__name__,
                },
            )
            self._repo.append_error(
                session.session_id,
                LOAN_SYNC_FAILED,
                "Loan external reference could not be updated",
                {"loan_id": session.loan_id, "error": type(e).__name__},
            )
            return True

        logger.info(
            "Loan external reference updated",
            extra={"session_id": session.session_id, "loan_id": session.loan_id},
        )
        return False

    def _increment_referral_counter(self, session: HandoffSession) -> bool:
        if not session.referral_source_id or self._referral_sources is None:
            return False

        try:
            self._referral_sources.increment_application_counter(session.referral_source_id)
        except Exception as e:
            logger.error(
                "Referral source counter update failed",
                extra={
                    "session_id": session.session_id,
                    "referral_source_id": session.referral_source_id,
                    "error": type(e).__name__,
                },
            )
            self._repo.append_error(
                session.session_id,
                REFERRAL_COUNTER_FAILED,
                "Referral source application counter could not be incremented",
                {"referral_source_id": session.referral_source_id, "error": type(e).__name__},
            )
            return True
        return False
