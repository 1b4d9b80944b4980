"""Emissão de sessões de handoff.

Fluxo:
1. Valida a requisição e o POS de destino
2. Gera session_id público e session_token secreto
3. Resolve branding, cifra o payload e assina o token de handoff
4. Monta redirect/callback URLs e persiste a sessão em PENDING
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from pos_handoff.adapters.pos.crypto import PayloadCipher
from pos_handoff.adapters.pos.redirects import RedirectUrlBuilder
from pos_handoff.adapters.pos.tokens import sign_handoff_token
from pos_handoff.application.branding import resolve_branding
from pos_handoff.application.repository import SessionRepository
from pos_handoff.application.user_agent import detect_device_type, detect_platform
from pos_handoff.application.views import IssuedSession
from pos_handoff.domain.enums import PosEnvironment, PosSystem, SessionPurpose, SessionSource
from pos_handoff.domain.errors import HandoffValidationError, UnsupportedPOSSystem
from pos_handoff.domain.models import Branding, ClientInfo, HandoffSession, SessionAnalytics
from pos_handoff.domain.protocols.collaborators import ReferralSourceRepository
from pos_handoff.domain.session import AuditAction
from pos_handoff.observability.logging import get_logger
from pos_handoff.utils.ids import new_session_id, new_session_token

logger: logging.Logger = get_logger(__name__)


class CreateSessionRequest(BaseModel):
    user_id: str = Field(min_length=1)
    loan_id: str | None = None
    loan_officer_id: str | None = None
    referral_source_id: str | None = None
    # str para que POS desconhecido vire UnsupportedPOSSystem e não VALIDATION_ERROR
    pos_system: str = PosSystem.BLEND.value
    purpose: SessionPurpose = SessionPurpose.NEW_APPLICATION
    source: SessionSource = SessionSource.MOBILE_APP
    expiration_minutes: int | None = Field(default=None, ge=0)
    branding: Branding | None = None
    return_url: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None


def parse_create_request(data: CreateSessionRequest | dict[str, Any]) -> CreateSessionRequest:
    if isinstance(data, CreateSessionRequest):
        return data
    try:
        return CreateSessionRequest.model_validate(data)
    except ValidationError as e:
        raise HandoffValidationError(
            details={
                "errors": [
                    {"loc": list(err["loc"]), "msg": err["msg"]}
                    for err in e.errors(include_url=False)
                ]
            }
        ) from e


class SessionIssuer:
    def __init__(
        self,
        repository: SessionRepository,
        cipher: PayloadCipher,
        token_secret: str,
        redirects: RedirectUrlBuilder,
        settings: Any,
        referral_sources: ReferralSourceRepository | None = None,
    ) -> None:
        self._repo = repository
        self._cipher = cipher
        self._token_secret = token_secret
        self._redirects = redirects
        self._settings = settings
        self._referral_sources = referral_sources

    def issue(self, data: CreateSessionRequest | dict[str, Any]) -> IssuedSession:
        request = parse_create_request(data)

        if not self._redirects.supports(request.pos_system):
            logger.warning("Unsupported POS system requested", extra={"pos_system": request.pos_system})
            raise UnsupportedPOSSystem(details={"pos_system": request.pos_system})

        ttl_minutes = self._resolve_ttl(request.expiration_minutes)
        pos_system = PosSystem(request.pos_system)
        session_id = new_session_id()
        session_token = new_session_token()
        now = self._repo.now()
        expires_at = now + timedelta(minutes=ttl_minutes)

        branding = resolve_branding(
            purpose=request.purpose,
            default_logo=self._settings.default_logo_url,
            referral_source_id=request.referral_source_id,
            referral_sources=self._referral_sources,
            requested=request.branding,
        )

        encrypted_payload, encryption_iv = self._cipher.encrypt(
            {
                "user_id": request.user_id,
                "loan_id": request.loan_id,
                "loan_officer_id": request.loan_officer_id,
                "referral_source_id": request.referral_source_id,
                "purpose": request.purpose.value,
                "source": request.source.value,
                "timestamp": now.isoformat(),
            }
        )

        handoff_token = sign_handoff_token(
            {
                "session_id": session_id,
                "user_id": request.user_id,
                "loan_id": request.loan_id,
                "purpose": request.purpose.value,
            },
            self._token_secret,
            expires_at=expires_at,
            issued_at=now,
        )

        redirect_url = self._redirects.build(pos_system, session_id, handoff_token, branding)
        callback_url = self._settings.callback_url_for(session_id)
        return_url = request.return_url or self._settings.app_url

        client = ClientInfo(ip_address=request.ip_address, user_agent=request.user_agent)
        session = HandoffSession(
            session_id=session_id,
            session_token=session_token,
            user_id=request.user_id,
            loan_id=request.loan_id,
            loan_officer_id=request.loan_officer_id,
            referral_source_id=request.referral_source_id,
            pos_system=pos_system,
            pos_environment=PosEnvironment(self._settings.pos_environment.lower()),
            encrypted_payload=encrypted_payload,
            encryption_iv=encryption_iv,
            purpose=request.purpose,
            source=request.source,
            created_at=now,
            updated_at=now,
            expires_at=expires_at,
            redirect_url=redirect_url,
            callback_url=callback_url,
            return_url=return_url,
            analytics=SessionAnalytics(
                ip_address=request.ip_address,
                user_agent=request.user_agent,
                device_type=detect_device_type(request.user_agent),
                platform=detect_platform(request.user_agent),
            ),
            branding=branding,
        )
        session.append_audit(
            AuditAction.CREATED,
            details=f"pos_system={pos_system.value} purpose={request.purpose.value}",
            client=client,
            timestamp=now,
        )
        self._repo.create(session)

        logger.info(
            "Handoff session created",
            extra={
                "session_id": session_id,
                "pos_system": pos_system.value,
                "purpose": request.purpose.value,
                "source": request.source.value,
                "expires_at": expires_at.isoformat(),
                "theme": branding.theme.value,
            },
        )

        return IssuedSession(
            session_id=session_id,
            session_token=session_token,
            redirect_url=redirect_url,
            callback_url=callback_url,
            return_url=return_url,
            expires_at=expires_at,
            pos_system=pos_system,
            branding=branding,
        )

    def _resolve_ttl(self, expiration_minutes: int | None) -> int:
        if expiration_minutes is None:
            return self._settings.session_default_ttl_minutes
        if expiration_minutes > self._settings.session_max_ttl_minutes:
            raise HandoffValidationError(
                details={
                    "expiration_minutes": expiration_minutes,
                    "max": self._settings.session_max_ttl_minutes,
                }
            )
        return expiration_minutes
