"""Fachada do protocolo de handoff: a superfície usada pela API.

Monta os componentes (issuer, activator, tracker, completer, lifecycle e
sweeper) sobre um único SessionRepository e converte entidades em visões.
Nenhum método além de create_session devolve o session_token.
"""

from __future__ import annotations

import logging
from typing import Any

from pos_handoff.adapters.pos.crypto import PayloadCipher
from pos_handoff.adapters.pos.redirects import RedirectUrlBuilder
from pos_handoff.adapters.pos.tokens import sign_callback_token
from pos_handoff.application.activation import SessionActivator
from pos_handoff.application.completion import SessionCompleter
from pos_handoff.application.issuer import CreateSessionRequest, SessionIssuer
from pos_handoff.application.lifecycle import SessionLifecycle
from pos_handoff.application.repository import Clock, SessionRepository
from pos_handoff.application.sweeper import ExpirationSweeper, SweepResult
from pos_handoff.application.tracking import EventTracker
from pos_handoff.application.views import (
    AnalyticsView,
    IssuedSession,
    SessionDescriptor,
    SessionPage,
    SessionView,
)
from pos_handoff.domain.enums import PosSystem, SessionPurpose
from pos_handoff.domain.errors import DecryptionError
from pos_handoff.domain.models import ClientInfo, CompletionData, utcnow
from pos_handoff.domain.protocols.collaborators import LoanRepository, ReferralSourceRepository
from pos_handoff.domain.protocols.session_store import SessionQuery, SessionStoreProtocol
from pos_handoff.domain.session import SessionStatus
from pos_handoff.observability.logging import get_logger
from pos_handoff.utils.ids import new_session_token

logger: logging.Logger = get_logger(__name__)

MAX_PAGE_SIZE = 100


def _page_bounds(limit: int, offset: int) -> tuple[int, int]:
    return min(max(limit, 1), MAX_PAGE_SIZE), max(offset, 0)


class HandoffSessionService:
    def __init__(
        self,
        *,
        store: SessionStoreProtocol,
        cipher: PayloadCipher,
        token_secret: str,
        settings: Any,
        loans: LoanRepository | None = None,
        referral_sources: ReferralSourceRepository | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self._settings = settings
        self._cipher = cipher
        self._token_secret = token_secret
        self._repo = SessionRepository(
            store, clock=clock, max_retries=settings.session_store_max_retries
        )
        redirects = RedirectUrlBuilder(
            base_urls={
                PosSystem.BLEND: settings.blend_pos_url,
                PosSystem.BIG_POS: settings.big_pos_url,
                PosSystem.ENCOMPASS_CONSUMER_CONNECT: settings.encompass_consumer_connect_url,
            },
            partner_id=settings.pos_partner_id,
            big_pos_source=settings.big_pos_source,
        )
        self._issuer = SessionIssuer(
            self._repo, cipher, token_secret, redirects, settings, referral_sources
        )
        self._activator = SessionActivator(self._repo)
        self._tracker = EventTracker(self._repo)
        self._completer = SessionCompleter(self._repo, token_secret, loans, referral_sources)
        self._lifecycle = SessionLifecycle(self._repo, settings.session_max_ttl_minutes)
        self._sweeper = ExpirationSweeper(self._repo, batch_size=settings.sweeper_batch_size)

    @classmethod
    def from_settings(
        cls,
        settings: Any,
        store: SessionStoreProtocol,
        *,
        loans: LoanRepository | None = None,
        referral_sources: ReferralSourceRepository | None = None,
        clock: Clock = utcnow,
    ) -> HandoffSessionService:
        """Monta o serviço com chave e secret da configuração.

        Em development sem secrets, gera valores efêmeros por processo.
        """
        allow_ephemeral = settings.is_development
        cipher = PayloadCipher.from_settings(
            settings.pos_encryption_key, allow_ephemeral=allow_ephemeral
        )
        token_secret = settings.pos_token_secret
        if not token_secret:
            if not allow_ephemeral:
                raise RuntimeError("POS_TOKEN_SECRET não configurado")
            logger.warning("POS_TOKEN_SECRET ausente; usando secret efêmero do processo (apenas dev)")
            token_secret = new_session_token()

        return cls(
            store=store,
            cipher=cipher,
            token_secret=token_secret,
            settings=settings,
            loans=loans,
            referral_sources=referral_sources,
            clock=clock,
        )

    @property
    def sweeper(self) -> ExpirationSweeper:
        return self._sweeper

    def create_session(self, request: CreateSessionRequest | dict[str, Any]) -> IssuedSession:
        return self._issuer.issue(request)

    def activate_session(
        self,
        session_id: str,
        session_token: str | None,
        client_info: ClientInfo | None = None,
    ) -> SessionDescriptor:
        session = self._activator.activate(session_id, session_token, client_info)
        return SessionDescriptor.from_session(session)

    def track_event(self, session_id: str, event_type: str, details: Any = None) -> None:
        self._tracker.track(session_id, event_type, details)

    def complete_session(
        self,
        session_id: str,
        callback_token: str | None,
        completion_data: CompletionData | dict[str, Any] | None,
        client_info: ClientInfo | None = None,
    ) -> SessionDescriptor:
        session = self._completer.complete(session_id, callback_token, completion_data, client_info)
        return SessionDescriptor.from_session(session)

    def cancel_session(
        self,
        session_id: str,
        reason: str | None = None,
        actor: str | None = None,
        client_info: ClientInfo | None = None,
    ) -> None:
        self._lifecycle.cancel(session_id, reason, actor, client_info)

    def fail_session(
        self,
        session_id: str,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
        client_info: ClientInfo | None = None,
    ) -> SessionDescriptor:
        kwargs = {"code": code} if code else {}
        session = self._lifecycle.fail(
            session_id, message, details=details, client=client_info, **kwargs
        )
        return SessionDescriptor.from_session(session)

    def extend_session(
        self,
        session_id: str,
        additional_minutes: int,
        actor: str | None = None,
        client_info: ClientInfo | None = None,
    ) -> SessionDescriptor:
        session = self._lifecycle.extend(session_id, additional_minutes, actor, client_info)
        return SessionDescriptor.from_session(session)

    def get_session(self, session_id: str) -> SessionView:
        return SessionView.from_session(self._repo.get(session_id))

    def get_analytics(self, session_id: str) -> AnalyticsView:
        return AnalyticsView.from_session(self._repo.get(session_id))

    def list_user_sessions(
        self,
        user_id: str,
        *,
        status: SessionStatus | None = None,
        pos_system: PosSystem | None = None,
        purpose: SessionPurpose | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> SessionPage:
        limit, offset = _page_bounds(limit, offset)
        return self._list(
            SessionQuery(
                user_id=user_id,
                status=status,
                pos_system=pos_system,
                purpose=purpose,
                limit=limit,
                offset=offset,
            )
        )

    def list_officer_sessions(
        self,
        loan_officer_id: str,
        *,
        status: SessionStatus | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> SessionPage:
        limit, _ = _page_bounds(limit, 0)
        offset = (max(page, 1) - 1) * limit
        return self._list(
            SessionQuery(
                loan_officer_id=loan_officer_id,
                status=status,
                limit=limit,
                offset=offset,
            )
        )

    def sweep_expired_sessions(self) -> SweepResult:
        return self._sweeper.sweep()

    def decrypt_session_payload(self, session_id: str) -> dict[str, Any]:
        """Decifra o payload da própria sessão (uso interno; nunca logar o retorno)."""
        session = self._repo.get(session_id)
        try:
            return self._cipher.decrypt(session.encrypted_payload, session.encryption_iv)
        except DecryptionError as e:
            logger.error("Session payload decryption failed", extra={"session_id": session_id})
            self._repo.record_error(session_id, e)
            raise

    def issue_callback_token(self, session_id: str) -> str:
        """Emite token de callback (5 min) para a integração do POS."""
        self._repo.get(session_id)
        return sign_callback_token(
            session_id,
            self._token_secret,
            issued_at=self._repo.now(),
            ttl_seconds=self._settings.callback_token_ttl_seconds,
        )

    def _list(self, query: SessionQuery) -> SessionPage:
        sessions, total = self._repo.list_sessions(query)
        return SessionPage(
            sessions=[SessionView.from_session(s) for s in sessions],
            total=total,
            limit=query.limit,
            offset=query.offset,
        )
