"""Visões de leitura devolvidas pela superfície do serviço.

Nenhuma visão carrega session_token, encrypted_payload ou encryption_iv:
o token só existe em IssuedSession, devolvida uma única vez na criação.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, computed_field

from pos_handoff.domain.enums import PosEnvironment, PosSystem, SessionPurpose, SessionSource
from pos_handoff.domain.models import (
    AuditEntry,
    Branding,
    CompletionData,
    ErrorEntry,
    HandoffSession,
    SessionAnalytics,
)
from pos_handoff.domain.session import SessionStatus


class IssuedSession(BaseModel):
    """Resultado de create_session (único ponto que expõe o session_token)."""

    session_id: str
    session_token: str
    redirect_url: str
    callback_url: str
    return_url: str | None = None
    expires_at: datetime
    pos_system: PosSystem
    branding: Branding


class SessionDescriptor(BaseModel):
    """Estado resumido após activate/complete."""

    session_id: str
    status: SessionStatus
    pos_system: PosSystem
    purpose: SessionPurpose
    redirect_url: str
    return_url: str | None = None
    expires_at: datetime
    activated_at: datetime | None = None
    completed_at: datetime | None = None
    branding: Branding

    @classmethod
    def from_session(cls, session: HandoffSession) -> SessionDescriptor:
        return cls(
            session_id=session.session_id,
            status=session.status,
            pos_system=session.pos_system,
            purpose=session.purpose,
            redirect_url=session.redirect_url,
            return_url=session.return_url,
            expires_at=session.expires_at,
            activated_at=session.activated_at,
            completed_at=session.completed_at,
            branding=session.branding,
        )


class SessionView(BaseModel):
    """Leitura completa da sessão, sem segredos."""

    session_id: str
    user_id: str
    loan_id: str | None = None
    loan_officer_id: str | None = None
    referral_source_id: str | None = None
    pos_system: PosSystem
    pos_environment: PosEnvironment
    purpose: SessionPurpose
    source: SessionSource
    status: SessionStatus
    created_at: datetime
    updated_at: datetime
    expires_at: datetime
    activated_at: datetime | None = None
    completed_at: datetime | None = None
    redirect_url: str
    callback_url: str | None = None
    return_url: str | None = None
    analytics: SessionAnalytics
    branding: Branding
    completion_data: CompletionData
    errors: list[ErrorEntry] = Field(default_factory=list)
    audit_log: list[AuditEntry] = Field(default_factory=list)

    @classmethod
    def from_session(cls, session: HandoffSession) -> SessionView:
        data = session.model_dump(
            exclude={"session_token", "encrypted_payload", "encryption_iv", "version"}
        )
        return cls.model_validate(data)


class AnalyticsView(BaseModel):
    session_id: str
    status: SessionStatus
    pos_system: PosSystem
    purpose: SessionPurpose
    created_at: datetime
    activated_at: datetime | None = None
    completed_at: datetime | None = None
    analytics: SessionAnalytics
    audit_log: list[AuditEntry] = Field(default_factory=list)

    @classmethod
    def from_session(cls, session: HandoffSession) -> AnalyticsView:
        return cls(
            session_id=session.session_id,
            status=session.status,
            pos_system=session.pos_system,
            purpose=session.purpose,
            created_at=session.created_at,
            activated_at=session.activated_at,
            completed_at=session.completed_at,
            analytics=session.analytics,
            audit_log=session.audit_log,
        )


class SessionPage(BaseModel):
    """Página de listagem (my-sessions / lo-sessions)."""

    sessions: list[SessionView]
    total: int
    limit: int
    offset: int

    @computed_field
    @property
    def has_more(self) -> bool:
        return self.offset + len(self.sessions) < self.total
