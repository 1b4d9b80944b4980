"""Modelos de domínio da sessão de handoff POS.

HandoffSession é a única entidade persistida por este subsistema:
- Um session_id público e um session_token secreto, ambos únicos e imutáveis
- audit_log e errors são append-only
- `version` é o token de concorrência otimista (CAS) do store
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field

from pos_handoff.domain.enums import (
    BrandingTheme,
    DeviceType,
    Platform,
    PosEnvironment,
    PosSystem,
    SessionPurpose,
    SessionSource,
)
from pos_handoff.domain.session import SessionStatus


def utcnow() -> datetime:
    return datetime.now(tz=UTC)


class ClientInfo(BaseModel):
    """Dados do cliente HTTP que disparou a operação."""

    ip_address: str | None = None
    user_agent: str | None = None
    device_type: DeviceType | None = None
    platform: Platform | None = None


class SessionAnalytics(BaseModel):
    ip_address: str | None = None
    user_agent: str | None = None
    device_type: DeviceType = DeviceType.UNKNOWN
    platform: Platform = Platform.UNKNOWN
    time_to_activation_seconds: int | None = None
    time_to_completion_seconds: int | None = None
    page_views: int = 0
    documents_uploaded: int = 0
    steps_completed: int = 0
    total_steps: int | None = None


class Branding(BaseModel):
    """Branding informativo do handoff (não participa de decisões de segurança)."""

    theme: BrandingTheme = BrandingTheme.DEFAULT
    primary_color: str | None = None
    secondary_color: str | None = None
    logo: str | None = None
    partner_logo: str | None = None
    partner_name: str | None = None


class SubmittedDocument(BaseModel):
    document_type: str | None = None
    file_name: str | None = None
    uploaded_at: datetime | None = None


class CompletionData(BaseModel):
    """Dados de conclusão reportados pelo POS.

    `application_id` é o identificador externo da aplicação no POS.
    """

    application_id: str | None = None
    loan_number: str | None = None
    external_loan_id: str | None = None
    status: str | None = None
    completed_steps: list[str] = Field(default_factory=list)
    next_steps: list[str] = Field(default_factory=list)
    documents_submitted: list[SubmittedDocument] = Field(default_factory=list)

    def merged_with(self, incoming: CompletionData) -> CompletionData:
        """Merge raso: apenas campos explicitamente enviados pelo POS vencem."""
        update = incoming.model_dump(exclude_unset=True)
        return self.model_copy(update={k: getattr(incoming, k) for k in update})


class ErrorEntry(BaseModel):
    timestamp: datetime = Field(default_factory=utcnow)
    code: str
    message: str
    details: dict[str, Any] = Field(default_factory=dict)


class AuditEntry(BaseModel):
    timestamp: datetime = Field(default_factory=utcnow)
    action: str
    details: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None


class HandoffSession(BaseModel):
    """Sessão de handoff completa, serializável para Redis/Firestore."""

    session_id: str
    session_token: str
    version: int = 0

    user_id: str
    loan_id: str | None = None
    loan_officer_id: str | None = None
    referral_source_id: str | None = None

    pos_system: PosSystem
    pos_environment: PosEnvironment = PosEnvironment.PRODUCTION

    encrypted_payload: str
    encryption_iv: str

    purpose: SessionPurpose
    source: SessionSource = SessionSource.MOBILE_APP
    status: SessionStatus = SessionStatus.PENDING

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    expires_at: datetime
    activated_at: datetime | None = None
    completed_at: datetime | None = None

    redirect_url: str
    callback_url: str | None = None
    return_url: str | None = None

    analytics: SessionAnalytics = Field(default_factory=SessionAnalytics)
    branding: Branding = Field(default_factory=Branding)
    completion_data: CompletionData = Field(default_factory=CompletionData)
    errors: list[ErrorEntry] = Field(default_factory=list)
    audit_log: list[AuditEntry] = Field(default_factory=list)

    def is_expired(self, now: datetime) -> bool:
        """Sessão é válida apenas enquanto now < expires_at."""
        return now >= self.expires_at

    def is_past_expiry(self, now: datetime) -> bool:
        """Regra do sweeper: expires_at < now (estrito).

        No instante exato de expires_at a sessão já não ativa, mas só é
        reclassificada na varredura seguinte.
        """
        return self.expires_at < now

    def append_audit(
        self,
        action: str,
        details: str | None = None,
        client: ClientInfo | None = None,
        timestamp: datetime | None = None,
    ) -> AuditEntry:
        entry = AuditEntry(
            timestamp=timestamp or utcnow(),
            action=str(action),
            details=details,
            ip_address=client.ip_address if client else None,
            user_agent=client.user_agent if client else None,
        )
        self.audit_log.append(entry)
        return entry

    def append_error(
        self,
        code: str,
        message: str,
        details: dict[str, Any] | None = None,
        timestamp: datetime | None = None,
    ) -> ErrorEntry:
        entry = ErrorEntry(
            timestamp=timestamp or utcnow(),
            code=code,
            message=message,
            details=details or {},
        )
        self.errors.append(entry)
        return entry
