"""Portas para colaboradores externos (Loan e ReferralSource).

Implementados fora deste subsistema; aqui só o contrato consumido.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from pydantic import BaseModel

from pos_handoff.domain.enums import SessionPurpose


class ExternalReference(BaseModel):
    """Referência externa do empréstimo atualizada na conclusão."""

    external_loan_id: str
    last_synced_at: datetime


class LoanRecord(BaseModel):
    loan_id: str
    external_loan_id: str | None = None
    last_synced_at: datetime | None = None


class BrandingConfig(BaseModel):
    name: str | None = None
    company_name: str | None = None
    logo: str | None = None
    primary_color: str | None = None
    secondary_color: str | None = None


class ReferralSource(Protocol):
    """Parceiro de indicação com co-branding opcional."""

    id: str

    def is_active(self) -> bool: ...

    def is_co_branding_enabled(self, purpose: SessionPurpose) -> bool: ...

    def get_branding_config(self) -> BrandingConfig: ...


class LoanRepository(Protocol):
    def find_by_id(self, loan_id: str) -> LoanRecord | None: ...

    def update_external_reference(self, loan_id: str, reference: ExternalReference) -> None: ...


class ReferralSourceRepository(Protocol):
    def find_by_id(self, referral_source_id: str) -> ReferralSource | None: ...

    def increment_application_counter(self, referral_source_id: str) -> None: ...
