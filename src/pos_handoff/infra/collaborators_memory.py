"""Implementações em memória dos colaboradores Loan e ReferralSource.

Os repositórios reais pertencem a outros serviços; estes servem ao
ambiente de desenvolvimento e aos testes.
"""

from __future__ import annotations

import logging
import threading

from pydantic import BaseModel, Field

from pos_handoff.domain.enums import SessionPurpose
from pos_handoff.domain.protocols.collaborators import (
    BrandingConfig,
    ExternalReference,
    LoanRecord,
)
from pos_handoff.observability.logging import get_logger

logger: logging.Logger = get_logger(__name__)


class ReferralSourceRecord(BaseModel):
    """Parceiro de indicação com flags de co-branding por propósito."""

    id: str
    active: bool = True
    co_branding_purposes: set[SessionPurpose] = Field(default_factory=set)
    branding: BrandingConfig = Field(default_factory=BrandingConfig)
    application_count: int = 0

    def is_active(self) -> bool:
        return self.active

    def is_co_branding_enabled(self, purpose: SessionPurpose) -> bool:
        return purpose in self.co_branding_purposes

    def get_branding_config(self) -> BrandingConfig:
        return self.branding


class InMemoryLoanRepository:
    def __init__(self, loans: list[LoanRecord] | None = None) -> None:
        self._loans = {loan.loan_id: loan for loan in loans or []}
        self._lock = threading.Lock()

    def add(self, loan: LoanRecord) -> None:
        with self._lock:
            self._loans[loan.loan_id] = loan

    def find_by_id(self, loan_id: str) -> LoanRecord | None:
        with self._lock:
            loan = self._loans.get(loan_id)
        return loan.model_copy() if loan else None

    def update_external_reference(self, loan_id: str, reference: ExternalReference) -> None:
        with self._lock:
            loan = self._loans.get(loan_id)
            if loan is None:
                raise LookupError(f"Loan not found: {loan_id}")
            self._loans[loan_id] = loan.model_copy(
                update={
                    "external_loan_id": reference.external_loan_id,
                    "last_synced_at": reference.last_synced_at,
                }
            )
        logger.debug("Loan external reference updated", extra={"loan_id": loan_id})


class InMemoryReferralSourceRepository:
    def __init__(self, sources: list[ReferralSourceRecord] | None = None) -> None:
        self._sources = {source.id: source for source in sources or []}
        self._lock = threading.Lock()

    def add(self, source: ReferralSourceRecord) -> None:
        with self._lock:
            self._sources[source.id] = source

    def find_by_id(self, referral_source_id: str) -> ReferralSourceRecord | None:
        with self._lock:
            source = self._sources.get(referral_source_id)
        return source.model_copy(deep=True) if source else None

    def increment_application_counter(self, referral_source_id: str) -> None:
        with self._lock:
            source = self._sources.get(referral_source_id)
            if source is None:
                raise LookupError(f"Referral source not found: {referral_source_id}")
            source.application_count += 1
