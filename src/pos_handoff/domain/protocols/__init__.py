"""Re-exports dos Protocolos de domínio para uso por Application."""

from __future__ import annotations

from pos_handoff.domain.protocols.collaborators import (
    BrandingConfig,
    ExternalReference,
    LoanRecord,
    LoanRepository,
    ReferralSource,
    ReferralSourceRepository,
)
from pos_handoff.domain.protocols.session_store import SessionQuery, SessionStoreProtocol

__all__ = [
    "SessionStoreProtocol",
    "SessionQuery",
    "LoanRepository",
    "LoanRecord",
    "ExternalReference",
    "ReferralSource",
    "ReferralSourceRepository",
    "BrandingConfig",
]
