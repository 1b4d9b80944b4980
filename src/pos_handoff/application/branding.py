"""Resolução do branding do handoff.

Ordem: co-branding do referral source (ativo e habilitado para o propósito)
→ branding enviado pelo chamador (com tema) → padrão do sistema.
Branding é informativo; nunca participa de decisão de segurança.
"""

from __future__ import annotations

import logging

from pos_handoff.domain.enums import BrandingTheme, SessionPurpose
from pos_handoff.domain.models import Branding
from pos_handoff.domain.protocols.collaborators import ReferralSourceRepository
from pos_handoff.observability.logging import get_logger

logger: logging.Logger = get_logger(__name__)


def resolve_branding(
    *,
    purpose: SessionPurpose,
    default_logo: str,
    referral_source_id: str | None = None,
    referral_sources: ReferralSourceRepository | None = None,
    requested: Branding | None = None,
) -> Branding:
    if referral_source_id and referral_sources is not None:
        source = referral_sources.find_by_id(referral_source_id)
        if source is not None and source.is_active() and source.is_co_branding_enabled(purpose):
            config = source.get_branding_config()
            logger.debug(
                "Applying co-branding",
                extra={"referral_source_id": referral_source_id, "purpose": purpose.value},
            )
            return Branding(
                theme=BrandingTheme.CO_BRANDED,
                primary_color=config.primary_color,
                secondary_color=config.secondary_color,
                logo=default_logo,
                partner_logo=config.logo,
                partner_name=config.name or config.company_name,
            )

    if requested is not None and "theme" in requested.model_fields_set:
        return requested

    return Branding(theme=BrandingTheme.DEFAULT, logo=default_logo)
