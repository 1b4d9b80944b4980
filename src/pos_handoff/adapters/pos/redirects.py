"""Construção das redirect URLs por sistema POS.

Cada POS tem URL base e contrato de query string próprios. Parâmetros vazios
são omitidos; query string existente na URL base é preservada. O
session_token nunca entra na URL (apenas o token de handoff assinado).
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from pos_handoff.domain.enums import PosSystem
from pos_handoff.domain.errors import UnsupportedPOSSystem
from pos_handoff.domain.models import Branding


@dataclass(frozen=True, slots=True)
class RedirectContext:
    session_id: str
    handoff_token: str
    branding: Branding
    partner_id: str
    big_pos_source: str


ParamsBuilder = Callable[[RedirectContext], dict[str, str | None]]


def _blend_params(ctx: RedirectContext) -> dict[str, str | None]:
    color = ctx.branding.primary_color
    return {
        "token": ctx.handoff_token,
        "session_id": ctx.session_id,
        "partner": ctx.partner_id,
        "theme": ctx.branding.theme.value,
        "primary_color": color.replace("#", "") if color else None,
        "logo_url": ctx.branding.logo,
    }


def _big_pos_params(ctx: RedirectContext) -> dict[str, str | None]:
    return {
        "token": ctx.handoff_token,
        "session": ctx.session_id,
        "source": ctx.big_pos_source,
        "branding": ctx.branding.theme.value,
    }


def _encompass_params(ctx: RedirectContext) -> dict[str, str | None]:
    return {
        "access_token": ctx.handoff_token,
        "session_id": ctx.session_id,
        "partner_id": ctx.partner_id,
    }


PARAM_BUILDERS: dict[PosSystem, ParamsBuilder] = {
    PosSystem.BLEND: _blend_params,
    PosSystem.BIG_POS: _big_pos_params,
    PosSystem.ENCOMPASS_CONSUMER_CONNECT: _encompass_params,
}


def append_query(base_url: str, params: dict[str, str | None]) -> str:
    parts = urlsplit(base_url)
    query = parse_qsl(parts.query, keep_blank_values=True)
    query.extend((k, v) for k, v in params.items() if v)
    return urlunsplit(parts._replace(query=urlencode(query)))


class RedirectUrlBuilder:
    """Mapeia PosSystem → URL base configurada + contrato de parâmetros."""

    def __init__(
        self,
        base_urls: dict[PosSystem, str],
        partner_id: str,
        big_pos_source: str,
    ) -> None:
        self._base_urls = dict(base_urls)
        self._partner_id = partner_id
        self._big_pos_source = big_pos_source

    def supports(self, pos_system: str) -> bool:
        try:
            key = PosSystem(pos_system)
        except ValueError:
            return False
        return key in self._base_urls and key in PARAM_BUILDERS

    def build(
        self,
        pos_system: PosSystem | str,
        session_id: str,
        handoff_token: str,
        branding: Branding,
    ) -> str:
        if not self.supports(pos_system):
            raise UnsupportedPOSSystem(details={"pos_system": str(pos_system)})

        key = PosSystem(pos_system)
        ctx = RedirectContext(
            session_id=session_id,
            handoff_token=handoff_token,
            branding=branding,
            partner_id=self._partner_id,
            big_pos_source=self._big_pos_source,
        )
        return append_query(self._base_urls[key], PARAM_BUILDERS[key](ctx))
