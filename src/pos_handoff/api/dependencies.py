"""Dependências injetadas nas rotas."""

from __future__ import annotations

import hmac

from fastapi import HTTPException, Request, status

from pos_handoff.application.service import HandoffSessionService
from pos_handoff.config.settings import Settings
from pos_handoff.domain.models import ClientInfo


def get_settings(request: Request) -> Settings:
    """Retorna settings da aplicação."""

    return request.app.state.settings


def get_handoff_service(request: Request) -> HandoffSessionService:
    """Retorna a fachada do protocolo de handoff."""

    return request.app.state.handoff_service


def get_client_info(request: Request) -> ClientInfo:
    """IP (primeiro hop de X-Forwarded-For, atrás do load balancer) e User-Agent."""

    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        ip_address = forwarded.split(",")[0].strip()
    else:
        ip_address = request.client.host if request.client else None
    return ClientInfo(ip_address=ip_address, user_agent=request.headers.get("user-agent"))


def require_internal_token(request: Request) -> None:
    """Valida token interno enviado pelo Cloud Scheduler/worker."""

    settings: Settings = request.app.state.settings
    expected = settings.internal_task_token
    provided = request.headers.get(settings.internal_token_header)

    if expected and provided and hmac.compare_digest(provided, expected):
        return

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="unauthorized_internal_call",
    )
