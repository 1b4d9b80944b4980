"""Rotas HTTP do handoff POS (/api/v1/pos-link).

Autenticação de usuário/admin é responsabilidade do gateway; aqui só o
endpoint interno de sweep exige token próprio.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Header, Query

from pos_handoff.api.dependencies import (
    get_client_info,
    get_handoff_service,
    get_settings,
    require_internal_token,
)
from pos_handoff.api.schemas import (
    ActivateBody,
    CallbackBody,
    CancelBody,
    ExtendBody,
    FailBody,
    GenerateSessionBody,
    TrackBody,
)
from pos_handoff.application.issuer import CreateSessionRequest
from pos_handoff.application.service import HandoffSessionService
from pos_handoff.application.views import (
    AnalyticsView,
    IssuedSession,
    SessionDescriptor,
    SessionPage,
    SessionView,
)
from pos_handoff.config.settings import Settings
from pos_handoff.domain.enums import PosSystem, SessionPurpose
from pos_handoff.domain.models import ClientInfo
from pos_handoff.domain.session import SessionStatus
from pos_handoff.observability.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()
pos_link = APIRouter(prefix="/api/v1/pos-link", tags=["pos-link"])

ACK: dict[str, bool] = {"success": True}


def _bearer(authorization: str | None) -> str | None:
    if authorization and authorization.lower().startswith("bearer "):
        return authorization[7:].strip() or None
    return None


@router.get("/health")
def health(settings: Settings = Depends(get_settings)) -> dict[str, str]:
    """Healthcheck simples para Cloud Run."""
    return {"status": "ok", "service": settings.service_name, "version": settings.version}


@pos_link.post("/generate", status_code=201)
def generate_session(
    body: GenerateSessionBody,
    service: HandoffSessionService = Depends(get_handoff_service),
    client: ClientInfo = Depends(get_client_info),
) -> IssuedSession:
    request = CreateSessionRequest(
        **body.model_dump(exclude_unset=True),
        ip_address=client.ip_address,
        user_agent=client.user_agent,
    )
    return service.create_session(request)


@pos_link.post("/activate/{session_id}")
def activate_session(
    session_id: str,
    body: ActivateBody,
    service: HandoffSessionService = Depends(get_handoff_service),
    client: ClientInfo = Depends(get_client_info),
) -> SessionDescriptor:
    client = client.model_copy(update={"device_type": body.device_type, "platform": body.platform})
    return service.activate_session(session_id, body.session_token, client)


@pos_link.post("/track/{session_id}")
def track_event(
    session_id: str,
    body: TrackBody,
    service: HandoffSessionService = Depends(get_handoff_service),
) -> dict[str, bool]:
    service.track_event(session_id, body.event_type, body.details)
    return ACK


@pos_link.post("/callback/{session_id}")
def complete_session(
    session_id: str,
    body: CallbackBody,
    authorization: str | None = Header(default=None),
    service: HandoffSessionService = Depends(get_handoff_service),
    client: ClientInfo = Depends(get_client_info),
) -> SessionDescriptor:
    """Callback do POS; token no corpo ou em Authorization: Bearer."""
    token = body.callback_token or _bearer(authorization)
    data: dict[str, Any] = (
        body.completion_data.model_dump(exclude_unset=True) if body.completion_data else {}
    )
    return service.complete_session(session_id, token, data, client)


@pos_link.get("/session/{session_id}")
def get_session(
    session_id: str,
    service: HandoffSessionService = Depends(get_handoff_service),
) -> SessionView:
    return service.get_session(session_id)


@pos_link.get("/analytics/{session_id}")
def get_analytics(
    session_id: str,
    service: HandoffSessionService = Depends(get_handoff_service),
) -> AnalyticsView:
    return service.get_analytics(session_id)


@pos_link.get("/my-sessions")
def list_my_sessions(
    user_id: str = Query(..., min_length=1),
    status: SessionStatus | None = None,
    pos_system: PosSystem | None = None,
    purpose: SessionPurpose | None = None,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    service: HandoffSessionService = Depends(get_handoff_service),
) -> SessionPage:
    return service.list_user_sessions(
        user_id,
        status=status,
        pos_system=pos_system,
        purpose=purpose,
        limit=limit,
        offset=offset,
    )


@pos_link.get("/lo-sessions")
def list_officer_sessions(
    loan_officer_id: str = Query(..., min_length=1),
    status: SessionStatus | None = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    service: HandoffSessionService = Depends(get_handoff_service),
) -> SessionPage:
    return service.list_officer_sessions(loan_officer_id, status=status, page=page, limit=limit)


@pos_link.post("/cancel/{session_id}")
def cancel_session(
    session_id: str,
    body: CancelBody | None = None,
    service: HandoffSessionService = Depends(get_handoff_service),
    client: ClientInfo = Depends(get_client_info),
) -> dict[str, bool]:
    body = body or CancelBody()
    service.cancel_session(session_id, body.reason, body.actor, client)
    return ACK


@pos_link.post("/fail/{session_id}")
def fail_session(
    session_id: str,
    body: FailBody,
    service: HandoffSessionService = Depends(get_handoff_service),
    client: ClientInfo = Depends(get_client_info),
) -> SessionDescriptor:
    return service.fail_session(session_id, body.message, body.code, body.details, client)


@pos_link.post("/extend/{session_id}")
def extend_session(
    session_id: str,
    body: ExtendBody,
    service: HandoffSessionService = Depends(get_handoff_service),
    client: ClientInfo = Depends(get_client_info),
) -> SessionDescriptor:
    return service.extend_session(session_id, body.additional_minutes, body.actor, client)


@pos_link.post("/internal/sweep", dependencies=[Depends(require_internal_token)])
def sweep_expired_sessions(
    service: HandoffSessionService = Depends(get_handoff_service),
) -> dict[str, Any]:
    result = service.sweep_expired_sessions()
    return {
        "expired_count": result.expired_count,
        "failed_count": result.failed_count,
        "skipped": result.skipped,
    }


router.include_router(pos_link)
