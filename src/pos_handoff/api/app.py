"""Fábrica da aplicação FastAPI."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from pos_handoff.api.routes import router
from pos_handoff.application.repository import Clock
from pos_handoff.application.service import HandoffSessionService
from pos_handoff.config.settings import Settings, get_settings
from pos_handoff.domain.errors import (
    DecryptionError,
    HandoffError,
    HandoffValidationError,
    InvalidCallbackToken,
    InvalidStateTransition,
    InvalidToken,
    SessionExpired,
    SessionNotFound,
    UnsupportedPOSSystem,
)
from pos_handoff.domain.models import utcnow
from pos_handoff.domain.protocols.collaborators import LoanRepository, ReferralSourceRepository
from pos_handoff.domain.protocols.session_store import SessionStoreProtocol
from pos_handoff.infra.collaborators_memory import (
    InMemoryLoanRepository,
    InMemoryReferralSourceRepository,
)
from pos_handoff.infra.scheduler import PeriodicSweeper
from pos_handoff.infra.session_store import SessionStoreError, create_session_store
from pos_handoff.observability.logging import configure_logging, get_logger
from pos_handoff.observability.middleware import CorrelationIdMiddleware, get_correlation_id

logger = get_logger(__name__)

ERROR_STATUS: dict[type[HandoffError], int] = {
    SessionNotFound: 404,
    InvalidToken: 401,
    SessionExpired: 410,
    InvalidStateTransition: 409,
    InvalidCallbackToken: 401,
    UnsupportedPOSSystem: 400,
    DecryptionError: 500,
    HandoffValidationError: 422,
}


def _error_body(code: str, message: str) -> dict[str, Any]:
    return {"error": code, "message": message, "correlation_id": get_correlation_id() or None}


async def handoff_error_handler(request: Request, exc: HandoffError) -> JSONResponse:
    status_code = ERROR_STATUS.get(type(exc), 400)
    return JSONResponse(
        status_code=status_code,
        content=_error_body(exc.code, exc.public_message),
    )


async def store_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Session store unavailable", extra={"error": type(exc).__name__})
    return JSONResponse(
        status_code=503,
        content=_error_body("STORE_UNAVAILABLE", "Session store unavailable"),
    )


async def validation_error_handler(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content=_error_body(HandoffValidationError.code, HandoffValidationError.public_message),
    )


def _validate_settings(settings: Settings) -> None:
    validation_errors: list[str] = []
    validation_errors.extend(settings.validate_session_store_config())
    validation_errors.extend(settings.validate_crypto_config())
    validation_errors.extend(settings.validate_session_ttl())

    if validation_errors:
        error_msg = "; ".join(validation_errors)
        raise ValueError(f"Configuração inválida: {error_msg}")


def create_app(
    settings: Settings | None = None,
    *,
    store: SessionStoreProtocol | None = None,
    loans: LoanRepository | None = None,
    referral_sources: ReferralSourceRepository | None = None,
    clock: Clock = utcnow,
) -> FastAPI:
    """Cria a aplicação FastAPI.

    Colaboradores (Loan/ReferralSource) pertencem a outros serviços; sem
    injeção explícita, usa implementações em memória (dev/testes).
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level, settings.service_name, settings.log_format)
    _validate_settings(settings)

    store = store or create_session_store(settings)
    service = HandoffSessionService.from_settings(
        settings,
        store,
        loans=loans if loans is not None else InMemoryLoanRepository(),
        referral_sources=(
            referral_sources
            if referral_sources is not None
            else InMemoryReferralSourceRepository()
        ),
        clock=clock,
    )
    periodic_sweeper = PeriodicSweeper(service.sweeper, settings.sweeper_interval_seconds)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if settings.sweeper_enabled:
            periodic_sweeper.start()
        try:
            yield
        finally:
            await periodic_sweeper.stop()

    app = FastAPI(title=settings.service_name, version=settings.version, lifespan=lifespan)
    app.add_middleware(CorrelationIdMiddleware, header_name=settings.correlation_id_header)
    app.add_exception_handler(HandoffError, handoff_error_handler)
    app.add_exception_handler(SessionStoreError, store_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.include_router(router)

    app.state.settings = settings
    app.state.session_store = store
    app.state.handoff_service = service
    app.state.periodic_sweeper = periodic_sweeper

    logger.info(
        "Application created",
        extra={
            "environment": settings.environment,
            "session_store_backend": settings.session_store_backend,
            "sweeper_enabled": settings.sweeper_enabled,
        },
    )
    return app
