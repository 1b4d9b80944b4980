from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from pos_handoff.api.app import create_app
from pos_handoff.application.service import HandoffSessionService
from pos_handoff.config.settings import Settings, get_settings
from pos_handoff.domain.enums import PosSystem, SessionPurpose
from pos_handoff.domain.models import HandoffSession
from pos_handoff.domain.protocols.collaborators import BrandingConfig, LoanRecord
from pos_handoff.infra.collaborators_memory import (
    InMemoryLoanRepository,
    InMemoryReferralSourceRepository,
    ReferralSourceRecord,
)
from pos_handoff.infra.session_store_memory import InMemorySessionStore

TEST_ENCRYPTION_KEY = "0123456789abcdef" * 4
TEST_TOKEN_SECRET = "test-pos-token-secret-0123456789abcdef"


class FakeClock:
    """Relógio controlável; começa no instante real para tokens JWT válidos."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime.now(tz=UTC).replace(microsecond=0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        environment="development",
        session_store_backend="memory",
        pos_encryption_key=TEST_ENCRYPTION_KEY,
        pos_token_secret=TEST_TOKEN_SECRET,
        sweeper_enabled=False,
        api_base_url="https://api.test",
        app_url="https://app.test/home",
        default_logo_url="https://cdn.test/logo.png",
        blend_pos_url="https://blend.test/apply",
        big_pos_url="https://bigpos.test/apply?lang=en",
        encompass_consumer_connect_url="https://encompass.test/consumer",
    )


@pytest.fixture()
def make_session(clock):
    """Fábrica de HandoffSession mínima para testes de store."""

    def _make(session_id: str = "pos_1_abc", **overrides) -> HandoffSession:
        data = {
            "session_id": session_id,
            "session_token": "t" * 64,
            "user_id": "user-1",
            "pos_system": PosSystem.BLEND,
            "encrypted_payload": "cipher",
            "encryption_iv": "iv",
            "purpose": SessionPurpose.NEW_APPLICATION,
            "created_at": clock.now,
            "updated_at": clock.now,
            "expires_at": clock.now + timedelta(hours=1),
            "redirect_url": "https://blend.test/apply",
        }
        data.update(overrides)
        return HandoffSession(**data)

    return _make


@pytest.fixture()
def store() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture()
def loans() -> InMemoryLoanRepository:
    return InMemoryLoanRepository([LoanRecord(loan_id="loan-1")])


@pytest.fixture()
def referral_sources() -> InMemoryReferralSourceRepository:
    return InMemoryReferralSourceRepository(
        [
            ReferralSourceRecord(
                id="ref-cobrand",
                co_branding_purposes={SessionPurpose.NEW_APPLICATION},
                branding=BrandingConfig(
                    name="Acme Realty",
                    logo="https://cdn.test/acme.png",
                    primary_color="#112233",
                    secondary_color="#445566",
                ),
            ),
            ReferralSourceRecord(id="ref-inactive", active=False),
        ]
    )


@pytest.fixture()
def service(settings, store, loans, referral_sources, clock) -> HandoffSessionService:
    return HandoffSessionService.from_settings(
        settings, store, loans=loans, referral_sources=referral_sources, clock=clock
    )


@pytest.fixture()
def issued(service):
    """Sessão PENDING padrão (blend, new_application, 60 min, com loan)."""
    return service.create_session(
        {
            "user_id": "user-1",
            "loan_id": "loan-1",
            "loan_officer_id": "lo-1",
            "purpose": "new_application",
            "expiration_minutes": 60,
            "ip_address": "10.0.0.1",
            "user_agent": "pytest",
        }
    )


@pytest.fixture()
def client(settings, store, loans, referral_sources, clock):
    get_settings.cache_clear()
    app = create_app(
        settings, store=store, loans=loans, referral_sources=referral_sources, clock=clock
    )
    with TestClient(app) as test_client:
        yield test_client
