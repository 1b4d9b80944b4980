"""Configuração do serviço de handoff POS.

Valores vêm de variáveis de ambiente (pydantic-settings); em staging e
production a chave AES e o secret de tokens vêm do Secret Manager.
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from typing import Any

from pydantic_settings import BaseSettings, SettingsConfigDict

from pos_handoff.infra.secrets import create_secret_provider, get_pos_secrets
from pos_handoff.observability.logging import get_logger

# URLs padrão dos sistemas POS (sobrescrever por ambiente)
BLEND_POS_URL: str = "https://blend.com/apply"
BIG_POS_URL: str = "https://bigpos.fahm.com/apply"
ENCOMPASS_CONSUMER_CONNECT_URL: str = "https://encompass.com/consumer"

# Chave AES-256 em hex: 32 bytes = 64 caracteres
ENCRYPTION_KEY_HEX_LENGTH: int = 64

PRODUCTION_NAMES = frozenset({"production", "prod"})
STAGING_NAMES = frozenset({"staging", "stage"})
DEVELOPMENT_NAMES = frozenset({"development", "dev", "local"})
SESSION_STORE_BACKENDS = frozenset({"memory", "redis", "firestore"})


class Settings(BaseSettings):
    """Parâmetros do handoff, dos POS e dos backends de sessão."""

    model_config = SettingsConfigDict(
        env_prefix="",
        case_sensitive=False,
    )

    # Aplicação
    service_name: str = "pos_handoff"
    version: str = "0.1.0"
    environment: str = "development"
    log_level: str = "INFO"
    log_format: str = "json"  # json | text

    # Criptografia e tokens (Secret Manager em staging/prod)
    pos_encryption_key: str | None = None  # 64 hex chars (AES-256)
    pos_token_secret: str | None = None  # HMAC SHA-256 para JWT HS256
    callback_token_ttl_seconds: int = 300  # Token de callback: 5 minutos

    # Sistemas POS
    pos_environment: str = "production"  # sandbox | production
    blend_pos_url: str = BLEND_POS_URL
    big_pos_url: str = BIG_POS_URL
    encompass_consumer_connect_url: str = ENCOMPASS_CONSUMER_CONNECT_URL
    pos_partner_id: str = "fahm"  # Identificador do parceiro nos POS
    big_pos_source: str = "fahm_mobile"  # Origem informada ao Big POS

    # URLs deste sistema
    api_base_url: str = "http://localhost:8080"  # Base do callback
    app_url: str = "https://app.fahm.com"  # returnUrl padrão
    default_logo_url: str = "https://fahm.com/logo.png"

    # Sessão de handoff
    session_default_ttl_minutes: int = 60
    session_max_ttl_minutes: int = 1440
    session_store_backend: str = "memory"  # memory | redis | firestore
    session_store_max_retries: int = 10  # Tentativas de CAS por transição de status

    # Backends
    redis_url: str | None = None
    firestore_project_id: str | None = None
    firestore_database_id: str = "(default)"
    sessions_collection: str = "handoff_sessions"

    # Sweeper de expiração
    sweeper_enabled: bool = True
    sweeper_interval_seconds: float = 300.0
    sweeper_batch_size: int = 500

    # Endpoints internos (Cloud Scheduler → /internal/sweep)
    internal_task_token: str | None = None
    internal_token_header: str = "X-Internal-Token"

    # Observabilidade
    correlation_id_header: str = "X-Correlation-ID"

    def validate_session_store_config(self) -> list[str]:
        """Erros de configuração do backend de sessões (lista vazia = OK).

        memory guarda sessões por processo: com várias instâncias, ativação e
        callback podem cair em réplicas diferentes. Proibido fora de dev.
        """
        errors: list[str] = []
        backend = self.session_store_backend.lower()

        if backend not in SESSION_STORE_BACKENDS:
            errors.append(
                f"SESSION_STORE_BACKEND={backend} desconhecido; use {sorted(SESSION_STORE_BACKENDS)}"
            )
        elif backend == "memory" and (self.is_production or self.is_staging):
            errors.append("SESSION_STORE_BACKEND=memory é proibido em staging/production")
        elif backend == "redis" and not self.redis_url:
            errors.append("SESSION_STORE_BACKEND=redis requer REDIS_URL")

        return errors

    def validate_crypto_config(self) -> list[str]:
        """Valida chave de criptografia e secret de assinatura.

        Em staging/prod ambos são obrigatórios (fail-closed). Em development
        a ausência é tolerada: uma chave efêmera é gerada por processo.
        """
        errors: list[str] = []
        key = self.pos_encryption_key

        if key:
            if len(key) != ENCRYPTION_KEY_HEX_LENGTH:
                errors.append("POS_ENCRYPTION_KEY deve ter 64 caracteres hex (32 bytes)")
            else:
                try:
                    bytes.fromhex(key)
                except ValueError:
                    errors.append("POS_ENCRYPTION_KEY deve ser hexadecimal")
        elif self.is_production or self.is_staging:
            errors.append("POS_ENCRYPTION_KEY obrigatório em staging/production")

        if not self.pos_token_secret and (self.is_production or self.is_staging):
            errors.append("POS_TOKEN_SECRET obrigatório em staging/production")

        if self.pos_environment.lower() not in {"sandbox", "production"}:
            errors.append("POS_ENVIRONMENT inválido: use sandbox | production")

        return errors

    def validate_session_ttl(self) -> list[str]:
        """Valida limites de expiração da sessão."""
        errors: list[str] = []
        if self.session_default_ttl_minutes <= 0:
            errors.append("SESSION_DEFAULT_TTL_MINUTES deve ser > 0")
        if self.session_default_ttl_minutes > self.session_max_ttl_minutes:
            errors.append("SESSION_DEFAULT_TTL_MINUTES não pode exceder SESSION_MAX_TTL_MINUTES")
        if self.sweeper_interval_seconds <= 0:
            errors.append("SWEEPER_INTERVAL_SECONDS deve ser > 0")
        return errors

    @property
    def is_production(self) -> bool:
        return self.environment.lower() in PRODUCTION_NAMES

    @property
    def is_staging(self) -> bool:
        return self.environment.lower() in STAGING_NAMES

    @property
    def is_development(self) -> bool:
        return self.environment.lower() in DEVELOPMENT_NAMES

    def callback_url_for(self, session_id: str) -> str:
        """Retorna URL de callback que o POS chama ao concluir.

        Formato: {api_base_url}/api/v1/pos-link/callback/{session_id}
        """
        return f"{self.api_base_url.rstrip('/')}/api/v1/pos-link/callback/{session_id}"

    def model_post_init(self, __context: Any) -> None:
        """Em staging/production, chave AES e secret de tokens vêm do Secret Manager.

        Todas as instâncias precisam ler o mesmo par; ausência de qualquer um
        impede o boot. Valores nunca são logados.
        """
        if not (self.is_staging or self.is_production):
            return

        logger: logging.Logger = get_logger(__name__)
        context = {"environment": self.environment}

        if os.getenv("SKIP_SECRET_MANAGER", "").lower() == "true":
            logger.error("SKIP_SECRET_MANAGER recusado fora de development", extra=context)
            raise RuntimeError("SKIP_SECRET_MANAGER não é permitido em staging/production")

        # pytest define PYTEST_CURRENT_TEST; secrets chegam pelos kwargs do teste
        if os.getenv("PYTEST_CURRENT_TEST"):
            return

        project_id = os.getenv("GOOGLE_CLOUD_PROJECT")
        if not project_id:
            logger.error("Secret Manager sem GOOGLE_CLOUD_PROJECT", extra=context)
            raise RuntimeError("GOOGLE_CLOUD_PROJECT obrigatório em staging/production")

        try:
            secrets = get_pos_secrets(
                create_secret_provider(backend="secret_manager", project_id=project_id)
            )
        except Exception as e:
            logger.error(
                "Segredos do handoff indisponíveis no Secret Manager",
                extra={**context, "error": type(e).__name__},
            )
            raise RuntimeError(f"Falha ao carregar segredos do handoff: {type(e).__name__}") from e

        self.pos_encryption_key = secrets.encryption_key
        self.pos_token_secret = secrets.token_secret

        errors = self.validate_crypto_config()
        if errors:
            logger.error("Segredos do handoff inválidos", extra={**context, "errors": errors})
            raise RuntimeError(f"Configuração de criptografia inválida: {'; '.join(errors)}")

        logger.info("Segredos do handoff carregados do Secret Manager", extra=context)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Settings única por processo (limpar com get_settings.cache_clear())."""
    return Settings()
