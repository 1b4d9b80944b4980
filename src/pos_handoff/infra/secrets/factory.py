from __future__ import annotations

import logging
from dataclasses import dataclass

from pos_handoff.observability.logging import get_logger

from .env_provider import EnvSecretProvider
from .gcp_provider import SecretManagerProvider
from .protocol import SecretProvider

logger: logging.Logger = get_logger(__name__)

POS_ENCRYPTION_KEY = "POS_ENCRYPTION_KEY"
POS_TOKEN_SECRET = "POS_TOKEN_SECRET"


@dataclass(frozen=True, slots=True)
class PosSecrets:
    """Par de segredos do protocolo de handoff (nunca logar)."""

    encryption_key: str
    token_secret: str

    def __repr__(self) -> str:
        return "PosSecrets(encryption_key=***, token_secret=***)"


def create_secret_provider(backend: str = "env", project_id: str | None = None) -> SecretProvider:
    """env (dev/CI) ou secret_manager (staging/production)."""
    builders = {
        "env": EnvSecretProvider,
        "secret_manager": lambda: SecretManagerProvider(project_id=project_id),
    }
    if backend not in builders:
        raise ValueError(f"Backend de secrets desconhecido: {backend}")

    provider: SecretProvider = builders[backend]()

    logger.info("Secret provider selecionado", extra={"backend": backend, "project_id": project_id})
    return provider


def get_pos_secrets(provider: SecretProvider | None = None) -> PosSecrets:
    """Carrega chave AES e secret de assinatura; ambos obrigatórios."""
    source = provider if provider is not None else EnvSecretProvider()
    return PosSecrets(
        encryption_key=source.get_secret(POS_ENCRYPTION_KEY),
        token_secret=source.get_secret(POS_TOKEN_SECRET),
    )
