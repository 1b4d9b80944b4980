from __future__ import annotations

import logging
import os

from pos_handoff.observability.logging import get_logger

logger: logging.Logger = get_logger(__name__)


class EnvSecretProvider:
    """Segredos em variáveis de ambiente (development, testes e CI)."""

    def get_secret(self, name: str, version: str = "latest") -> str:
        value = os.environ.get(name, "")
        if value:
            return value
        logger.warning("Secret ausente no ambiente", extra={"secret_name": name, "provider": "env"})
        raise RuntimeError(f"Secret {name} não encontrado no ambiente")

    def secret_exists(self, name: str) -> bool:
        return name in os.environ
