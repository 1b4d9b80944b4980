from __future__ import annotations

import logging
import os
from typing import Any

from pos_handoff.observability.logging import get_logger

logger: logging.Logger = get_logger(__name__)


class SecretManagerProvider:
    """Lê segredos do Google Cloud Secret Manager (staging/production).

    O client é criado na primeira leitura; testes injetam um mock.
    """

    def __init__(self, project_id: str | None = None, client: Any | None = None) -> None:
        self._project_id = project_id or os.getenv("GOOGLE_CLOUD_PROJECT")
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            from google.cloud import secretmanager

            self._client = secretmanager.SecretManagerServiceClient()
        return self._client

    def _secret_path(self, name: str) -> str:
        if not self._project_id:
            raise RuntimeError("project_id ausente: defina GOOGLE_CLOUD_PROJECT")
        return f"projects/{self._project_id}/secrets/{name}"

    def get_secret(self, name: str, version: str = "latest") -> str:
        version_path = f"{self._secret_path(name)}/versions/{version}"
        try:
            response = self.client.access_secret_version(name=version_path)
        except Exception as e:
            logger.error(
                "Secret Manager recusou leitura",
                extra={"secret_name": name, "error": type(e).__name__},
            )
            raise RuntimeError(f"Secret {name} indisponível no Secret Manager") from e

        logger.info("Secret lido", extra={"secret_name": name, "provider": "secret_manager"})
        return response.payload.data.decode("utf-8")

    def secret_exists(self, name: str) -> bool:
        try:
            self.client.get_secret(name=self._secret_path(name))
        except Exception:
            return False
        return True
