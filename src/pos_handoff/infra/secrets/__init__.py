from __future__ import annotations

from .env_provider import EnvSecretProvider
from .factory import PosSecrets, create_secret_provider, get_pos_secrets
from .gcp_provider import SecretManagerProvider
from .protocol import SecretProvider

__all__ = [
    "SecretProvider",
    "EnvSecretProvider",
    "SecretManagerProvider",
    "PosSecrets",
    "create_secret_provider",
    "get_pos_secrets",
]
