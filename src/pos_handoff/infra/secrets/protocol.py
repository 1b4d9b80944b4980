from __future__ import annotations

from typing import Protocol


class SecretProvider(Protocol):
    """Origem da chave AES e do secret de assinatura dos tokens.

    Falta de um segredo é RuntimeError; o valor lido jamais vai para log.
    """

    def get_secret(self, name: str, version: str = "latest") -> str: ...

    def secret_exists(self, name: str) -> bool: ...
