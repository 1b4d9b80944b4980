"""Taxonomia de erros do protocolo de handoff.

Toda falha de operação é tipada (nunca string solta). As mensagens públicas
indicam apenas a categoria: nada de "token existe mas não confere" versus
"sessão não existe", para não permitir enumeração de sessões.
"""

from __future__ import annotations

from typing import Any


class HandoffError(Exception):
    """Erro base; `code` é estável e vai para errors[] e para a resposta HTTP."""

    code: str = "HANDOFF_ERROR"
    public_message: str = "Handoff session error"

    def __init__(self, message: str | None = None, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message or self.public_message)
        self.details: dict[str, Any] = details or {}


class SessionNotFound(HandoffError):
    """Sessão inexistente."""

    code = "NOT_FOUND"
    public_message = "Session not found"


class InvalidToken(HandoffError):
    """sessionToken não confere (ou sessão inexistente na ativação)."""

    code = "UNAUTHORIZED"
    public_message = "Invalid session credentials"


class SessionExpired(HandoffError):
    """expires_at já passou."""

    code = "EXPIRED"
    public_message = "Session expired"


class InvalidStateTransition(HandoffError):
    """Transição fora da tabela (inclui qualquer saída de estado terminal)."""

    code = "INVALID_STATE_TRANSITION"
    public_message = "Operation not allowed in current session state"


class InvalidCallbackToken(HandoffError):
    """Token de callback inválido, expirado ou de outro tipo."""

    code = "INVALID_CALLBACK_TOKEN"
    public_message = "Invalid or expired callback token"


class UnsupportedPOSSystem(HandoffError):
    """POS sem mapeamento de redirect URL."""

    code = "UNSUPPORTED_POS_SYSTEM"
    public_message = "Unsupported POS system"


class DecryptionError(HandoffError):
    """Chave/IV incorretos ou ciphertext corrompido."""

    code = "DECRYPTION_ERROR"
    public_message = "Session payload could not be decrypted"


class HandoffValidationError(HandoffError):
    """Entrada malformada."""

    code = "VALIDATION_ERROR"
    public_message = "Invalid request"


class TokenVerificationError(Exception):
    """Falha de verificação de token (assinatura, expiração ou tipo).

    Erro da camada criptográfica; as operações o traduzem para o erro de
    domínio adequado (ex.: InvalidCallbackToken).
    """

    def __init__(self, reason: str) -> None:
        super().__init__(f"Token verification failed: {reason}")
        self.reason = reason
