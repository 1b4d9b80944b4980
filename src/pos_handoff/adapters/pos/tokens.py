"""Tokens assinados (JWT HS256) do handoff e do callback do POS.

- Token de handoff: vai na redirect URL, `exp` = expires_at da sessão
- Token de callback: TTL fixo de 5 minutos, tipo `pos_oauth`
- O claim `type` impede reuso de um token como o outro
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

import jwt

from pos_handoff.domain.errors import TokenVerificationError

ALGORITHM = "HS256"
HANDOFF_TOKEN_TYPE = "pos_handoff"
CALLBACK_TOKEN_TYPE = "pos_oauth"
CALLBACK_TOKEN_TTL_SECONDS = 300


def _epoch(value: datetime) -> int:
    return int(value.timestamp())


def sign_handoff_token(
    claims: dict[str, Any],
    secret: str,
    expires_at: datetime,
    issued_at: datetime | None = None,
) -> str:
    """Assina o token de handoff.

    `claims` deve conter session_id, user_id, loan_id e purpose.
    """
    issued_at = issued_at or datetime.now(tz=UTC)
    payload = {
        "session_id": claims["session_id"],
        "user_id": claims.get("user_id"),
        "loan_id": claims.get("loan_id"),
        "purpose": claims.get("purpose"),
        "type": HANDOFF_TOKEN_TYPE,
        "iat": _epoch(issued_at),
        "exp": _epoch(expires_at),
    }
    return jwt.encode(payload, secret, algorithm=ALGORITHM)


def sign_callback_token(
    session_id: str,
    secret: str,
    issued_at: datetime | None = None,
    ttl_seconds: int = CALLBACK_TOKEN_TTL_SECONDS,
) -> str:
    """Assina token curto para o callback de conclusão do POS."""
    issued_at = issued_at or datetime.now(tz=UTC)
    payload = {
        "session_id": session_id,
        "type": CALLBACK_TOKEN_TYPE,
        "iat": _epoch(issued_at),
        "exp": _epoch(issued_at + timedelta(seconds=ttl_seconds)),
    }
    return jwt.encode(payload, secret, algorithm=ALGORITHM)


def verify_token(token: str, secret: str, expected_type: str) -> dict[str, Any]:
    """Verifica assinatura, expiração e tipo.

    Raises:
        TokenVerificationError: motivo em `reason` (nunca expor ao cliente)
    """
    try:
        claims = jwt.decode(
            token,
            secret,
            algorithms=[ALGORITHM],
            options={"require": ["exp", "iat"]},
        )
    except jwt.ExpiredSignatureError as e:
        raise TokenVerificationError("expired") from e
    except jwt.InvalidTokenError as e:
        raise TokenVerificationError("invalid") from e

    if claims.get("type") != expected_type:
        raise TokenVerificationError("wrong_type")

    return claims
