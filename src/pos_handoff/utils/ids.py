"""Geradores de identificadores da sessão de handoff."""

from __future__ import annotations

import secrets
import time

SESSION_ID_PREFIX = "pos_"
SESSION_TOKEN_BYTES = 32  # 256 bits


def new_session_id() -> str:
    """Gera um session_id público, URL-safe e único.

    Formato: pos_{epoch_ms}_{32 hex}
    """

    return f"{SESSION_ID_PREFIX}{int(time.time() * 1000)}_{secrets.token_hex(16)}"


def new_session_token() -> str:
    """Gera o segredo de posse da sessão (256 bits, hex)."""

    return secrets.token_hex(SESSION_TOKEN_BYTES)
