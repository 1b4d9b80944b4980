"""Primitivas criptográficas do payload de sessão (AES-256-CBC).

Responsabilidades:
- Cifrar/decifrar o payload da sessão com IV aleatório por chamada
- Isolamento de cryptography.hazmat
- A chave é injetada (PayloadCipher), nunca lida do ambiente por chamada
"""

from __future__ import annotations

import json
import os
import secrets
from typing import Any

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from pos_handoff.domain.errors import DecryptionError
from pos_handoff.observability.logging import get_logger

logger = get_logger(__name__)

AES_KEY_SIZE = 32  # 256 bits
IV_SIZE = 16  # bloco AES (CBC)
BLOCK_SIZE_BITS = 128


def parse_key(key: bytes | str) -> bytes:
    """Aceita chave em bytes ou hex (64 chars) e valida o tamanho."""
    if isinstance(key, str):
        try:
            key = bytes.fromhex(key)
        except ValueError as e:
            raise ValueError("Encryption key must be hex-encoded") from e
    if len(key) != AES_KEY_SIZE:
        raise ValueError(f"Invalid AES key size: {len(key)}")
    return key


def generate_key_hex() -> str:
    """Gera uma chave AES-256 nova em hex (bootstrap/dev)."""
    return secrets.token_hex(AES_KEY_SIZE)


def encrypt_payload(payload: dict[str, Any], key: bytes) -> tuple[str, str]:
    """Cifra payload JSON com AES-256-CBC.

    Returns:
        (ciphertext_hex, iv_hex): IV novo a cada chamada
    """
    key = parse_key(key)
    iv = os.urandom(IV_SIZE)

    plaintext = json.dumps(payload, separators=(",", ":"), default=str).encode("utf-8")
    padder = padding.PKCS7(BLOCK_SIZE_BITS).padder()
    padded = padder.update(plaintext) + padder.finalize()

    encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    ciphertext = encryptor.update(padded) + encryptor.finalize()
    return ciphertext.hex(), iv.hex()


def decrypt_payload(ciphertext_hex: str, iv_hex: str, key: bytes) -> dict[str, Any]:
    """Decifra payload cifrado por encrypt_payload.

    Raises:
        DecryptionError: chave/IV incorretos ou ciphertext corrompido
    """
    key = parse_key(key)
    try:
        ciphertext = bytes.fromhex(ciphertext_hex)
        iv = bytes.fromhex(iv_hex)

        decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
        padded = decryptor.update(ciphertext) + decryptor.finalize()

        unpadder = padding.PKCS7(BLOCK_SIZE_BITS).unpadder()
        plaintext = unpadder.update(padded) + unpadder.finalize()
        return json.loads(plaintext.decode("utf-8"))
    except Exception as e:
        raise DecryptionError(details={"reason": type(e).__name__}) from e


class PayloadCipher:
    """Cifra de payload com chave estável do processo.

    Instanciada uma vez no boot a partir da configuração; todas as instâncias
    do serviço precisam da mesma chave para decifrar sessões umas das outras.
    """

    def __init__(self, key: bytes | str) -> None:
        self._key = parse_key(key)

    @classmethod
    def from_settings(cls, encryption_key: str | None, *, allow_ephemeral: bool) -> PayloadCipher:
        """Cria a cifra a partir da configuração.

        Sem chave configurada: falha (staging/prod) ou gera chave efêmera
        válida apenas para este processo (development).
        """
        if encryption_key:
            return cls(encryption_key)
        if not allow_ephemeral:
            raise RuntimeError("POS_ENCRYPTION_KEY não configurada")
        logger.warning(
            "POS_ENCRYPTION_KEY ausente; usando chave efêmera do processo (apenas dev)",
        )
        return cls(generate_key_hex())

    def encrypt(self, payload: dict[str, Any]) -> tuple[str, str]:
        return encrypt_payload(payload, self._key)

    def decrypt(self, ciphertext_hex: str, iv_hex: str) -> dict[str, Any]:
        return decrypt_payload(ciphertext_hex, iv_hex, self._key)

    def __repr__(self) -> str:
        return "PayloadCipher(key=***)"
