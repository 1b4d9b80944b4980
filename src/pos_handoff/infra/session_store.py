"""Factory do SessionStore conforme settings.session_store_backend.

- "memory": InMemorySessionStore (dev/testes)
- "redis": RedisSessionStore (requer REDIS_URL)
- "firestore": FirestoreSessionStore
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pos_handoff.infra.session_contract import SessionStore, SessionStoreError
from pos_handoff.infra.session_store_firestore import FirestoreSessionStore
from pos_handoff.infra.session_store_memory import InMemorySessionStore
from pos_handoff.infra.session_store_redis import RedisSessionStore
from pos_handoff.observability.logging import get_logger

if TYPE_CHECKING:
    from pos_handoff.config.settings import Settings

logger: logging.Logger = get_logger(__name__)


def create_session_store(settings: Settings, client: Any | None = None) -> SessionStore:
    """Cria o store configurado.

    Args:
        settings: Configurações da aplicação
        client: Cliente Redis/Firestore já construído (testes ou reuso)

    Raises:
        ValueError: backend não reconhecido
        SessionStoreError: backend indisponível
    """
    backend = settings.session_store_backend.lower()

    if backend == "memory":
        if settings.is_production or settings.is_staging:
            raise SessionStoreError("InMemorySessionStore não é permitido em staging/production")
        logger.info("Usando InMemorySessionStore (apenas dev/testes)")
        return InMemorySessionStore()

    if backend == "redis":
        if client is None:
            if not settings.redis_url:
                raise SessionStoreError("REDIS_URL obrigatório para backend redis")
            import redis

            client = redis.Redis.from_url(settings.redis_url, decode_responses=True)
        logger.info("Usando RedisSessionStore")
        return RedisSessionStore(client)

    if backend == "firestore":
        if client is None:
            from google.cloud import firestore

            client = firestore.Client(
                project=settings.firestore_project_id,
                database=settings.firestore_database_id,
            )
        logger.info(
            "Usando FirestoreSessionStore",
            extra={"collection": settings.sessions_collection},
        )
        return FirestoreSessionStore(client, collection=settings.sessions_collection)

    raise ValueError(f"Backend de session store não reconhecido: {backend}")


__all__ = [
    "SessionStore",
    "SessionStoreError",
    "InMemorySessionStore",
    "RedisSessionStore",
    "FirestoreSessionStore",
    "create_session_store",
]
