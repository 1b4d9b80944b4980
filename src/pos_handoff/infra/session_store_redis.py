"""Implementação de SessionStore usando Redis (produção).

Layout de chaves:
- handoff_session:{session_id}        JSON da sessão
- handoff_sessions:expiry             ZSET (score = expires_at epoch) de não-terminais
- handoff_sessions:user:{user_id}     SET de session_ids do usuário
- handoff_sessions:officer:{lo_id}    SET de session_ids do loan officer

create e compare_and_set usam WATCH/MULTI: se outra instância gravar a chave entre o
WATCH e o EXEC, o redis-py lança WatchError e a escrita é descartada.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from redis.exceptions import WatchError

from pos_handoff.domain.models import HandoffSession
from pos_handoff.domain.protocols.session_store import SessionQuery
from pos_handoff.domain.session import TERMINAL_STATES
from pos_handoff.infra.session_contract import (
    SessionStore,
    SessionStoreError,
    is_expirable,
    matches_query,
    paginate,
)
from pos_handoff.observability.logging import get_logger

logger: logging.Logger = get_logger(__name__)

SESSION_KEY_PREFIX = "handoff_session:"
EXPIRY_INDEX_KEY = "handoff_sessions:expiry"
USER_INDEX_PREFIX = "handoff_sessions:user:"
OFFICER_INDEX_PREFIX = "handoff_sessions:officer:"


def _decode(raw: Any) -> str | None:
    if raw is None:
        return None
    if isinstance(raw, bytes):
        return raw.decode("utf-8")
    return raw


class RedisSessionStore(SessionStore):
    """Armazenamento em Redis (Upstash/Memorystore) para instâncias horizontais."""

    def __init__(self, redis_client: Any) -> None:
        self._redis = redis_client

    @staticmethod
    def _key(session_id: str) -> str:
        return f"{SESSION_KEY_PREFIX}{session_id}"

    def create(self, session: HandoffSession) -> None:
        """Grava documento e índices numa única transação MULTI/EXEC.

        WATCH na chave garante que ela continua ausente no EXEC; uma falha
        antes do EXEC não deixa documento sem entrada no índice de expiração.
        """
        key = self._key(session.session_id)
        pipe = self._redis.pipeline()
        try:
            pipe.watch(key)
            if pipe.exists(key):
                raise SessionStoreError(f"Session already exists: {session.session_id}")

            pipe.multi()
            pipe.set(key, session.model_dump_json())
            pipe.zadd(EXPIRY_INDEX_KEY, {session.session_id: session.expires_at.timestamp()})
            pipe.sadd(f"{USER_INDEX_PREFIX}{session.user_id}", session.session_id)
            if session.loan_officer_id:
                pipe.sadd(f"{OFFICER_INDEX_PREFIX}{session.loan_officer_id}", session.session_id)
            pipe.execute()
        except WatchError as e:
            raise SessionStoreError(f"Session already exists: {session.session_id}") from e
        except SessionStoreError:
            raise
        except Exception as e:
            logger.error(
                "Failed to create session in Redis",
                extra={"session_id": session.session_id, "error": type(e).__name__},
            )
            raise SessionStoreError(f"Redis create failed: {e}") from e
        finally:
            pipe.reset()

        logger.debug("Session created (Redis)", extra={"session_id": session.session_id})

    def load(self, session_id: str) -> HandoffSession | None:
        try:
            payload = _decode(self._redis.get(self._key(session_id)))
        except Exception as e:
            logger.error(
                "Failed to load session from Redis",
                extra={"session_id": session_id, "error": type(e).__name__},
            )
            raise SessionStoreError(f"Redis load failed: {e}") from e

        if not payload:
            return None
        return HandoffSession.model_validate_json(payload)

    def compare_and_set(self, session: HandoffSession, expected_version: int) -> bool:
        key = self._key(session.session_id)
        pipe = self._redis.pipeline()
        try:
            pipe.watch(key)
            payload = _decode(pipe.get(key))
            if not payload:
                raise SessionStoreError(f"Session not found: {session.session_id}")

            current = HandoffSession.model_validate_json(payload)
            if current.version != expected_version:
                return False

            pipe.multi()
            pipe.set(key, session.model_dump_json())
            if session.status in TERMINAL_STATES:
                pipe.zrem(EXPIRY_INDEX_KEY, session.session_id)
            else:
                pipe.zadd(EXPIRY_INDEX_KEY, {session.session_id: session.expires_at.timestamp()})
            pipe.execute()
            return True
        except WatchError:
            logger.debug(
                "Concurrent write detected (Redis)",
                extra={"session_id": session.session_id, "expected_version": expected_version},
            )
            return False
        except SessionStoreError:
            raise
        except Exception as e:
            logger.error(
                "Failed to compare-and-set session in Redis",
                extra={"session_id": session.session_id, "error": type(e).__name__},
            )
            raise SessionStoreError(f"Redis compare_and_set failed: {e}") from e
        finally:
            pipe.reset()

    def find_expirable(self, now: datetime, limit: int = 500) -> list[HandoffSession]:
        try:
            raw_ids = self._redis.zrangebyscore(
                EXPIRY_INDEX_KEY, "-inf", f"({now.timestamp()}", start=0, num=limit
            )
        except Exception as e:
            logger.error("Failed to scan expiry index in Redis", extra={"error": type(e).__name__})
            raise SessionStoreError(f"Redis expiry scan failed: {e}") from e

        sessions = self._load_many([_decode(i) for i in raw_ids])
        return [s for s in sessions if is_expirable(s, now)]

    def list_sessions(self, query: SessionQuery) -> list[HandoffSession]:
        return paginate(self._filtered(query), query)

    def count_sessions(self, query: SessionQuery) -> int:
        return len(self._filtered(query))

    def _filtered(self, query: SessionQuery) -> list[HandoffSession]:
        if query.user_id is not None:
            index_key = f"{USER_INDEX_PREFIX}{query.user_id}"
        elif query.loan_officer_id is not None:
            index_key = f"{OFFICER_INDEX_PREFIX}{query.loan_officer_id}"
        else:
            raise SessionStoreError("Redis listing requires user_id or loan_officer_id")

        try:
            members = self._redis.smembers(index_key)
        except Exception as e:
            logger.error("Failed to read session index in Redis", extra={"error": type(e).__name__})
            raise SessionStoreError(f"Redis index read failed: {e}") from e

        sessions = self._load_many([_decode(m) for m in members])
        return [s for s in sessions if matches_query(s, query)]

    def _load_many(self, session_ids: list[str | None]) -> list[HandoffSession]:
        ids = [i for i in session_ids if i]
        if not ids:
            return []
        try:
            payloads = self._redis.mget([self._key(i) for i in ids])
        except Exception as e:
            logger.error("Failed to load sessions from Redis", extra={"error": type(e).__name__})
            raise SessionStoreError(f"Redis mget failed: {e}") from e

        return [
            HandoffSession.model_validate_json(p)
            for p in (_decode(raw) for raw in payloads)
            if p
        ]
