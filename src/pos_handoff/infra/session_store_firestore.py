"""Implementação de SessionStore usando Firestore (produção).

Coleção padrão: handoff_sessions/{session_id}
compare_and_set roda em transação: lê `version` e grava somente se ainda
for a esperada; contenção é resolvida pelo próprio Firestore.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from google.api_core.exceptions import AlreadyExists
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from pos_handoff.domain.models import HandoffSession
from pos_handoff.domain.protocols.session_store import SessionQuery
from pos_handoff.domain.session import NON_TERMINAL_STATES
from pos_handoff.infra.session_contract import (
    SessionStore,
    SessionStoreError,
    is_expirable,
    matches_query,
    paginate,
)
from pos_handoff.observability.logging import get_logger

logger: logging.Logger = get_logger(__name__)


def _to_document(session: HandoffSession) -> dict[str, Any]:
    # Datetimes nativos para permitir queries por expires_at/created_at
    return session.model_dump()


class FirestoreSessionStore(SessionStore):
    """Armazenamento de sessões de handoff em Firestore."""

    def __init__(self, firestore_client: Any, collection: str = "handoff_sessions") -> None:
        self._client = firestore_client
        self._collection = collection

    def _doc(self, session_id: str) -> Any:
        return self._client.collection(self._collection).document(session_id)

    def create(self, session: HandoffSession) -> None:
        try:
            self._doc(session.session_id).create(_to_document(session))
        except AlreadyExists as e:
            raise SessionStoreError(f"Session already exists: {session.session_id}") from e
        except Exception as e:
            logger.error(
                "Failed to create session in Firestore",
                extra={"session_id": session.session_id, "error": type(e).__name__},
            )
            raise SessionStoreError(f"Firestore create failed: {e}") from e

        logger.debug("Session created (Firestore)", extra={"session_id": session.session_id})

    def load(self, session_id: str) -> HandoffSession | None:
        try:
            snapshot = self._doc(session_id).get()
        except Exception as e:
            logger.error(
                "Failed to load session from Firestore",
                extra={"session_id": session_id, "error": type(e).__name__},
            )
            raise SessionStoreError(f"Firestore load failed: {e}") from e

        if not snapshot.exists:
            return None
        data = snapshot.to_dict()
        return HandoffSession.model_validate(data) if data else None

    def compare_and_set(self, session: HandoffSession, expected_version: int) -> bool:
        doc_ref = self._doc(session.session_id)
        payload = _to_document(session)

        @firestore.transactional
        def _txn(transaction: firestore.Transaction) -> bool:
            snapshot = doc_ref.get(transaction=transaction)
            if not snapshot.exists:
                raise SessionStoreError(f"Session not found: {session.session_id}")
            current_version = (snapshot.to_dict() or {}).get("version", 0)
            if current_version != expected_version:
                return False
            transaction.set(doc_ref, payload)
            return True

        try:
            return _txn(self._client.transaction())
        except SessionStoreError:
            raise
        except Exception as e:
            logger.error(
                "Failed to compare-and-set session in Firestore",
                extra={"session_id": session.session_id, "error": type(e).__name__},
            )
            raise SessionStoreError(f"Firestore compare_and_set failed: {e}") from e

    def find_expirable(self, now: datetime, limit: int = 500) -> list[HandoffSession]:
        query = (
            self._client.collection(self._collection)
            .where(filter=FieldFilter("status", "in", [s.value for s in NON_TERMINAL_STATES]))
            .where(filter=FieldFilter("expires_at", "<", now))
            .limit(limit)
        )
        sessions = self._stream(query)
        return [s for s in sessions if is_expirable(s, now)]

    def list_sessions(self, query: SessionQuery) -> list[HandoffSession]:
        return paginate(self._filtered(query), query)

    def count_sessions(self, query: SessionQuery) -> int:
        return len(self._filtered(query))

    def _filtered(self, query: SessionQuery) -> list[HandoffSession]:
        fs_query = self._client.collection(self._collection)
        if query.user_id is not None:
            fs_query = fs_query.where(filter=FieldFilter("user_id", "==", query.user_id))
        if query.loan_officer_id is not None:
            fs_query = fs_query.where(
                filter=FieldFilter("loan_officer_id", "==", query.loan_officer_id)
            )
        if query.status is not None:
            fs_query = fs_query.where(filter=FieldFilter("status", "==", query.status.value))
        sessions = self._stream(fs_query)
        return [s for s in sessions if matches_query(s, query)]

    def _stream(self, query: Any) -> list[HandoffSession]:
        try:
            docs = list(query.stream())
        except Exception as e:
            logger.error("Failed to query sessions in Firestore", extra={"error": type(e).__name__})
            raise SessionStoreError(f"Firestore query failed: {e}") from e
        return [HandoffSession.model_validate(d.to_dict()) for d in docs if d.to_dict()]
