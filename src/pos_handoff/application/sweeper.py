"""Sweeper de expiração: PENDING/ACTIVE com expires_at vencido → EXPIRED.

Cada execução consome lotes de find_expirable até esgotar o backlog.
Não reentrante: uma execução concorrente retorna imediatamente com
skipped=True. Falhas por registro são logadas e contadas; o lote segue.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime

from pos_handoff.application.repository import SessionRepository
from pos_handoff.domain.errors import InvalidStateTransition, SessionNotFound
from pos_handoff.domain.models import HandoffSession
from pos_handoff.domain.session import SessionStatus
from pos_handoff.observability.logging import get_logger

logger: logging.Logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class SweepResult:
    expired_count: int = 0
    failed_count: int = 0
    skipped: bool = False


class ExpirationSweeper:
    def __init__(self, repository: SessionRepository, batch_size: int = 500) -> None:
        self._repo = repository
        self._batch_size = batch_size
        self._running = threading.Lock()

    def sweep(self, now: datetime | None = None) -> SweepResult:
        if not self._running.acquire(blocking=False):
            logger.info("Expiration sweep already running; skipping")
            return SweepResult(skipped=True)

        try:
            return self._sweep(now or self._repo.now())
        finally:
            self._running.release()

    def _sweep(self, now: datetime) -> SweepResult:
        expired = 0
        failed = 0
        seen: set[str] = set()

        def _still_expired(session: HandoffSession, _ts: datetime) -> None:
            # Prorrogada entre a varredura e a escrita
            if not session.is_past_expiry(now):
                raise InvalidStateTransition(details={"reason": "expiry extended"})

        # Lotes até esgotar o backlog; ids já vistos (falhas) encerram o laço
        while True:
            batch = self._repo.find_expirable(now, self._batch_size)
            candidates = [s for s in batch if s.session_id not in seen]
            for session in candidates:
                seen.add(session.session_id)
                try:
                    self._repo.transition(
                        session.session_id,
                        SessionStatus.EXPIRED,
                        mutate=_still_expired,
                        details=f"expires_at={session.expires_at.isoformat()}",
                    )
                    expired += 1
                except (InvalidStateTransition, SessionNotFound):
                    # Outra escrita venceu (conclusão, cancelamento ou outro sweep)
                    logger.debug(
                        "Session no longer expirable", extra={"session_id": session.session_id}
                    )
                except Exception as e:
                    failed += 1
                    logger.error(
                        "Failed to expire session",
                        extra={"session_id": session.session_id, "error": type(e).__name__},
                    )

            if not candidates or len(batch) < self._batch_size:
                break

        logger.info(
            "Expiration sweep finished",
            extra={
                "candidates": len(seen),
                "expired_count": expired,
                "failed_count": failed,
            },
        )
        return SweepResult(expired_count=expired, failed_count=failed)
