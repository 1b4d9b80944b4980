"""Execução periódica do sweeper de expiração dentro do processo.

Roda no event loop do FastAPI (lifespan); cada execução vai para uma thread
via asyncio.to_thread para não bloquear requests. Em produção com várias
instâncias, o endpoint /internal/sweep acionado por Cloud Scheduler pode
substituir este runner (SWEEPER_ENABLED=false).
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from contextlib import suppress

from pos_handoff.application.sweeper import ExpirationSweeper, SweepResult
from pos_handoff.observability.logging import get_logger
from pos_handoff.observability.middleware import bind_correlation_id

logger: logging.Logger = get_logger(__name__)


def run_sweep(sweeper: ExpirationSweeper) -> SweepResult:
    bind_correlation_id(f"sweep-{uuid.uuid4().hex[:12]}")
    return sweeper.sweep()


class PeriodicSweeper:
    def __init__(self, sweeper: ExpirationSweeper, interval_seconds: float) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds deve ser > 0")
        self._sweeper = sweeper
        self._interval = interval_seconds
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name="expiration-sweeper")
        logger.info("Periodic sweeper started", extra={"interval_seconds": self._interval})

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("Periodic sweeper stopped")

    async def run_once(self) -> SweepResult:
        return await asyncio.to_thread(run_sweep, self._sweeper)

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self.run_once()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error("Periodic sweep failed", extra={"error": type(e).__name__})
