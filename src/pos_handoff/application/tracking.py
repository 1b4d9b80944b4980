"""Rastreamento de eventos de engajamento no POS.

Aceito em qualquer status (inclusive terminais): analytics tardios do POS
continuam sendo registrados. Nenhum evento altera o status da sessão.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any

from pos_handoff.application.repository import SessionRepository
from pos_handoff.domain.errors import HandoffValidationError
from pos_handoff.domain.models import HandoffSession
from pos_handoff.domain.session import TRACKED_EVENT_ACTIONS, TrackedEvent
from pos_handoff.observability.logging import get_logger

logger: logging.Logger = get_logger(__name__)

MAX_EVENT_TYPE_LENGTH = 64


def _encode_details(details: Any) -> str | None:
    if details is None:
        return None
    if isinstance(details, str):
        return details
    return json.dumps(details, separators=(",", ":"), sort_keys=True, default=str)


def apply_event(session: HandoffSession, event_type: str, details: Any, now: datetime) -> None:
    analytics = session.analytics
    action: str = event_type

    try:
        tracked = TrackedEvent(event_type)
    except ValueError:
        tracked = None

    if tracked is TrackedEvent.PAGE_VIEW:
        analytics.page_views += 1
    elif tracked is TrackedEvent.DOCUMENT_UPLOAD:
        analytics.documents_uploaded += 1
    elif tracked is TrackedEvent.STEP_COMPLETE:
        analytics.steps_completed += 1
        if isinstance(details, dict) and isinstance(details.get("total_steps"), int):
            analytics.total_steps = details["total_steps"]

    if tracked is not None:
        action = TRACKED_EVENT_ACTIONS[tracked].value

    session.append_audit(action, details=_encode_details(details), timestamp=now)


class EventTracker:
    def __init__(self, repository: SessionRepository) -> None:
        self._repo = repository

    def track(self, session_id: str, event_type: str, details: Any = None) -> HandoffSession:
        if not event_type or len(event_type) > MAX_EVENT_TYPE_LENGTH:
            raise HandoffValidationError(details={"event_type": "must be 1-64 characters"})

        updated = self._repo.update(
            session_id, lambda s, now: apply_event(s, event_type, details, now)
        )
        logger.debug(
            "Session event tracked",
            extra={"session_id": session_id, "event_type": event_type},
        )
        return updated
