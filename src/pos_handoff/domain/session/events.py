"""Ações registradas no audit_log da sessão.

Cada transição de estado gera exatamente uma entrada; eventos de
engajamento (tracker) também geram entrada, sem mudar o estado.
"""

from __future__ import annotations

from enum import StrEnum


class AuditAction(StrEnum):
    """Ações canônicas do audit_log."""

    CREATED = "created"
    ACTIVATED = "activated"
    VIEWED = "viewed"
    STEP_COMPLETED = "step_completed"
    DOCUMENT_UPLOADED = "document_uploaded"
    COMPLETED = "completed"
    EXPIRED = "expired"
    CANCELLED = "cancelled"
    FAILED = "failed"
    EXTENDED = "extended"


class TrackedEvent(StrEnum):
    """Eventos de engajamento com contador próprio em analytics."""

    PAGE_VIEW = "page_view"
    DOCUMENT_UPLOAD = "document_upload"
    STEP_COMPLETE = "step_complete"


# Evento rastreado → ação de auditoria; eventos arbitrários usam o próprio nome
TRACKED_EVENT_ACTIONS: dict[TrackedEvent, AuditAction] = {
    TrackedEvent.PAGE_VIEW: AuditAction.VIEWED,
    TrackedEvent.DOCUMENT_UPLOAD: AuditAction.DOCUMENT_UPLOADED,
    TrackedEvent.STEP_COMPLETE: AuditAction.STEP_COMPLETED,
}
