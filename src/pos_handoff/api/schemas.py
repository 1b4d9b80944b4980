"""Corpos de request das rotas /api/v1/pos-link."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from pos_handoff.domain.enums import DeviceType, Platform, SessionPurpose, SessionSource
from pos_handoff.domain.models import Branding, CompletionData


class GenerateSessionBody(BaseModel):
    user_id: str = Field(min_length=1)
    loan_id: str | None = None
    loan_officer_id: str | None = None
    referral_source_id: str | None = None
    pos_system: str = "blend"
    purpose: SessionPurpose = SessionPurpose.NEW_APPLICATION
    source: SessionSource = SessionSource.MOBILE_APP
    expiration_minutes: int | None = Field(default=None, ge=0)
    branding: Branding | None = None
    return_url: str | None = None


class ActivateBody(BaseModel):
    session_token: str = Field(min_length=1)
    device_type: DeviceType | None = None
    platform: Platform | None = None


class TrackBody(BaseModel):
    event_type: str = Field(min_length=1, max_length=64)
    details: dict[str, Any] | str | None = None


class CallbackBody(BaseModel):
    callback_token: str | None = None
    completion_data: CompletionData | None = None


class CancelBody(BaseModel):
    reason: str | None = None
    actor: str | None = None


class FailBody(BaseModel):
    message: str = Field(min_length=1)
    code: str | None = None
    details: dict[str, Any] | None = None


class ExtendBody(BaseModel):
    additional_minutes: int = Field(gt=0)
    actor: str | None = None
