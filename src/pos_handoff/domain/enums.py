"""Enums de domínio para sistemas POS, propósito, origem e classificação de cliente."""

from __future__ import annotations

from enum import StrEnum


class PosSystem(StrEnum):
    """Sistemas POS externos suportados."""

    BLEND = "blend"
    BIG_POS = "big_pos"
    ENCOMPASS_CONSUMER_CONNECT = "encompass_consumer_connect"


class PosEnvironment(StrEnum):
    SANDBOX = "sandbox"
    PRODUCTION = "production"


class SessionPurpose(StrEnum):
    """Motivo do handoff."""

    NEW_APPLICATION = "new_application"
    CONTINUE_APPLICATION = "continue_application"
    DOCUMENT_UPLOAD = "document_upload"
    RATE_LOCK = "rate_lock"
    DISCLOSURE_REVIEW = "disclosure_review"


class SessionSource(StrEnum):
    """Superfície de origem do handoff."""

    MOBILE_APP = "mobile_app"
    WEB_APP = "web_app"
    BUSINESS_CARD = "business_card"
    CALCULATOR = "calculator"
    PREAPPROVAL_LETTER = "preapproval_letter"
    EMAIL_LINK = "email_link"


class DeviceType(StrEnum):
    MOBILE = "mobile"
    TABLET = "tablet"
    DESKTOP = "desktop"
    UNKNOWN = "unknown"


class Platform(StrEnum):
    IOS = "ios"
    ANDROID = "android"
    WEB = "web"
    UNKNOWN = "unknown"


class BrandingTheme(StrEnum):
    DEFAULT = "default"
    CO_BRANDED = "co_branded"
    WHITE_LABEL = "white_label"
