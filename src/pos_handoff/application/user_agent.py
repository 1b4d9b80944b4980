"""Classificação heurística de dispositivo/plataforma a partir do User-Agent."""

from __future__ import annotations

import re

from pos_handoff.domain.enums import DeviceType, Platform

# Ordem importa: primeira regra que casar vence
_DEVICE_RULES: tuple[tuple[re.Pattern[str], DeviceType], ...] = (
    (re.compile(r"mobile", re.I), DeviceType.MOBILE),
    (re.compile(r"tablet|ipad", re.I), DeviceType.TABLET),
    (re.compile(r"desktop|windows|mac|linux", re.I), DeviceType.DESKTOP),
)

_PLATFORM_RULES: tuple[tuple[re.Pattern[str], Platform], ...] = (
    (re.compile(r"android", re.I), Platform.ANDROID),
    (re.compile(r"iphone|ipad|ipod", re.I), Platform.IOS),
    (re.compile(r"windows|mac|linux", re.I), Platform.WEB),
)


def detect_device_type(user_agent: str | None) -> DeviceType:
    if not user_agent:
        return DeviceType.UNKNOWN
    for pattern, device in _DEVICE_RULES:
        if pattern.search(user_agent):
            return device
    return DeviceType.UNKNOWN


def detect_platform(user_agent: str | None) -> Platform:
    if not user_agent:
        return Platform.UNKNOWN
    for pattern, platform in _PLATFORM_RULES:
        if pattern.search(user_agent):
            return platform
    return Platform.UNKNOWN
