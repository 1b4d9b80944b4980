"""Configurações centralizadas do pos_handoff.

Este módulo exporta:
- Settings: classe de configuração via variáveis de ambiente
- get_settings: função cacheada para obter instância única
- URLs padrão dos sistemas POS

Uso típico:
    from pos_handoff.config import get_settings
"""

from pos_handoff.config.settings import (
    BIG_POS_URL,
    BLEND_POS_URL,
    ENCOMPASS_CONSUMER_CONNECT_URL,
    Settings,
    get_settings,
)

__all__ = [
    "Settings",
    "get_settings",
    "BLEND_POS_URL",
    "BIG_POS_URL",
    "ENCOMPASS_CONSUMER_CONNECT_URL",
]
