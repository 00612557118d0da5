"""
Infrastructure Configuration - Unified Configuration System
==========================================================
Single source of truth for all widget configuration.

ChatSettings is created once by the composition root (the terminal client
or the embedding application) and handed down to every component.
"""

from .settings import (
    ApiSettings,
    ChannelProtocol,
    ChannelScope,
    ChatSettings,
    EndpointSettings,
    HttpMethod,
    LoggingSettings,
    RealtimeSettings,
    ResponseLayout,
    StorageSettings,
)
from .config_loader import get_settings, load_settings_from_json

__all__ = [
    'ApiSettings', 'ChannelProtocol', 'ChannelScope', 'ChatSettings',
    'EndpointSettings', 'HttpMethod', 'LoggingSettings', 'RealtimeSettings',
    'ResponseLayout', 'StorageSettings',
    'get_settings', 'load_settings_from_json',
]
