"""
Domain Interfaces - Ports for External Dependencies
==================================================
Abstract interfaces that define how the orchestrator talks to infrastructure
and to the embedding UI.
"""

from .gateways import IIdentityGateway, IRealtimeChannel, ISessionGateway, MessageHandler, StatusHandler
from .presentation import IConversationRenderer, INotifier, NoticeLevel
from .storage import EMAIL_KEY, NAME_KEY, USER_ID_KEY, IIdentityStore

__all__ = [
    # Chat service
    'IIdentityGateway', 'ISessionGateway', 'IRealtimeChannel', 'MessageHandler', 'StatusHandler',
    # Presentation
    'IConversationRenderer', 'INotifier', 'NoticeLevel',
    # Storage
    'IIdentityStore', 'NAME_KEY', 'EMAIL_KEY', 'USER_ID_KEY',
]
