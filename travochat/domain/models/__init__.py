"""
Domain Models - Core Chat Entities
==================================
Pure data models representing chat concepts.
"""

from .chat import ConversationLog, Identity, Message, Session, SessionState
from .context import ChatContext
from .channel import ChannelConnection, ChannelStatus, VALID_CHANNEL_TRANSITIONS
from .gateway_results import IdentityStatus, RegistrationResult, SessionActivationResult

__all__ = [
    # Conversation
    'ChatContext', 'ConversationLog', 'Identity', 'Message', 'Session', 'SessionState',
    # Realtime channel
    'ChannelConnection', 'ChannelStatus', 'VALID_CHANNEL_TRANSITIONS',
    # Gateway results
    'IdentityStatus', 'RegistrationResult', 'SessionActivationResult',
]
