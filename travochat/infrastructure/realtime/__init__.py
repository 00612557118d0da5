"""
Realtime message bus access - websocket channel and its wire protocols.
"""

from .protocols import ChannelWireProtocol, RawJsonChannelProtocol, StompChannelProtocol, create_protocol
from .realtime_channel import WebSocketRealtimeChannel

__all__ = [
    'WebSocketRealtimeChannel',
    'ChannelWireProtocol', 'StompChannelProtocol', 'RawJsonChannelProtocol', 'create_protocol',
]
