"""
Channel Models - Realtime connection state
==========================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class ChannelStatus(str, Enum):
    """Realtime connection lifecycle"""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


# Valid status transitions; anything else is a programming error
VALID_CHANNEL_TRANSITIONS = {
    ChannelStatus.DISCONNECTED: [ChannelStatus.CONNECTING],
    ChannelStatus.CONNECTING: [ChannelStatus.CONNECTED, ChannelStatus.DISCONNECTED],
    ChannelStatus.CONNECTED: [ChannelStatus.DISCONNECTED],
}


@dataclass
class ChannelConnection:
    """
    The one connection a RealtimeChannel owns.

    subscription_handle is the STOMP subscription id (or the topic name for
    the raw protocol) once the subscription is in place.
    """
    status: ChannelStatus = ChannelStatus.DISCONNECTED
    subscription_handle: Optional[str] = None
    connected_at: Optional[datetime] = None
    disconnected_at: Optional[datetime] = None
    close_reason: Optional[str] = None
    messages_received: int = 0
    messages_sent: int = 0

    def can_transition_to(self, new_status: ChannelStatus) -> bool:
        return new_status in VALID_CHANNEL_TRANSITIONS[self.status]

    def mark(self, new_status: ChannelStatus, reason: Optional[str] = None) -> None:
        """Move to new_status, recording timestamps. Raises on invalid transitions."""
        if not self.can_transition_to(new_status):
            raise ValueError(f"Invalid channel transition {self.status.value} -> {new_status.value}")
        self.status = new_status
        now = datetime.now(timezone.utc)
        if new_status == ChannelStatus.CONNECTED:
            self.connected_at = now
            self.close_reason = None
        elif new_status == ChannelStatus.DISCONNECTED:
            self.disconnected_at = now
            self.subscription_handle = None
            self.close_reason = reason

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            "status": self.status.value,
            "subscription_handle": self.subscription_handle,
            "connected_at": self.connected_at.isoformat() if self.connected_at else None,
            "disconnected_at": self.disconnected_at.isoformat() if self.disconnected_at else None,
            "close_reason": self.close_reason,
            "messages_received": self.messages_received,
            "messages_sent": self.messages_sent,
        }
