"""
Core Exceptions - travochat
===========================
Centralized exception definitions for the chat widget core.

Every failure in the core derives from ChatError. None of them is fatal:
the orchestrator turns each one into a user-visible notice and leaves the
widget usable for another attempt.
"""

from typing import Optional


class ChatError(Exception):
    """Base exception for all chat widget failures."""
    pass


class ValidationError(ChatError):
    """
    Raised locally, before any network call, when user input is unusable.

    Examples: empty name or email on registration.
    """
    def __init__(self, field: str, reason: str = None):
        self.field = field
        self.reason = reason or f"{field} is required"
        self.message = self.reason
        super().__init__(self.message)


class ServiceError(ChatError):
    """
    Raised when a gateway call fails: network error, timeout, non-2xx HTTP
    status or an undecodable response body.

    Domain rejections carried in a 2xx body (e.g. "email already registered")
    are NOT service errors; gateways return them as results.
    """
    def __init__(self, endpoint: str, reason: str, status: Optional[int] = None):
        self.endpoint = endpoint
        self.status = status
        self.reason = reason
        status_part = f" (HTTP {status})" if status is not None else ""
        self.message = f"{endpoint} failed{status_part}: {reason}"
        super().__init__(self.message)


class NotConnectedError(ChatError):
    """Raised by RealtimeChannel.send when the channel is not Connected."""
    def __init__(self, status: str):
        self.status = status
        self.message = f"Realtime channel is not connected (status: {status})"
        super().__init__(self.message)


class TransportError(ChatError):
    """Raised when the realtime transport fails while connecting or writing."""
    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        self.message = f"Realtime transport {operation} failed: {reason}"
        super().__init__(self.message)


class ProtocolError(ChatError):
    """Raised when a frame received from the message bus cannot be decoded."""
    def __init__(self, reason: str, frame_sample: str = ""):
        self.reason = reason
        self.frame_sample = frame_sample[:200]
        self.message = f"Malformed frame: {reason}"
        super().__init__(self.message)
