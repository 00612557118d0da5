"""
Gateway Interfaces - Ports for the chat service
===============================================
Abstract interfaces for identity, session and realtime access without
coupling to HTTP or websocket libraries.
"""

from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Union

from ..models.chat import Message
from ..models.channel import ChannelStatus
from ..models.gateway_results import IdentityStatus, RegistrationResult, SessionActivationResult


MessageHandler = Callable[[Message], Union[None, Awaitable[None]]]
StatusHandler = Callable[[ChannelStatus], Union[None, Awaitable[None]]]


class IIdentityGateway(ABC):
    """Registration and identity lookup"""

    @abstractmethod
    async def register(self, name: str, email: str) -> RegistrationResult:
        """
        Register a user.

        Raises:
            ValidationError: name or email empty (no network call made)
            ServiceError: network failure or non-2xx response
        """
        pass

    @abstractmethod
    async def check_identity(self, email: str) -> IdentityStatus:
        """
        Look up whether an email maps to an existing user and session.

        Raises:
            ServiceError: network failure or non-2xx response
        """
        pass


class ISessionGateway(ABC):
    """Session activation for a known user"""

    @abstractmethod
    async def activate(self, user_id: str) -> SessionActivationResult:
        """
        Activate or resume the session of user_id. Repeated activation of an
        active session returns the same session id.

        Raises:
            ServiceError: network failure or non-2xx response
        """
        pass


class IRealtimeChannel(ABC):
    """Persistent bidirectional connection to the message bus"""

    @property
    @abstractmethod
    def status(self) -> ChannelStatus:
        pass

    @abstractmethod
    async def connect(self) -> None:
        """Open the connection; no-op while connecting or connected"""
        pass

    @abstractmethod
    def on_message(self, handler: MessageHandler) -> None:
        """Register a handler called once per inbound message, in arrival order"""
        pass

    @abstractmethod
    def on_status(self, handler: StatusHandler) -> None:
        """Register an observer of status transitions"""
        pass

    @abstractmethod
    async def send(self, message: Message) -> None:
        """
        Publish a message.

        Raises:
            NotConnectedError: status is not CONNECTED
            TransportError: the write failed
        """
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Release the connection; idempotent"""
        pass
