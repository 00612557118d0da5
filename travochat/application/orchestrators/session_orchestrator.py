"""
Session Orchestrator
====================
Sequences identity resolution, session activation and channel connection,
and mediates message send/receive against the current session.

States:
    BOOTSTRAPPING → RESOLVING_IDENTITY → ACTIVATING_SESSION → CONNECTED

There is no failure state. A failed step is logged, surfaced through the
notifier, and the orchestrator stays where it is so the user can retry
(register again, or call reconnect()).

The two startup calls (identity check for a stored email, activation for a
stored user id) are issued concurrently and may complete in either order.
Both paths funnel through _adopt_session() and ensure_connected(), which
re-check current state at every mutation, so the race never opens a second
connection or silently swaps sessions.
"""

import asyncio
from enum import Enum
from typing import Optional

from ...core.exceptions import NotConnectedError, ServiceError, TransportError, ValidationError
from ...core.logger import StructuredLogger, get_logger
from ...domain.interfaces.gateways import IIdentityGateway, IRealtimeChannel, ISessionGateway
from ...domain.interfaces.presentation import IConversationRenderer, INotifier, NoticeLevel
from ...domain.interfaces.storage import EMAIL_KEY, NAME_KEY, USER_ID_KEY, IIdentityStore
from ...domain.models.channel import ChannelStatus
from ...domain.models.chat import Identity, Message, Session
from ...domain.models.context import ChatContext

SEND_REJECTED_NOTICE = "Session expired or invalid message"


class OrchestratorState(str, Enum):
    BOOTSTRAPPING = "bootstrapping"
    RESOLVING_IDENTITY = "resolving_identity"
    ACTIVATING_SESSION = "activating_session"
    CONNECTED = "connected"


_STATE_ORDER = {
    OrchestratorState.BOOTSTRAPPING: 0,
    OrchestratorState.RESOLVING_IDENTITY: 1,
    OrchestratorState.ACTIVATING_SESSION: 2,
    OrchestratorState.CONNECTED: 3,
}


def _parse_stored_user_id(value: Optional[str]) -> Optional[str]:
    """Stored ids are only usable when they parse to a positive integer"""
    if not value:
        return None
    try:
        return value.strip() if int(value) > 0 else None
    except ValueError:
        return None


class SessionOrchestrator:
    def __init__(
        self,
        identity_gateway: IIdentityGateway,
        session_gateway: ISessionGateway,
        channel: IRealtimeChannel,
        store: IIdentityStore,
        renderer: IConversationRenderer,
        notifier: INotifier,
        context: Optional[ChatContext] = None,
        logger: Optional[StructuredLogger] = None,
    ):
        self.identity_gateway = identity_gateway
        self.session_gateway = session_gateway
        self.channel = channel
        self.store = store
        self.renderer = renderer
        self.notifier = notifier
        self.context = context or ChatContext()
        self.logger = logger or get_logger(__name__)

        self._state = OrchestratorState.BOOTSTRAPPING
        self._conversation_shown = False
        self._closing_channel = False

        self.channel.on_message(self._handle_inbound)
        self.channel.on_status(self._on_channel_status)

    @property
    def state(self) -> OrchestratorState:
        return self._state

    @property
    def session(self) -> Session:
        return self.context.session

    @property
    def identity(self) -> Identity:
        return self.context.identity

    def _advance(self, new_state: OrchestratorState) -> None:
        """Move forward through the startup sequence; never backwards"""
        if _STATE_ORDER[new_state] <= _STATE_ORDER[self._state]:
            return
        self.logger.debug("orchestrator.state_changed", {"from": self._state.value, "to": new_state.value})
        self._state = new_state

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def start(self) -> bool:
        """
        Run the startup protocol from stored preferences.

        Returns:
            True when a session is active once both startup calls were attempted
        """
        name = self.store.get(NAME_KEY) or ""
        email = self.store.get(EMAIL_KEY) or ""
        stored_user_id = self.store.get(USER_ID_KEY)
        self.context.identity = Identity(name=name, email=email, user_id=stored_user_id or None)

        self.logger.info("orchestrator.starting", {
            "instance_id": self.context.instance_id,
            "has_email": bool(email),
            "has_user_id": bool(stored_user_id)
        })

        tasks = []
        if email:
            self._advance(OrchestratorState.RESOLVING_IDENTITY)
            tasks.append(asyncio.create_task(self._resolve_identity(email)))

        # Decided now, not after the identity check completes
        user_id = _parse_stored_user_id(stored_user_id)
        if not self.context.session.is_active and user_id is not None:
            self._advance(OrchestratorState.ACTIVATING_SESSION)
            tasks.append(asyncio.create_task(self._activate_stored_user(user_id)))

        if tasks:
            await asyncio.gather(*tasks)

        await self.ensure_connected()

        self.logger.info("orchestrator.started", {
            "state": self._state.value,
            "session_id": self.context.session_id,
            "channel_status": self.channel.status.value
        })
        return self.context.session.is_active

    async def _resolve_identity(self, email: str) -> None:
        try:
            status = await self.identity_gateway.check_identity(email)
        except ServiceError as e:
            self.logger.error("orchestrator.identity_check_failed", {"error": str(e), "status": e.status})
            self.notifier.notify("Error checking user", NoticeLevel.ERROR)
            return

        self.logger.info("orchestrator.identity_resolved", {
            "exists": status.exists,
            "user_id": status.user_id,
            "session_id": status.session_id
        })
        if not status.has_session:
            return

        if self._adopt_session(status.session_id, source="identity_check"):
            if status.user_id:
                self.store.set(USER_ID_KEY, status.user_id)
                self.context.identity = self.context.identity.model_copy(update={"user_id": status.user_id})
            self._show_conversation()
            await self.ensure_connected()

    async def _activate_stored_user(self, user_id: str) -> None:
        try:
            result = await self.session_gateway.activate(user_id)
        except ServiceError as e:
            self.logger.error("orchestrator.activation_failed", {
                "user_id": user_id,
                "error": str(e),
                "status": e.status
            })
            self.notifier.notify("Error starting session", NoticeLevel.ERROR)
            return

        if not result.is_active:
            self.logger.warning("orchestrator.activation_without_session", {"user_id": user_id})
            return

        if self._adopt_session(result.session_id, source="activation"):
            self.store.set(USER_ID_KEY, result.user_id)
            self.context.identity = self.context.identity.model_copy(update={"user_id": result.user_id})
            await self.ensure_connected()

    def _adopt_session(self, session_id: int, source: str, replace: bool = False) -> bool:
        """
        Make session_id the current session.

        Returns True when session_id is the current session afterwards. A
        different, already active session is kept unless replace is set.
        """
        if session_id <= 0:
            return False

        current = self.context.session
        if current.id == session_id:
            return True
        if current.is_active and not replace:
            self.logger.warning("orchestrator.session_conflict", {
                "current_session_id": current.id,
                "offered_session_id": session_id,
                "source": source
            })
            return False

        self.context.session = Session(id=session_id)
        self._advance(OrchestratorState.ACTIVATING_SESSION)
        self.logger.info("orchestrator.session_adopted", {
            "session_id": session_id,
            "previous_session_id": current.id,
            "source": source
        })
        return True

    def _show_conversation(self) -> None:
        if self._conversation_shown:
            return
        self._conversation_shown = True
        self.renderer.show_conversation()

    async def ensure_connected(self) -> bool:
        """
        Connect the channel if a session is active and it is not already up.

        Safe to call from any number of completion paths. Returns True when
        the channel is connected (or connecting) afterwards.
        """
        if not self.context.session.is_active:
            self.logger.debug("orchestrator.connect_deferred", {"reason": "no active session"})
            return False
        if self.channel.status != ChannelStatus.DISCONNECTED:
            return True

        try:
            await self.channel.connect()
        except TransportError as e:
            self.logger.error("orchestrator.connect_failed", {
                "session_id": self.context.session_id,
                "error": e.reason
            })
            self.notifier.notify(f"Could not connect to chat: {e.reason}", NoticeLevel.ERROR)
            return False
        return self.channel.status != ChannelStatus.DISCONNECTED

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    async def register(self, name: str, email: str) -> bool:
        """
        Register a new user, adopt the session it yields and connect.

        Returns:
            True when the service accepted the registration
        """
        try:
            result = await self.identity_gateway.register(name, email)
        except ValidationError as e:
            self.notifier.notify(e.reason, NoticeLevel.WARNING)
            return False
        except ServiceError as e:
            self.logger.error("orchestrator.registration_failed", {"error": str(e), "status": e.status})
            self.notifier.notify("Error registering user", NoticeLevel.ERROR)
            return False

        if not result.accepted:
            self.logger.info("orchestrator.registration_declined", {
                "status_code": result.status_code,
                "message": result.message
            })
            self.notifier.notify(result.message or "Registration was declined", NoticeLevel.WARNING)
            return False

        name, email = name.strip(), email.strip()
        self.store.set(NAME_KEY, name)
        self.store.set(EMAIL_KEY, email)
        self.store.set(USER_ID_KEY, result.user_id)
        self.context.identity = Identity(name=name, email=email, user_id=result.user_id)

        previous = self.context.session
        if self._adopt_session(result.session_id, source="registration", replace=True):
            if previous.is_active and previous.id != result.session_id:
                # The open subscription belongs to the replaced session
                await self._close_channel()

        await self._confirm_activation(result.user_id)

        if self.context.session.is_active:
            self._show_conversation()
            await self.ensure_connected()

        self.notifier.notify(result.message or "Registration successful", NoticeLevel.INFO)
        return True

    async def _confirm_activation(self, user_id: str) -> None:
        try:
            result = await self.session_gateway.activate(user_id)
        except ServiceError as e:
            self.logger.error("orchestrator.confirmation_failed", {"user_id": user_id, "error": str(e)})
            self.notifier.notify("Error starting session", NoticeLevel.ERROR)
            return

        if self._adopt_session(result.session_id, source="confirmation"):
            self.store.set(USER_ID_KEY, result.user_id)
            self.context.identity = self.context.identity.model_copy(update={"user_id": result.user_id})

    # ------------------------------------------------------------------
    # Messaging
    # ------------------------------------------------------------------

    async def send(self, text: str) -> bool:
        """
        Publish text as the local participant.

        Own messages are not appended locally; they come back through the
        channel like everyone else's, which keeps the log in bus order.
        """
        if not text or not text.strip():
            return False
        if not self.context.session.is_active:
            self.notifier.notify(SEND_REJECTED_NOTICE, NoticeLevel.ERROR)
            return False

        message = Message(content=text, sender=self.context.identity.name, session_id=self.context.session_id)
        try:
            await self.channel.send(message)
        except NotConnectedError as e:
            self.logger.warning("orchestrator.send_not_connected", {"status": e.status})
            self.notifier.notify("Not connected to chat. Reconnect and try again.", NoticeLevel.ERROR)
            return False
        except TransportError as e:
            self.logger.error("orchestrator.send_failed", {"error": e.reason})
            self.notifier.notify("Error sending message", NoticeLevel.ERROR)
            return False
        return True

    def _handle_inbound(self, message: Message) -> None:
        position = self.context.conversation.append(message)
        is_own = self.context.is_own(message.sender)
        self.logger.debug("orchestrator.message_received", {
            "position": position,
            "sender": message.sender,
            "is_own": is_own
        })
        self.renderer.render(message, is_own)

    def _on_channel_status(self, status: ChannelStatus) -> None:
        if status == ChannelStatus.CONNECTED:
            self._advance(OrchestratorState.CONNECTED)
            return
        if status == ChannelStatus.DISCONNECTED and self._state == OrchestratorState.CONNECTED:
            # Session is kept; the connection comes back only through reconnect()
            self._state = OrchestratorState.ACTIVATING_SESSION
            if self._closing_channel:
                return
            self.logger.warning("orchestrator.connection_lost", {"session_id": self.context.session_id})
            self.notifier.notify("Connection to chat lost", NoticeLevel.WARNING)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def reconnect(self) -> bool:
        """Explicit, user-triggered reconnection of the channel"""
        if not self.context.session.is_active:
            self.notifier.notify(SEND_REJECTED_NOTICE, NoticeLevel.ERROR)
            return False
        self.logger.info("orchestrator.reconnect_requested", {
            "session_id": self.context.session_id,
            "channel_status": self.channel.status.value
        })
        return await self.ensure_connected()

    async def _close_channel(self) -> None:
        self._closing_channel = True
        try:
            await self.channel.disconnect()
        finally:
            self._closing_channel = False

    async def shutdown(self) -> None:
        await self._close_channel()
        self.logger.info("orchestrator.stopped", {
            "session_id": self.context.session_id,
            "messages": len(self.context.conversation)
        })
