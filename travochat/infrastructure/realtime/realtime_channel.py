"""
WebSocket Realtime Channel
==========================
Owns the single persistent connection of a widget instance to the message
bus and delivers inbound messages to subscribers in arrival order.

Lifecycle:
    [DISCONNECTED] ──connect()──► [CONNECTING] ──handshake ok──► [CONNECTED]
          ▲                             │                             │
          └──────── failure ────────────┘                             │
          └──────────────── disconnect() / connection drop ───────────┘

connect() is guarded by the status field: while CONNECTING or CONNECTED it
is a no-op, so any number of concurrent callers produce one websocket and
one subscription. A dropped connection moves the status back to
DISCONNECTED and notifies status observers; nothing reconnects on its own.
"""

import asyncio
import inspect
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from ...core.exceptions import NotConnectedError, ProtocolError, TransportError
from ...core.logger import StructuredLogger, get_logger
from ...domain.interfaces.gateways import IRealtimeChannel, MessageHandler, StatusHandler
from ...domain.models.channel import ChannelConnection, ChannelStatus
from ...domain.models.chat import Message
from ...domain.models.context import ChatContext
from ..config.settings import ChannelScope, RealtimeSettings
from ..gateways.response_parsing import parse_session_id
from .protocols import ChannelWireProtocol, create_protocol


class WebSocketRealtimeChannel(IRealtimeChannel):
    """
    IRealtimeChannel over a websocket, speaking STOMP or raw JSON.

    Inbound messages are read by a single reader task and handed to every
    registered handler one at a time, so handlers observe wire order. A
    handler that raises is logged and skipped; the remaining handlers still
    get the message.
    """

    def __init__(
        self,
        settings: RealtimeSettings,
        context: ChatContext,
        logger: Optional[StructuredLogger] = None,
        protocol: Optional[ChannelWireProtocol] = None
    ):
        self.settings = settings
        self.context = context
        self.logger = logger or get_logger(__name__)
        self.protocol = protocol or create_protocol(settings, self.logger)

        self.connection = ChannelConnection()
        self._websocket = None
        self._reader_task: Optional[asyncio.Task] = None
        self._message_handlers: List[MessageHandler] = []
        self._status_handlers: List[StatusHandler] = []
        self._abort_connect = False

        # Number of websockets ever opened by this channel
        self.open_count = 0

    @property
    def status(self) -> ChannelStatus:
        return self.connection.status

    @property
    def is_connected(self) -> bool:
        return self.connection.status == ChannelStatus.CONNECTED

    @property
    def subscription_handle(self) -> Optional[str]:
        return self.connection.subscription_handle

    def topic(self) -> str:
        """Topic to subscribe to for the current session"""
        if self.settings.scope == ChannelScope.SESSION:
            return f"{self.settings.topic.rstrip('/')}/{self.context.session_id}"
        return self.settings.topic

    def on_message(self, handler: MessageHandler) -> None:
        if not callable(handler):
            raise ValueError("Handler must be callable")
        self._message_handlers.append(handler)

    def on_status(self, handler: StatusHandler) -> None:
        if not callable(handler):
            raise ValueError("Handler must be callable")
        self._status_handlers.append(handler)

    async def connect(self) -> None:
        """
        Open the websocket, complete the protocol handshake and subscribe.

        Raises:
            TransportError: No active session, or the connection/handshake failed.
                The channel is back in DISCONNECTED when this is raised.
        """
        if self.connection.status != ChannelStatus.DISCONNECTED:
            self.logger.debug("realtime_channel.connect_skipped", {"status": self.connection.status.value})
            return
        if not self.context.session.is_active:
            raise TransportError("connect", "no active session")

        # Claim the connection before the first await so concurrent callers see CONNECTING
        self._abort_connect = False
        await self._transition(ChannelStatus.CONNECTING)

        start_time = time.time()
        topic = self.topic()
        websocket = None
        try:
            websocket, handle = await asyncio.wait_for(
                self._open(topic),
                timeout=self.settings.connect_timeout_seconds
            )
        except asyncio.TimeoutError as e:
            self.logger.error("realtime_channel.connect_timeout", {
                "url": self.settings.url,
                "timeout_seconds": self.settings.connect_timeout_seconds
            })
            await self._transition(ChannelStatus.DISCONNECTED, reason="connect timeout")
            raise TransportError("connect", f"timed out after {self.settings.connect_timeout_seconds}s") from e
        except (OSError, WebSocketException, ProtocolError, TransportError) as e:
            self.logger.error("realtime_channel.connect_failed", {
                "url": self.settings.url,
                "error": str(e),
                "error_type": type(e).__name__,
                "elapsed_ms": round((time.time() - start_time) * 1000, 2)
            })
            await self._transition(ChannelStatus.DISCONNECTED, reason=str(e))
            if isinstance(e, TransportError):
                raise
            raise TransportError("connect", str(e) or type(e).__name__) from e
        except asyncio.CancelledError:
            await self._transition(ChannelStatus.DISCONNECTED, reason="connect cancelled")
            raise
        except Exception as e:
            self.logger.error("realtime_channel.connect_failed", {
                "url": self.settings.url,
                "error": str(e),
                "error_type": type(e).__name__
            }, exc_info=True)
            await self._transition(ChannelStatus.DISCONNECTED, reason=str(e))
            raise TransportError("connect", str(e) or type(e).__name__) from e

        if self._abort_connect:
            # disconnect() was requested while the handshake was in flight
            await self._close_websocket(websocket)
            await self._transition(ChannelStatus.DISCONNECTED, reason="disconnected while connecting")
            return

        self._websocket = websocket
        self.connection.subscription_handle = handle
        await self._transition(ChannelStatus.CONNECTED)
        self._reader_task = asyncio.create_task(self._read_loop(websocket), name="realtime_channel_reader")

        self.logger.info("realtime_channel.connected", {
            "url": self.settings.url,
            "protocol": self.protocol.name,
            "topic": topic,
            "subscription": handle,
            "session_id": self.context.session_id,
            "elapsed_ms": round((time.time() - start_time) * 1000, 2)
        })

    async def _open(self, topic: str):
        websocket = await websockets.connect(
            self.settings.url,
            ping_interval=self.settings.ping_interval,
            ping_timeout=self.settings.ping_timeout,
            close_timeout=self.settings.close_timeout
        )
        self.open_count += 1
        try:
            handle = await self.protocol.open(websocket, topic)
        except BaseException:
            await self._close_websocket(websocket)
            raise
        return websocket, handle

    async def send(self, message: Message) -> None:
        if self.connection.status != ChannelStatus.CONNECTED or self._websocket is None:
            raise NotConnectedError(self.connection.status.value)

        frame = self.protocol.encode_outbound(message.to_wire())
        websocket = self._websocket
        try:
            await websocket.send(frame)
        except (ConnectionClosed, WebSocketException, OSError) as e:
            self.logger.error("realtime_channel.send_failed", {
                "error": str(e),
                "error_type": type(e).__name__,
                "session_id": message.session_id
            })
            await self._handle_drop(websocket, f"send failed: {e}")
            raise TransportError("send", str(e) or type(e).__name__) from e

        self.connection.messages_sent += 1
        self.logger.debug("realtime_channel.message_sent", {
            "session_id": message.session_id,
            "length": len(message.content)
        })

    async def disconnect(self) -> None:
        """Release the connection; safe to call in any state and repeatedly"""
        if self.connection.status == ChannelStatus.CONNECTING:
            self._abort_connect = True
            return
        if self.connection.status == ChannelStatus.DISCONNECTED and self._websocket is None:
            return

        websocket = self._websocket
        self._websocket = None
        await self._stop_reader()

        if websocket is not None:
            try:
                await self.protocol.close(websocket)
            except (ConnectionClosed, WebSocketException, OSError) as e:
                self.logger.debug("realtime_channel.goodbye_failed", {"error": str(e)})
            await self._close_websocket(websocket)

        if self.connection.status != ChannelStatus.DISCONNECTED:
            await self._transition(ChannelStatus.DISCONNECTED, reason="client disconnect")
        self.logger.info("realtime_channel.disconnected", self.connection.to_dict())

    async def _stop_reader(self) -> None:
        task = self._reader_task
        self._reader_task = None
        if task is None or task.done() or task is asyncio.current_task():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _close_websocket(self, websocket) -> None:
        try:
            await websocket.close()
        except (WebSocketException, OSError) as e:
            self.logger.debug("realtime_channel.close_websocket_error", {"error": str(e)})

    async def _read_loop(self, websocket) -> None:
        """Single reader: decode each websocket message and dispatch in order"""
        reason = "connection closed"
        try:
            async for raw in websocket:
                try:
                    payloads = self.protocol.decode_inbound(raw)
                except ProtocolError as e:
                    self.logger.warning("realtime_channel.malformed_frame", {
                        "error": e.reason,
                        "message_sample": e.frame_sample
                    })
                    continue

                for payload in payloads:
                    message = self._to_message(payload)
                    if message is None:
                        continue
                    self.connection.messages_received += 1
                    await self._dispatch(message)

        except asyncio.CancelledError:
            raise
        except ConnectionClosed as e:
            code = e.rcvd.code if e.rcvd is not None else None
            reason = f"connection closed ({code})"
            self.logger.warning("realtime_channel.connection_closed", {
                "code": code,
                "reason": str(e)
            })
        except TransportError as e:
            reason = e.reason
            self.logger.error("realtime_channel.broker_error", {"error": e.reason})
        except (WebSocketException, OSError) as e:
            reason = str(e) or type(e).__name__
            self.logger.error("realtime_channel.websocket_error", {
                "error": str(e),
                "error_type": type(e).__name__
            })
        except Exception as e:
            reason = str(e) or type(e).__name__
            self.logger.error("realtime_channel.reader_failed", {
                "error": str(e),
                "error_type": type(e).__name__
            }, exc_info=True)

        await self._handle_drop(websocket, reason)

    def _to_message(self, payload: Dict[str, Any]) -> Optional[Message]:
        if "content" not in payload or "sender" not in payload:
            self.logger.warning("realtime_channel.incomplete_payload", {"keys": sorted(payload.keys())})
            return None
        try:
            session_id = parse_session_id(payload.get("session"))
        except ValueError:
            session_id = 0

        if (self.settings.filter_by_session and session_id
                and session_id != self.context.session_id):
            self.logger.debug("realtime_channel.foreign_session_dropped", {"session_id": session_id})
            return None

        return Message(
            content=str(payload["content"]),
            sender=str(payload["sender"]),
            session_id=session_id,
            received_at=datetime.now(timezone.utc),
        )

    async def _dispatch(self, message: Message) -> None:
        for handler in list(self._message_handlers):
            try:
                result = handler(message)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                self.logger.error("realtime_channel.handler_failed", {
                    "handler": getattr(handler, "__qualname__", repr(handler)),
                    "error": str(e),
                    "error_type": type(e).__name__
                }, exc_info=True)

    async def _handle_drop(self, websocket, reason: str) -> None:
        """Connection lost underneath us: go DISCONNECTED once and tell observers"""
        if websocket is not self._websocket:
            return
        self._websocket = None
        if self._reader_task is not asyncio.current_task():
            await self._stop_reader()
        else:
            self._reader_task = None
        await self._close_websocket(websocket)
        if self.connection.status == ChannelStatus.CONNECTED:
            await self._transition(ChannelStatus.DISCONNECTED, reason=reason)
            self.logger.warning("realtime_channel.dropped", {"reason": reason})

    async def _transition(self, new_status: ChannelStatus, reason: Optional[str] = None) -> None:
        previous = self.connection.status
        if previous == new_status:
            return
        self.connection.mark(new_status, reason=reason)
        self.logger.debug("realtime_channel.status_changed", {
            "from": previous.value,
            "to": new_status.value,
            "reason": reason
        })
        for handler in list(self._status_handlers):
            try:
                result = handler(new_status)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                self.logger.error("realtime_channel.status_handler_failed", {
                    "error": str(e),
                    "error_type": type(e).__name__
                })

    def get_connection_stats(self) -> Dict[str, Any]:
        stats = self.connection.to_dict()
        stats.update({
            "url": self.settings.url,
            "protocol": self.protocol.name,
            "handlers": len(self._message_handlers),
            "open_count": self.open_count
        })
        return stats
