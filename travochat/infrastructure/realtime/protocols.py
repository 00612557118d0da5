"""
Realtime Wire Protocols
=======================
What travels over the websocket once it is open. The channel owns the
connection lifecycle; a protocol only knows how to subscribe, frame
outbound payloads and unframe inbound ones.

- StompChannelProtocol: STOMP 1.2 (Spring SockJS raw websocket endpoint),
  one SUBSCRIBE on the topic, SEND to the destination.
- RawJsonChannelProtocol: every websocket text message is one JSON object.
"""

import json
from abc import ABC, abstractmethod
from typing import Any, Dict, List

from ...core.exceptions import ProtocolError, TransportError
from ...core.logger import StructuredLogger
from ..config.settings import ChannelProtocol, RealtimeSettings
from .stomp_frames import connect_frame, decode_frames, disconnect_frame, send_frame, subscribe_frame


class ChannelWireProtocol(ABC):
    """Framing used on an open websocket"""

    name: str = ""

    @abstractmethod
    async def open(self, websocket, topic: str) -> str:
        """Complete any handshake and subscribe to topic; return the subscription handle"""
        pass

    @abstractmethod
    def encode_outbound(self, payload: Dict[str, Any]) -> str:
        pass

    @abstractmethod
    def decode_inbound(self, data) -> List[Dict[str, Any]]:
        """
        Unframe one websocket message into zero or more payload dicts.

        Raises:
            ProtocolError: undecodable data (caller skips the message)
            TransportError: the broker reported a fatal error
        """
        pass

    async def close(self, websocket) -> None:
        """Say goodbye before the websocket is closed (best effort)"""
        return None


def _decode_json_object(text: str) -> Dict[str, Any]:
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as e:
        raise ProtocolError(f"invalid JSON payload: {e}", text) from e
    if not isinstance(payload, dict):
        raise ProtocolError("payload is not a JSON object", text)
    return payload


class StompChannelProtocol(ChannelWireProtocol):
    """STOMP over websocket, the protocol the chat service speaks by default"""

    name = "stomp"

    def __init__(self, settings: RealtimeSettings, logger: StructuredLogger):
        self.settings = settings
        self.logger = logger
        self.subscription_id = "sub-0"
        self.server_info: Dict[str, str] = {}

    async def open(self, websocket, topic: str) -> str:
        await websocket.send(connect_frame(self.settings.stomp_host, self.settings.heartbeat_ms).encode())

        while True:
            raw = await websocket.recv()
            frames = decode_frames(raw)
            if not frames:
                continue  # heart-beat
            frame = frames[0]
            if frame.command == "CONNECTED":
                self.server_info = dict(frame.headers)
                break
            if frame.command == "ERROR":
                raise TransportError("connect", frame.header("message") or frame.body or "broker refused connection")
            raise ProtocolError(f"expected CONNECTED, got {frame.command}", str(raw))

        await websocket.send(subscribe_frame(self.subscription_id, topic).encode())
        self.logger.info("stomp_protocol.subscribed", {
            "subscription_id": self.subscription_id,
            "destination": topic,
            "server": self.server_info.get("server"),
            "version": self.server_info.get("version")
        })
        return self.subscription_id

    def encode_outbound(self, payload: Dict[str, Any]) -> str:
        return send_frame(self.settings.destination, json.dumps(payload)).encode()

    def decode_inbound(self, data) -> List[Dict[str, Any]]:
        payloads = []
        for frame in decode_frames(data):
            if frame.command == "MESSAGE":
                subscription = frame.header("subscription")
                if subscription is not None and subscription != self.subscription_id:
                    self.logger.debug("stomp_protocol.foreign_subscription", {"subscription": subscription})
                    continue
                payloads.append(_decode_json_object(frame.body))
            elif frame.command == "ERROR":
                raise TransportError("receive", frame.header("message") or frame.body or "broker error")
            elif frame.command == "RECEIPT":
                self.logger.debug("stomp_protocol.receipt", {"receipt_id": frame.header("receipt-id")})
            else:
                self.logger.debug("stomp_protocol.unexpected_frame", {"command": frame.command})
        return payloads

    async def close(self, websocket) -> None:
        await websocket.send(disconnect_frame().encode())


class RawJsonChannelProtocol(ChannelWireProtocol):
    """One JSON object per websocket message, no handshake"""

    name = "raw"

    def __init__(self, settings: RealtimeSettings, logger: StructuredLogger):
        self.settings = settings
        self.logger = logger

    async def open(self, websocket, topic: str) -> str:
        # The raw endpoint delivers everything on the socket; the topic is the handle
        return topic

    def encode_outbound(self, payload: Dict[str, Any]) -> str:
        return json.dumps(payload)

    def decode_inbound(self, data) -> List[Dict[str, Any]]:
        if isinstance(data, (bytes, bytearray)):
            try:
                data = bytes(data).decode("utf-8")
            except UnicodeDecodeError as e:
                raise ProtocolError("binary message is not UTF-8", repr(data[:50])) from e
        return [_decode_json_object(data)]


def create_protocol(settings: RealtimeSettings, logger: StructuredLogger) -> ChannelWireProtocol:
    if settings.protocol == ChannelProtocol.STOMP:
        return StompChannelProtocol(settings, logger)
    return RawJsonChannelProtocol(settings, logger)
