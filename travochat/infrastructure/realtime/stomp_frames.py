"""
STOMP 1.2 Frame Codec
=====================
Encoding and decoding of STOMP frames carried in websocket text messages.

Frame layout:
    COMMAND EOL
    *( header EOL )
    EOL
    *OCTET NULL

A bare EOL between frames is a heart-beat and decodes to nothing. Header
values are escaped (\\\\, \\n, \\r, \\c) in every frame except CONNECT and
CONNECTED, as STOMP 1.2 requires. When a content-length
header is present the body is read by length, so bodies may contain NUL.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ...core.exceptions import ProtocolError

NULL = "\x00"

CLIENT_COMMANDS = {"CONNECT", "STOMP", "SEND", "SUBSCRIBE", "UNSUBSCRIBE", "ACK", "NACK",
                   "BEGIN", "COMMIT", "ABORT", "DISCONNECT"}
SERVER_COMMANDS = {"CONNECTED", "MESSAGE", "RECEIPT", "ERROR"}

# Frames whose headers are never escaped
_UNESCAPED_COMMANDS = {"CONNECT", "CONNECTED"}

_ESCAPES = {"\\": "\\\\", "\n": "\\n", "\r": "\\r", ":": "\\c"}
_UNESCAPES = {"\\": "\\", "n": "\n", "r": "\r", "c": ":"}


@dataclass
class StompFrame:
    """A single STOMP frame"""
    command: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: str = ""

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.headers.get(name, default)

    def encode(self) -> str:
        """Serialize the frame to text including the trailing NULL"""
        escape = self.command not in _UNESCAPED_COMMANDS
        lines = [self.command]
        headers = dict(self.headers)
        if self.body and "content-length" not in headers:
            headers["content-length"] = str(len(self.body.encode("utf-8")))
        for name, value in headers.items():
            if escape:
                name, value = _escape(name), _escape(str(value))
            lines.append(f"{name}:{value}")
        return "\n".join(lines) + "\n\n" + self.body + NULL


def _escape(value: str) -> str:
    return "".join(_ESCAPES.get(ch, ch) for ch in value)


def _unescape(value: str) -> str:
    out = []
    i = 0
    while i < len(value):
        ch = value[i]
        if ch == "\\":
            if i + 1 >= len(value) or value[i + 1] not in _UNESCAPES:
                raise ProtocolError(f"invalid header escape in {value!r}", value)
            out.append(_UNESCAPES[value[i + 1]])
            i += 2
        else:
            out.append(ch)
            i += 1
    return "".join(out)


def _text(chunk: bytes) -> str:
    try:
        return chunk.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ProtocolError(f"frame is not valid UTF-8 ({e.reason})", chunk.decode("utf-8", "replace"))


def decode_frames(data) -> List[StompFrame]:
    """
    Decode every frame contained in one websocket message.

    Args:
        data: Websocket message (str, or UTF-8 bytes)

    Returns:
        Frames in wire order; heart-beats are skipped

    Raises:
        ProtocolError: If the message holds a malformed frame
    """
    if isinstance(data, (bytes, bytearray)):
        raw = bytes(data)
    else:
        raw = data.encode("utf-8")

    frames: List[StompFrame] = []
    pos = 0
    length = len(raw)
    while pos < length:
        # Heart-beats and padding between frames
        if raw[pos:pos + 1] == b"\n":
            pos += 1
            continue
        if raw[pos:pos + 2] == b"\r\n":
            pos += 2
            continue

        header_end = raw.find(b"\n\n", pos)
        header_end_crlf = raw.find(b"\r\n\r\n", pos)
        if header_end_crlf != -1 and (header_end == -1 or header_end_crlf < header_end):
            head = raw[pos:header_end_crlf]
            body_start = header_end_crlf + 4
        elif header_end != -1:
            head = raw[pos:header_end]
            body_start = header_end + 2
        else:
            raise ProtocolError("frame has no header terminator", raw[pos:].decode("utf-8", "replace"))

        head_lines = _text(head).replace("\r\n", "\n").split("\n")
        command = head_lines[0].strip()
        if command not in SERVER_COMMANDS and command not in CLIENT_COMMANDS:
            raise ProtocolError(f"unknown command {command!r}", head.decode("utf-8", "replace"))

        escape = command not in _UNESCAPED_COMMANDS
        headers: Dict[str, str] = {}
        for line in head_lines[1:]:
            if not line:
                continue
            if ":" not in line:
                raise ProtocolError(f"header without ':' in {command} frame", line)
            name, value = line.split(":", 1)
            if escape:
                name, value = _unescape(name), _unescape(value)
            # Repeated headers: the first occurrence wins
            headers.setdefault(name, value)

        content_length = headers.get("content-length")
        if content_length is not None:
            try:
                body_len = int(content_length)
            except ValueError:
                raise ProtocolError(f"invalid content-length {content_length!r}", content_length)
            body_end = body_start + body_len
            if body_end >= length or raw[body_end:body_end + 1] != b"\x00":
                raise ProtocolError("body shorter than content-length or not NULL-terminated",
                                    raw[pos:].decode("utf-8", "replace"))
        else:
            body_end = raw.find(b"\x00", body_start)
            if body_end == -1:
                raise ProtocolError("frame is not NULL-terminated", raw[pos:].decode("utf-8", "replace"))

        body = _text(raw[body_start:body_end])
        frames.append(StompFrame(command=command, headers=headers, body=body))
        pos = body_end + 1

    return frames


def connect_frame(host: str, heartbeat_ms: int = 0) -> StompFrame:
    return StompFrame("CONNECT", {
        "accept-version": "1.2,1.1",
        "host": host,
        "heart-beat": f"{heartbeat_ms},{heartbeat_ms}",
    })


def subscribe_frame(subscription_id: str, destination: str) -> StompFrame:
    return StompFrame("SUBSCRIBE", {"id": subscription_id, "destination": destination, "ack": "auto"})


def send_frame(destination: str, body: str) -> StompFrame:
    return StompFrame("SEND", {"destination": destination, "content-type": "application/json"}, body)


def disconnect_frame() -> StompFrame:
    return StompFrame("DISCONNECT")
