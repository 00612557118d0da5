"""
Unit Tests for the STOMP frame codec
====================================
"""

import pytest

from travochat.core.exceptions import ProtocolError
from travochat.infrastructure.realtime.stomp_frames import (
    StompFrame,
    connect_frame,
    decode_frames,
    disconnect_frame,
    send_frame,
    subscribe_frame,
)


class TestEncode:

    def test_connect_frame_layout(self):
        text = connect_frame("/", 0).encode()

        assert text == "CONNECT\naccept-version:1.2,1.1\nhost:/\nheart-beat:0,0\n\n\x00"

    def test_send_frame_adds_utf8_content_length(self):
        body = '{"content":"żółw"}'
        text = send_frame("/app/chat", body).encode()

        assert "destination:/app/chat\n" in text
        assert "content-type:application/json\n" in text
        assert f"content-length:{len(body.encode('utf-8'))}\n" in text
        assert text.endswith(body + "\x00")

    def test_header_values_are_escaped(self):
        text = StompFrame("SEND", {"note": "a:b\nc"}).encode()

        assert "note:a\\cb\\nc\n" in text

    def test_connect_headers_are_not_escaped(self):
        text = StompFrame("CONNECT", {"login": "a:b"}).encode()

        assert "login:a:b\n" in text

    def test_subscribe_and_disconnect(self):
        assert subscribe_frame("sub-0", "/topic/messages").headers == {
            "id": "sub-0", "destination": "/topic/messages", "ack": "auto"
        }
        assert disconnect_frame().encode() == "DISCONNECT\n\n\x00"


class TestDecode:

    def test_message_frame(self):
        frames = decode_frames('MESSAGE\nsubscription:sub-0\nmessage-id:7\n\n{"content":"hi"}\x00')

        assert len(frames) == 1
        assert frames[0].command == "MESSAGE"
        assert frames[0].header("subscription") == "sub-0"
        assert frames[0].body == '{"content":"hi"}'

    def test_heartbeats_are_skipped(self):
        assert decode_frames("\n") == []
        assert decode_frames("\r\n\n") == []

    def test_multiple_frames_in_one_message(self):
        data = "RECEIPT\nreceipt-id:1\n\n\x00\nMESSAGE\nsubscription:sub-0\n\nbody\x00"

        frames = decode_frames(data)

        assert [f.command for f in frames] == ["RECEIPT", "MESSAGE"]
        assert frames[1].body == "body"

    def test_crlf_line_endings(self):
        frames = decode_frames("CONNECTED\r\nversion:1.2\r\n\r\n\x00")

        assert frames[0].command == "CONNECTED"
        assert frames[0].header("version") == "1.2"

    def test_content_length_allows_null_in_body(self):
        body = "a\x00b"
        data = f"MESSAGE\ncontent-length:3\n\n{body}\x00"

        assert decode_frames(data)[0].body == body

    def test_bytes_input(self):
        frames = decode_frames("MESSAGE\n\nżółw\x00".encode("utf-8"))

        assert frames[0].body == "żółw"

    def test_repeated_header_first_wins(self):
        frames = decode_frames("MESSAGE\nfoo:first\nfoo:second\n\n\x00")

        assert frames[0].header("foo") == "first"

    def test_escaped_header_values_are_unescaped(self):
        frames = decode_frames("ERROR\nmessage:bad\\cvalue\\nhere\n\n\x00")

        assert frames[0].header("message") == "bad:value\nhere"

    @pytest.mark.parametrize("data", [
        "MESSAGE\nsubscription:sub-0\n\nbody",          # no NULL
        "MESSAGE\nsubscription:sub-0",                  # no header terminator
        "BOGUS\n\n\x00",                                # unknown command
        "MESSAGE\nno-colon\n\n\x00",                    # header without ':'
        "MESSAGE\ncontent-length:99\n\nshort\x00",      # body shorter than declared
        "MESSAGE\ncontent-length:x\n\nbody\x00",        # non-numeric length
        "ERROR\nmessage:bad\\xescape\n\n\x00",          # invalid escape
    ])
    def test_malformed_frames_raise(self, data):
        with pytest.raises(ProtocolError):
            decode_frames(data)

    def test_encoded_send_frame_decodes(self):
        frame = send_frame("/app/chat", '{"content":"a:b"}')

        decoded = decode_frames(frame.encode())[0]

        assert decoded.command == "SEND"
        assert decoded.body == frame.body
        assert decoded.header("destination") == "/app/chat"

    @pytest.mark.parametrize("data", [
        b"CONNECTED\nserver:\xff\xfe\n\n\x00",
        b"MESSAGE\nsubscription:sub-0\n\n\xff\x00",
    ])
    def test_invalid_utf8_raises_protocol_error(self, data):
        with pytest.raises(ProtocolError) as exc_info:
            decode_frames(data)

        assert "UTF-8" in exc_info.value.reason
