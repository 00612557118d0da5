"""
Unit Tests for the chat domain models
=====================================
"""

import pytest

from travochat.domain.models.channel import ChannelConnection, ChannelStatus
from travochat.domain.models.chat import ConversationLog, Identity, Message, Session, SessionState
from travochat.domain.models.context import ChatContext


class TestSession:

    @pytest.mark.parametrize("session_id,state", [(0, SessionState.UNESTABLISHED), (-1, SessionState.UNESTABLISHED),
                                                  (7, SessionState.ACTIVE)])
    def test_state_follows_id(self, session_id, state):
        assert Session(id=session_id).state == state

    def test_default_is_unestablished(self):
        assert not Session().is_active


class TestMessage:

    def test_wire_payload(self):
        message = Message(content="hi", sender="Ann", session_id=7)

        assert message.to_wire() == {"content": "hi", "sender": "Ann", "session": 7}

    def test_display_text(self):
        message = Message(content="hi", sender="Bob")

        assert message.display_text(is_own=True) == "hi"
        assert message.display_text(is_own=False) == "Bob: hi"

    def test_messages_are_immutable(self):
        message = Message(content="hi", sender="Bob")

        with pytest.raises(Exception):
            message.content = "changed"


class TestConversationLog:

    def test_append_preserves_order(self):
        log = ConversationLog()
        positions = [log.append(Message(content=str(i), sender="Bob")) for i in range(3)]

        assert positions == [0, 1, 2]
        assert [m.content for m in log] == ["0", "1", "2"]
        assert log.last.content == "2"
        assert len(log) == 3

    def test_snapshot_is_a_copy(self):
        log = ConversationLog()
        log.append(Message(content="a", sender="Bob"))

        snapshot = log.snapshot()
        snapshot.clear()

        assert len(log) == 1


class TestChatContext:

    def test_is_own_compares_sender_with_identity_name(self):
        context = ChatContext(identity=Identity(name="Ann", email="a@x.com"))

        assert context.is_own("Ann")
        assert not context.is_own("Bob")

    def test_anonymous_identity_owns_nothing(self):
        assert not ChatContext().is_own("")

    def test_instances_are_distinct(self):
        assert ChatContext().instance_id != ChatContext().instance_id


class TestChannelConnection:

    def test_lifecycle(self):
        connection = ChannelConnection()

        connection.mark(ChannelStatus.CONNECTING)
        connection.subscription_handle = "sub-0"
        connection.mark(ChannelStatus.CONNECTED)
        connection.mark(ChannelStatus.DISCONNECTED, reason="peer closed")

        assert connection.subscription_handle is None
        assert connection.close_reason == "peer closed"
        assert connection.to_dict()["status"] == "disconnected"

    @pytest.mark.parametrize("start,target", [
        (ChannelStatus.DISCONNECTED, ChannelStatus.CONNECTED),
        (ChannelStatus.CONNECTED, ChannelStatus.CONNECTING),
    ])
    def test_invalid_transitions_raise(self, start, target):
        connection = ChannelConnection(status=start)

        with pytest.raises(ValueError):
            connection.mark(target)
