"""
Chat Context - Widget state shared by the orchestrator and its collaborators
============================================================================
"""

import uuid
from dataclasses import dataclass, field

from .chat import ConversationLog, Identity, Session


@dataclass
class ChatContext:
    """
    All mutable state of one widget instance.

    Owned by the SessionOrchestrator, which is the only writer. The realtime
    channel reads the current session from it to scope its topic and filter
    inbound traffic.
    """
    identity: Identity = field(default_factory=Identity)
    session: Session = field(default_factory=Session)
    conversation: ConversationLog = field(default_factory=ConversationLog)
    instance_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])

    @property
    def session_id(self) -> int:
        return self.session.id

    def is_own(self, sender: str) -> bool:
        return bool(self.identity.name) and sender == self.identity.name
