"""
Presentation Interfaces - Ports for the visual surface
======================================================
The orchestrator never draws anything itself; it hands conversation turns to
a renderer and user-facing notices to a notifier.
"""

from abc import ABC, abstractmethod
from enum import Enum

from ..models.chat import Message


class NoticeLevel(str, Enum):
    """Severity of a user-visible notice"""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class IConversationRenderer(ABC):
    """Append-only list renderer for conversation turns"""

    @abstractmethod
    def render(self, message: Message, is_own: bool) -> None:
        """Append one turn to the visual surface"""
        pass

    @abstractmethod
    def show_conversation(self) -> None:
        """Switch from the registration view to the conversation view"""
        pass


class INotifier(ABC):
    """Surfaces notices (registration status, failures) to the user"""

    @abstractmethod
    def notify(self, text: str, level: NoticeLevel = NoticeLevel.INFO) -> None:
        pass
