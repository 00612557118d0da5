"""
Storage Interfaces - Ports for client-side preference storage
=============================================================
"""

from abc import ABC, abstractmethod
from typing import Optional


# Preference keys persisted across runs
NAME_KEY = "name"
EMAIL_KEY = "email"
USER_ID_KEY = "id"


class IIdentityStore(ABC):
    """
    Durable synchronous string store for identity preferences.

    Plays the role browser local storage plays for an embedded widget:
    three string values keyed by name, email and id, with no expiry.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the stored value or None when absent"""
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store a value, replacing any previous one"""
        pass
