"""Abstract base class for durable chat message storage."""

from abc import ABC, abstractmethod

from .core import ChatMessage


class MessageStorage(ABC):
    """Base class for durable message backends.

    The in-memory SessionStore is only a cache; a backend implementing this
    interface is authoritative when the cache is cold (e.g. after a restart).
    Implementations raise StoreUnavailableError when the backing store
    cannot be reached.
    """

    name: str  # "sqlite"

    @abstractmethod
    def load_messages(self, session_id: str) -> list[ChatMessage]:
        """Return all messages for a session, oldest first."""
        ...

    @abstractmethod
    def append_message(self, session_id: str, role: str, text: str) -> None:
        """Persist one completed message at the end of a session."""
        ...

    @abstractmethod
    def delete_messages(self, session_id: str) -> int:
        """Remove a session's messages. Returns how many were removed."""
        ...

    @abstractmethod
    def list_session_ids(self) -> list[str]:
        """Return the ids of all sessions with stored messages."""
        ...
