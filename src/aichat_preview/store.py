"""In-memory session history store.

Each session's history is held as an immutable tuple of frozen ChatMessage
objects. Every mutation builds a new tuple and swaps the dict entry in one
assignment, so a reader always gets either the old or the new history and
never a half-written one. Writers are additionally serialized by a lock so
that append's read-modify-write cannot lose a concurrent update.
"""

import asyncio
import re
import threading
from typing import Iterable

from .core import ChatMessage
from .errors import InvalidSessionIdError

_SESSION_ID_RE = re.compile(r"^[A-Za-z0-9_.:-]{1,128}$")


def validate_session_id(session_id: str) -> str:
    """Return session_id unchanged, or raise InvalidSessionIdError."""
    if not isinstance(session_id, str) or not _SESSION_ID_RE.match(session_id):
        raise InvalidSessionIdError(f"Invalid session id: {session_id!r}")
    return session_id


class SessionStore:
    """Ordered, role-tagged chat histories keyed by session id."""

    def __init__(self) -> None:
        self._histories: dict[str, tuple[ChatMessage, ...]] = {}
        self._write_lock = threading.Lock()
        self._turn_locks: dict[str, asyncio.Lock] = {}

    def append(self, session_id: str, message: ChatMessage) -> None:
        """Add one message to the end of a session's history."""
        validate_session_id(session_id)
        with self._write_lock:
            current = self._histories.get(session_id, ())
            self._histories[session_id] = current + (message,)

    def read(self, session_id: str) -> list[ChatMessage]:
        """Return a copy of the session's current history (empty if unknown)."""
        validate_session_id(session_id)
        return list(self._histories.get(session_id, ()))

    def replace(self, session_id: str, history: Iterable[ChatMessage]) -> None:
        """Atomically overwrite a session's history."""
        validate_session_id(session_id)
        snapshot = tuple(history)
        for message in snapshot:
            if not isinstance(message, ChatMessage):
                raise TypeError(f"History entries must be ChatMessage, got {type(message).__name__}")
        with self._write_lock:
            self._histories[session_id] = snapshot

    def contains(self, session_id: str) -> bool:
        validate_session_id(session_id)
        return session_id in self._histories

    def delete(self, session_id: str) -> bool:
        """Drop a session from memory. Returns True if it was present."""
        validate_session_id(session_id)
        with self._write_lock:
            self._turn_locks.pop(session_id, None)
            return self._histories.pop(session_id, None) is not None

    def session_ids(self) -> list[str]:
        return list(self._histories)

    def turn_lock(self, session_id: str) -> asyncio.Lock:
        """Return the lock that serializes chat turns for one session."""
        validate_session_id(session_id)
        with self._write_lock:
            lock = self._turn_locks.get(session_id)
            if lock is None:
                lock = self._turn_locks[session_id] = asyncio.Lock()
            return lock
