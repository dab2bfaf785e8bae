"""Session history backed by the in-memory store and durable storage.

The SessionStore is a cache. Whenever it has nothing for a session,
durable storage is treated as authoritative and the cache is warmed
before anyone reads from it, so a process restart never shows a stale
"still generating" state.
"""

import logging

from fastapi.concurrency import run_in_threadpool

from .core import ChatMessage
from .provider import MessageStorage
from .store import SessionStore, validate_session_id

logger = logging.getLogger(__name__)


class HistoryService:
    """Reads and persists chat histories through the store and storage."""

    def __init__(self, store: SessionStore, storage: MessageStorage):
        self.store = store
        self.storage = storage

    async def load(self, session_id: str) -> list[ChatMessage]:
        """Return the session's history, rehydrating memory from storage if empty.

        Raises StoreUnavailableError if storage is needed but unreachable.
        """
        validate_session_id(session_id)
        history = self.store.read(session_id)
        if history:
            return history

        stored = await run_in_threadpool(self.storage.load_messages, session_id)
        if not stored:
            return self.store.read(session_id)

        # A turn may have started while we were waiting on storage.
        current = self.store.read(session_id)
        if current:
            return current
        self.store.replace(session_id, stored)
        logger.info("Restored %d messages for %s from %s", len(stored), session_id, self.storage.name)
        return list(stored)

    async def persist(self, session_id: str, message: ChatMessage) -> None:
        await run_in_threadpool(self.storage.append_message, session_id, message.role, message.content)

    async def session_ids(self) -> list[str]:
        """Return stored session ids, most recent first, then any held only in memory."""
        stored = await run_in_threadpool(self.storage.list_session_ids)
        known = set(stored)
        return stored + [s for s in self.store.session_ids() if s not in known]

    async def delete(self, session_id: str) -> int:
        """Drop a session from memory and storage. Returns stored rows removed."""
        self.store.delete(session_id)
        return await run_in_threadpool(self.storage.delete_messages, session_id)

    async def fork(self, session_id: str, new_session_id: str) -> list[ChatMessage]:
        """Copy a session's history to a new session id, in memory and storage."""
        history = await self.load(session_id)
        validate_session_id(new_session_id)
        self.store.replace(new_session_id, history)
        for message in history:
            await self.persist(new_session_id, message)
        return history
