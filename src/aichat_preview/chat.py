"""Chat turns: user message in, model message out, history kept current.

A streaming turn publishes its in-flight model message by replacing the
whole session history every few chunks. Each published snapshot is a new
immutable history whose last message only ever grows, so a concurrent
preview request sees a prefix of the final reply and nothing else. If the
stream breaks off, the partial reply is kept and persisted as-is.
"""

import logging
import secrets
import string
import time
from typing import AsyncIterator, Optional

from .config import get_snapshot_interval
from .core import ChatMessage
from .errors import ModelProviderError
from .history import HistoryService
from .model import ModelClient

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.digits + string.ascii_lowercase


def new_session_id() -> str:
    """Return a fresh id like ``chat_1718000000000_k3x9q2a``."""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(7))
    return f"chat_{int(time.time() * 1000)}_{suffix}"


class ChatService:
    """Runs chat turns against a model and keeps the session history current."""

    def __init__(self, history: HistoryService, model: ModelClient, snapshot_interval: Optional[int] = None):
        self.history = history
        self.model = model
        self.snapshot_interval = snapshot_interval or get_snapshot_interval()

    @property
    def store(self):
        return self.history.store

    async def send(self, session_id: Optional[str], text: str) -> tuple[str, list[ChatMessage]]:
        """Run one complete (non-streaming) turn. Returns the session id and its history."""
        session_id = session_id or new_session_id()
        async with self.store.turn_lock(session_id):
            await self._begin_turn(session_id, text)
            reply = await self.model.generate(self.store.read(session_id))
            # Empty replies are kept out of both memory and storage.
            if reply:
                message = ChatMessage(role="model", content=reply)
                self.store.append(session_id, message)
                await self.history.persist(session_id, message)
            logger.info("Completed turn for %s (%d chars)", session_id, len(reply))
            return session_id, self.store.read(session_id)

    async def stream(self, session_id: str, text: str) -> AsyncIterator[str]:
        """Run one streaming turn, yielding the model's text chunks as they arrive."""
        async with self.store.turn_lock(session_id):
            base = await self._begin_turn(session_id, text)
            content = ""
            published = 0
            chunks = 0
            try:
                async for chunk in self.model.stream(base):
                    if not chunk:
                        continue
                    content += chunk
                    chunks += 1
                    yield chunk
                    if chunks % self.snapshot_interval == 0:
                        published = self._publish(session_id, base, content, published)
            except ModelProviderError as e:
                logger.warning("Stream for %s interrupted after %d chars: %s", session_id, len(content), e)
            finally:
                if content:
                    self._publish(session_id, base, content, published)
                    await self.history.persist(session_id, ChatMessage(role="model", content=content))
                logger.info("Completed streaming turn for %s (%d chunks, %d chars)", session_id, chunks, len(content))

    async def _begin_turn(self, session_id: str, text: str) -> list[ChatMessage]:
        """Rehydrate the session, then record the user's message."""
        history = await self.history.load(session_id)
        message = ChatMessage(role="user", content=text)
        self.store.append(session_id, message)
        await self.history.persist(session_id, message)
        return history + [message]

    def _publish(self, session_id: str, base: list[ChatMessage], content: str, published: int) -> int:
        """Swap in a snapshot ending with the in-flight reply, if it has grown."""
        if len(content) <= published:
            return published
        self.store.replace(session_id, base + [ChatMessage(role="model", content=content)])
        return len(content)
