"""Durable storage backends and the default backend factory."""

from ..config import get_database_path
from ..provider import MessageStorage
from .sqlite import SqliteMessageStorage


def get_message_storage() -> MessageStorage:
    """Return the configured durable message storage."""
    return SqliteMessageStorage(get_database_path())


__all__ = ["MessageStorage", "SqliteMessageStorage", "get_message_storage"]
