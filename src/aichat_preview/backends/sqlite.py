"""SQLite message storage backend.

Messages live in a single ``chat_messages`` table ordered by an
autoincrement id. A fresh connection is opened per call, which keeps the
backend safe to use from a thread pool.
"""

import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path

from ..core import ChatMessage
from ..errors import StoreUnavailableError
from ..provider import MessageStorage

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS chat_messages (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    chat_id TEXT NOT NULL,
    role TEXT NOT NULL,
    content TEXT NOT NULL,
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_chat_messages_chat_id ON chat_messages (chat_id, id);
"""


class SqliteMessageStorage(MessageStorage):
    """Durable storage for chat messages in a local SQLite file."""

    name = "sqlite"

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self._schema_ready = False

    def load_messages(self, session_id: str) -> list[ChatMessage]:
        rows = self._execute(
            "SELECT role, content FROM chat_messages WHERE chat_id = ? ORDER BY id",
            (session_id,),
        )
        messages = []
        for role, content in rows:
            try:
                messages.append(ChatMessage(role=role, content=content or ""))
            except ValueError:
                logger.warning("Skipping stored message with unknown role %r in %s", role, session_id)
        return messages

    def append_message(self, session_id: str, role: str, text: str) -> None:
        self._execute_write(
            "INSERT INTO chat_messages (chat_id, role, content, created_at) VALUES (?, ?, ?, ?)",
            (session_id, role, text, datetime.now(timezone.utc).isoformat()),
        )

    def delete_messages(self, session_id: str) -> int:
        _, removed = self._execute_write("DELETE FROM chat_messages WHERE chat_id = ?", (session_id,))
        return removed

    def list_session_ids(self) -> list[str]:
        rows = self._execute(
            "SELECT chat_id FROM chat_messages GROUP BY chat_id ORDER BY MAX(id) DESC"
        )
        return [r[0] for r in rows]

    # ── Private helpers ──────────────────────────────────────────────

    def _execute(self, sql: str, params: tuple = ()) -> list[tuple]:
        rows, _ = self._run(sql, params, commit=False)
        return rows

    def _execute_write(self, sql: str, params: tuple = ()) -> tuple[list[tuple], int]:
        return self._run(sql, params, commit=True)

    def _run(self, sql: str, params: tuple, commit: bool) -> tuple[list[tuple], int]:
        try:
            conn = self._connect()
            try:
                cursor = conn.execute(sql, params)
                rows = cursor.fetchall()
                if commit:
                    conn.commit()
                return rows, cursor.rowcount
            finally:
                conn.close()
        except sqlite3.Error as e:
            logger.error("SQLite error on %s: %s", self.db_path, e)
            raise StoreUnavailableError(f"Message storage unavailable: {e}") from e

    def _connect(self) -> sqlite3.Connection:
        if not self._schema_ready:
            try:
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise sqlite3.OperationalError(f"cannot create {self.db_path.parent}: {e}") from e
        conn = sqlite3.connect(str(self.db_path))
        if not self._schema_ready:
            conn.executescript(_SCHEMA)
            self._schema_ready = True
        return conn
