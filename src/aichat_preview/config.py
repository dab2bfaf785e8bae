"""Environment-driven settings and platform-aware path resolution."""

import logging
import os
import sys
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_PROJECT_TYPES = (
    "fullstack",
    "full-stack",
    "web",
    "webapp",
    "app",
    "project",
    "website",
    "nextjs",
    "react",
)


def get_database_path() -> Path:
    """Return the path to the SQLite database holding chat messages."""
    env = os.environ.get("AICHAT_PREVIEW_DB")
    if env:
        return Path(env)

    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "aichat-preview" / "chats.db"
    elif sys.platform == "win32":
        return Path(os.environ.get("APPDATA", "")) / "aichat-preview" / "chats.db"
    else:  # Linux
        return Path.home() / ".local" / "share" / "aichat-preview" / "chats.db"


def get_gemini_api_key() -> str | None:
    return os.environ.get("GEMINI_API_KEY") or None


def get_gemini_model() -> str:
    return os.environ.get("AICHAT_GEMINI_MODEL", "gemini-2.5-flash")


def get_project_types() -> tuple[str, ...]:
    """Return the closed set of manifest "type" tags we accept, lowercased."""
    env = os.environ.get("AICHAT_PROJECT_TYPES")
    if env:
        types = tuple(t.strip().lower() for t in env.split(",") if t.strip())
        if types:
            return types
    return DEFAULT_PROJECT_TYPES


def get_preview_window() -> int:
    """Return how many trailing model messages a preview concatenates."""
    return _get_positive_int("AICHAT_PREVIEW_WINDOW", 1)


def get_snapshot_interval() -> int:
    """Return how many streamed chunks pass between in-flight history snapshots."""
    return _get_positive_int("AICHAT_SNAPSHOT_INTERVAL", 10)


def get_log_level() -> str:
    return os.environ.get("AICHAT_LOG_LEVEL", "INFO").upper()


def _get_positive_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r, using %d", name, raw, default)
        return default
    if value < 1:
        logger.warning("Ignoring %s=%d (must be >= 1), using %d", name, value, default)
        return default
    return value
