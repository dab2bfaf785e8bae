"""Export chat histories to Markdown and JSON formats."""

import json
from typing import Sequence

from .core import ChatMessage

ROLE_LABELS = {"user": "User", "model": "Assistant"}


def session_title(messages: Sequence[ChatMessage]) -> str:
    """Title a session by its first user prompt."""
    for msg in messages:
        if msg.role == "user" and msg.content.strip():
            return msg.content.strip().splitlines()[0][:80]
    return "Untitled"


def session_to_markdown(session_id: str, messages: Sequence[ChatMessage]) -> str:
    """Export a session's messages as clean Markdown. Code fences are kept as-is."""
    lines = [f"# {session_title(messages)}", ""]
    lines.append(f"**Session:** {session_id}")
    lines.append(f"**Messages:** {len(messages)}")
    lines.extend(["", "---", ""])

    for msg in messages:
        lines.append(f"## {ROLE_LABELS.get(msg.role, msg.role.capitalize())}")
        lines.append("")
        lines.append(msg.content)
        lines.extend(["", "---", ""])

    return "\n".join(lines)


def session_to_json(session_id: str, messages: Sequence[ChatMessage]) -> str:
    """Export a session's messages as structured JSON."""
    data = {
        "session": {
            "id": session_id,
            "title": session_title(messages),
            "message_count": len(messages),
        },
        "messages": [{"role": msg.role, "content": msg.content} for msg in messages],
    }
    return json.dumps(data, indent=2, ensure_ascii=False)
