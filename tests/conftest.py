"""Shared test fixtures for aichat-preview."""

import json

import pytest

from aichat_preview.backends.sqlite import SqliteMessageStorage
from aichat_preview.core import ChatMessage
from aichat_preview.errors import ModelProviderError
from aichat_preview.history import HistoryService
from aichat_preview.model import ModelClient
from aichat_preview.store import SessionStore


class FakeModel(ModelClient):
    """Model client replaying canned chunks; optionally fails part way."""

    name = "fake"

    def __init__(self, chunks=None, fail_after=None):
        self.chunks = list(chunks or ["Hello ", "there"])
        self.fail_after = fail_after
        self.seen_histories = []

    async def generate(self, history, system_prompt=""):
        self.seen_histories.append(list(history))
        return "".join(self.chunks)

    async def stream(self, history, system_prompt=""):
        self.seen_histories.append(list(history))
        for i, chunk in enumerate(self.chunks):
            if self.fail_after is not None and i == self.fail_after:
                raise ModelProviderError("connection reset")
            yield chunk


def manifest_json(files, type="fullstack", **extra):
    """Serialize a manifest the way the model is asked to emit it."""
    data = {"type": type, "files": files}
    data.update(extra)
    return json.dumps(data, indent=2)


def fenced(body, lang=""):
    return f"```{lang}\n{body}\n```"


@pytest.fixture
def store():
    return SessionStore()


@pytest.fixture
def storage(tmp_path):
    return SqliteMessageStorage(tmp_path / "chats.db")


@pytest.fixture
def history_service(store, storage):
    return HistoryService(store, storage)


@pytest.fixture
def two_page_manifest():
    return manifest_json(
        [
            {"path": "app/layout.tsx", "content": "export default function RootLayout({ children }) { return children }"},
            {"path": "app/about/page.tsx", "content": "export default function About() {\n  return <h1>About</h1>\n}"},
            {"path": "app/api/items/route.ts", "content": "export async function GET() {}"},
            {"path": "app/page.tsx", "content": "import { Star } from 'lucide-react';\n\nexport default function Home() {\n  return <Star />\n}"},
            {"path": "lib/db/schema.ts", "content": "export const users = {}"},
        ],
        explanation="Two pages and an API route",
        dependencies=["drizzle-orm"],
    )


@pytest.fixture
def component_reply():
    return (
        "Here is your counter component:\n\n"
        + fenced(
            "import React, { useState } from 'react';\n"
            "import { Plus, Minus as Less } from 'lucide-react';\n"
            "\n"
            "function Counter() {\n"
            "  const [count, setCount] = useState(0);\n"
            "  return (\n"
            "    <div><Plus /><span>{count}</span><Less /></div>\n"
            "  );\n"
            "}\n",
            "jsx",
        )
        + "\n\nLet me know if you want changes."
    )


@pytest.fixture
def seeded_storage(storage):
    storage.append_message("chat_1_abc", "user", "Build a landing page")
    storage.append_message("chat_1_abc", "model", fenced("export default function Landing() { return <main /> }", "tsx"))
    return storage


@pytest.fixture
def model_message():
    def _make(content):
        return ChatMessage(role="model", content=content)
    return _make
