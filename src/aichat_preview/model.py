"""Generative model clients.

The rest of the package only sees ``ModelClient``: a model message is
either a complete string or an async stream of text chunks.
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import AsyncIterator, Optional, Sequence

import httpx

from .config import get_gemini_api_key, get_gemini_model
from .core import ChatMessage
from .errors import ModelProviderError

logger = logging.getLogger(__name__)

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"

# Only the most recent messages are sent as context.
CONTEXT_MESSAGES = 10

GENERATION_CONFIG = {
    "temperature": 0.7,
    "maxOutputTokens": 20480,
    "topP": 0.95,
    "topK": 40,
}

SYSTEM_PROMPT = """You are an expert front-end and full-stack developer. Build complete, \
working applications with React, Next.js and Tailwind CSS.

Decide whether the user wants a full application or a single component.

For a FULL APPLICATION, answer with one ```json block in exactly this shape:

{
  "type": "fullstack",
  "files": [
    {"path": "app/page.tsx", "content": "...", "description": "Landing page"},
    {"path": "app/about/page.tsx", "content": "...", "description": "About page"},
    {"path": "app/api/items/route.ts", "content": "...", "description": "Items API"}
  ],
  "explanation": "Brief architecture explanation",
  "dependencies": ["drizzle-orm"]
}

Pages live under app/ (app/page.tsx is the home page, app/<name>/page.tsx for others),
API routes under app/api/, shared code under lib/ and components/.

For a SIMPLE COMPONENT, answer with one ```tsx block containing a single self-contained
component with a default export.

Previews run in the browser without a bundler: write plain JavaScript/JSX without type
annotations, inline any helper components in the same file, and import nothing except
icons from lucide-react. Use Tailwind CSS for all styling."""


class ModelClient(ABC):
    """Produces the text of the next model message for a history."""

    name: str

    @abstractmethod
    async def generate(self, history: Sequence[ChatMessage], system_prompt: str = SYSTEM_PROMPT) -> str:
        """Return the complete text of the model's reply."""
        ...

    @abstractmethod
    def stream(self, history: Sequence[ChatMessage], system_prompt: str = SYSTEM_PROMPT) -> AsyncIterator[str]:
        """Yield the model's reply as it is produced."""
        ...


class GeminiClient(ModelClient):
    """Client for the Gemini generateContent / streamGenerateContent API."""

    name = "gemini"

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None, timeout: float = 120.0):
        self.api_key = api_key or get_gemini_api_key()
        self.model = model or get_gemini_model()
        self._transport = transport
        self._timeout = timeout
        if not self.api_key:
            raise ModelProviderError("GEMINI_API_KEY not configured", configured=False)

    async def generate(self, history: Sequence[ChatMessage], system_prompt: str = SYSTEM_PROMPT) -> str:
        url = f"{GEMINI_BASE_URL}/{self.model}:generateContent"
        async with self._client() as client:
            try:
                resp = await client.post(url, params={"key": self.api_key}, json=self._request_body(history, system_prompt))
            except httpx.HTTPError as e:
                raise ModelProviderError(f"Gemini request failed: {e}") from e
            if resp.status_code != 200:
                logger.error("Gemini API error %s: %s", resp.status_code, resp.text[:500])
                raise ModelProviderError(f"Gemini API error: {resp.status_code}")
            return _candidate_text(resp.json())

    async def stream(self, history: Sequence[ChatMessage], system_prompt: str = SYSTEM_PROMPT) -> AsyncIterator[str]:
        url = f"{GEMINI_BASE_URL}/{self.model}:streamGenerateContent"
        params = {"key": self.api_key, "alt": "sse"}
        async with self._client() as client:
            try:
                async with client.stream("POST", url, params=params, json=self._request_body(history, system_prompt)) as resp:
                    if resp.status_code != 200:
                        body = await resp.aread()
                        logger.error("Gemini streaming error %s: %s", resp.status_code, body[:500])
                        raise ModelProviderError(f"Gemini API error: {resp.status_code}")
                    async for line in resp.aiter_lines():
                        if not line.startswith("data: "):
                            continue
                        data = line[len("data: "):].strip()
                        if data == "[DONE]":
                            return
                        try:
                            text = _candidate_text(json.loads(data))
                        except json.JSONDecodeError:
                            continue
                        if text:
                            yield text
            except httpx.HTTPError as e:
                raise ModelProviderError(f"Gemini stream failed: {e}") from e

    # ── Private helpers ──────────────────────────────────────────────

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self._transport, timeout=self._timeout)

    @staticmethod
    def _request_body(history: Sequence[ChatMessage], system_prompt: str) -> dict:
        contents = [
            {"role": "user" if m.role == "user" else "model", "parts": [{"text": m.content}]}
            for m in list(history)[-CONTEXT_MESSAGES:]
        ]
        return {
            "contents": contents,
            "systemInstruction": {"parts": [{"text": system_prompt}]},
            "generationConfig": GENERATION_CONFIG,
        }


def _candidate_text(data: dict) -> str:
    try:
        parts = data["candidates"][0]["content"]["parts"]
    except (KeyError, IndexError, TypeError):
        return ""
    return "".join(p.get("text", "") for p in parts if isinstance(p, dict))
