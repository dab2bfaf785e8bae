"""FastAPI web server for aichat-preview."""

import logging
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse, Response, StreamingResponse
from pydantic import BaseModel

from .backends import get_message_storage
from .chat import ChatService, new_session_id
from .core import ChatMessage
from .errors import InvalidSessionIdError, ModelProviderError, StoreUnavailableError
from .export import session_title, session_to_json, session_to_markdown
from .history import HistoryService
from .model import GeminiClient, ModelClient
from .pipeline import build_preview, has_model_message
from .provider import MessageStorage
from .scanner import FENCE
from .store import SessionStore

logger = logging.getLogger(__name__)

app = FastAPI(title="aichat-preview", version="0.1.0")

# Process-wide singletons (created on first request)
_store: SessionStore | None = None
_storage: MessageStorage | None = None


def get_session_store() -> SessionStore:
    global _store
    if _store is None:
        _store = SessionStore()
    return _store


def get_storage() -> MessageStorage:
    global _storage
    if _storage is None:
        _storage = get_message_storage()
        logger.info("Using %s message storage", _storage.name)
    return _storage


def get_history_service(
    store: SessionStore = Depends(get_session_store),
    storage: MessageStorage = Depends(get_storage),
) -> HistoryService:
    return HistoryService(store, storage)


def get_model_client() -> ModelClient:
    return GeminiClient()


def get_chat_service(
    history: HistoryService = Depends(get_history_service),
    model: ModelClient = Depends(get_model_client),
) -> ChatService:
    return ChatService(history, model)


class ChatRequest(BaseModel):
    message: str = ""
    chatId: Optional[str] = None
    streaming: bool = False


class ChatIdRequest(BaseModel):
    chatId: str = ""


def _messages_to_list(messages: list[ChatMessage]) -> list[dict]:
    return [{"role": m.role, "content": m.content} for m in messages]


# ── Error mapping ────────────────────────────────────────────────


@app.exception_handler(StoreUnavailableError)
async def store_unavailable_handler(request: Request, exc: StoreUnavailableError):
    return JSONResponse(
        status_code=503,
        content={"error": "Message storage unavailable", "detail": str(exc), "retryable": True},
        headers={"Retry-After": "1"},
    )


@app.exception_handler(InvalidSessionIdError)
async def invalid_session_handler(request: Request, exc: InvalidSessionIdError):
    return JSONResponse(status_code=400, content={"error": "Invalid chat ID", "detail": str(exc)})


@app.exception_handler(ModelProviderError)
async def model_error_handler(request: Request, exc: ModelProviderError):
    status = 502 if exc.configured else 500
    return JSONResponse(status_code=status, content={"error": "Model provider error", "detail": str(exc)})


# ── Routes ───────────────────────────────────────────────────────


@app.get("/api/chats")
async def list_chats(history: HistoryService = Depends(get_history_service)):
    """Return stored chats, most recent first, restoring each into memory."""
    chats = []
    for chat_id in await history.session_ids():
        messages = await history.load(chat_id)
        chats.append({
            "id": chat_id,
            "title": session_title(messages),
            "lastMessage": messages[-1].content[:100] if messages else "",
            "messageCount": len(messages),
        })
    return {"chats": chats}


@app.post("/api/chat")
async def post_chat(
    body: ChatRequest,
    chat: ChatService = Depends(get_chat_service),
):
    """Send a message, optionally streaming the model's reply."""
    if not body.message.strip():
        raise HTTPException(status_code=400, detail="Message is required")

    if body.streaming:
        chat_id = body.chatId or new_session_id()
        # Rehydrate up front so storage failures surface as a status code.
        await chat.history.load(chat_id)
        return StreamingResponse(
            chat.stream(chat_id, body.message),
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache", "X-Chat-ID": chat_id},
        )

    chat_id, messages = await chat.send(body.chatId, body.message)
    return {"id": chat_id, "messages": _messages_to_list(messages)}


@app.get("/api/chat/{chat_id}")
async def get_chat(chat_id: str, history: HistoryService = Depends(get_history_service)):
    """Return a chat's history, restoring it from storage if needed."""
    messages = await history.load(chat_id)
    if not messages:
        raise HTTPException(status_code=404, detail="Chat not found")

    has_code = any(FENCE in m.content for m in messages)
    return {
        "id": chat_id,
        "messages": _messages_to_list(messages),
        "demo": f"/api/preview/{chat_id}" if has_code else None,
    }


@app.post("/api/chat/fork")
async def fork_chat(body: ChatIdRequest, history: HistoryService = Depends(get_history_service)):
    """Copy a chat's history into a new chat."""
    if not body.chatId:
        raise HTTPException(status_code=400, detail="Chat ID is required")

    if not await history.load(body.chatId):
        raise HTTPException(status_code=404, detail="Chat not found")

    forked_id = new_session_id()
    messages = await history.fork(body.chatId, forked_id)
    return {"id": forked_id, "messages": _messages_to_list(messages)}


@app.post("/api/chat/delete")
async def delete_chat(body: ChatIdRequest, history: HistoryService = Depends(get_history_service)):
    if not body.chatId:
        raise HTTPException(status_code=400, detail="Chat ID is required")

    removed = await history.delete(body.chatId)
    return {"success": True, "removed": removed}


@app.get("/api/preview/{chat_id}")
async def get_preview(chat_id: str, history: HistoryService = Depends(get_history_service)):
    """Return the preview units for a chat's latest model output."""
    messages = await history.load(chat_id)
    if not has_model_message(messages):
        return {"chatId": chat_id, "status": "pending"}

    result = build_preview(messages)
    logger.info("Preview for %s: %d units", chat_id, len(result.units))
    return {"chatId": chat_id, **result.to_dict()}


@app.get("/api/export/{chat_id}")
async def export_chat(
    chat_id: str,
    format: str = Query("md", description="Export format: md or json"),
    history: HistoryService = Depends(get_history_service),
):
    """Export a chat as Markdown or JSON."""
    messages = await history.load(chat_id)
    if not messages:
        raise HTTPException(status_code=404, detail="Chat not found")

    title = session_title(messages)
    safe_title = "".join(c if c.isalnum() or c in "-_ " else "" for c in title)[:50] or chat_id

    if format == "json":
        content = session_to_json(chat_id, messages)
        return Response(
            content=content,
            media_type="application/json",
            headers={"Content-Disposition": f'attachment; filename="{safe_title}.json"'},
        )
    else:
        content = session_to_markdown(chat_id, messages)
        return Response(
            content=content,
            media_type="text/markdown",
            headers={"Content-Disposition": f'attachment; filename="{safe_title}.md"'},
        )
