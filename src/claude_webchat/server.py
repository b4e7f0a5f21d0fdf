"""FastAPI web surface for claude-webchat.

Serves a single chat page and relays the client's display events back to
the browser. ``/api/send`` answers with a ``text/event-stream`` body whose
events are the display events of that one prompt.
"""

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from contextvars import ContextVar
from pathlib import Path

from fastapi import Body, FastAPI, HTTPException, Query
from fastapi.responses import HTMLResponse, Response, StreamingResponse

from . import __version__
from .client import ConversationClient
from .core import DisplayEvent
from .display import CollectingSink, DisplaySink, QueueSink
from .export import EXPORTERS
from .store import FileSessionStore, SessionStore

logger = logging.getLogger(__name__)

_current_sink: ContextVar[DisplaySink | None] = ContextVar("current_sink", default=None)

_END = object()


class RequestSink(DisplaySink):
    """Routes events to the sink bound to the request being served."""

    def emit(self, event: DisplayEvent) -> None:
        sink = _current_sink.get()
        if sink is not None:
            sink.emit(event)


# Store and client (created on first request)
_store: SessionStore | None = None
_client: ConversationClient | None = None


def _get_store() -> SessionStore:
    global _store
    if _store is None:
        _store = FileSessionStore()
    return _store


def _get_client() -> ConversationClient:
    global _client
    if _client is None:
        _client = ConversationClient(_get_store(), RequestSink())
        logger.info("Conversation client ready (base URL %s)", _client.transport.base_url)
    return _client


def _collect(operation) -> list[dict]:
    """Run a synchronous client operation and return the events it emitted."""
    sink = CollectingSink()
    token = _current_sink.set(sink)
    try:
        operation()
    finally:
        _current_sink.reset(token)
    return [e.to_dict() for e in sink.events]


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None


app = FastAPI(title="claude-webchat", version=__version__, lifespan=lifespan)


# ── Routes ───────────────────────────────────────────────────────


@app.get("/")
async def index():
    """Serve the chat page."""
    html_path = Path(__file__).parent / "static" / "index.html"
    if not html_path.exists():
        raise HTTPException(status_code=404, detail="Frontend not found")
    return HTMLResponse(html_path.read_text(encoding="utf-8"))


@app.get("/api/status")
async def get_status():
    """Report whether a session cookie is stored."""
    client = _get_client()
    return _collect(client.publish_auth_status)


@app.post("/api/cookie")
async def set_cookie(cookie: str = Body(..., embed=True)):
    """Store a session cookie (raw value or full Cookie header)."""
    if not cookie.strip():
        raise HTTPException(status_code=400, detail="Cookie must not be empty")
    _get_store().set(cookie)
    return _collect(_get_client().publish_auth_status)


@app.delete("/api/cookie")
async def clear_cookie():
    """Forget the stored session cookie."""
    _get_store().delete()
    return _collect(_get_client().publish_auth_status)


@app.post("/api/new")
async def new_conversation():
    """Start a fresh conversation."""
    return _collect(_get_client().reset_conversation)


@app.get("/api/messages")
async def get_messages():
    """Return the current transcript."""
    client = _get_client()
    return {
        "conversation_id": client.conversation_id,
        "messages": [{"role": m.role, "content": m.content} for m in client.messages],
    }


@app.post("/api/send")
async def send_message(text: str = Body(..., embed=True)):
    """Send a prompt; the response streams its display events."""
    client = _get_client()
    sink = QueueSink()

    async def run():
        _current_sink.set(sink)
        try:
            await client.send_prompt(text)
        finally:
            sink.queue.put_nowait(_END)

    task = asyncio.create_task(run())

    async def events():
        try:
            while True:
                event = await sink.queue.get()
                if event is _END:
                    break
                yield f"data: {json.dumps(event.to_dict())}\n\n"
            await task
        finally:
            # Browser went away before the reply finished.
            if not task.done():
                task.cancel()
                await asyncio.wait([task])

    return StreamingResponse(events(), media_type="text/event-stream")


@app.get("/api/export")
async def export_transcript(
    format: str = Query("md", description="Export format: md or json"),
):
    """Export the transcript as Markdown or JSON."""
    exporter = EXPORTERS.get(format)
    if exporter is None:
        raise HTTPException(status_code=400, detail=f"Unknown format: {format}")

    client = _get_client()
    content = exporter(client.messages, conversation_id=client.conversation_id)
    media_type = "application/json" if format == "json" else "text/markdown"
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="conversation.{format}"'},
    )
