"""Conversation client: bootstrap, dispatch, and stream decoding.

Ties the session store, transport and SSE decoder together and reports
progress to a DisplaySink. Every public operation either completes
normally or emits exactly one ``error`` display event; WebChatErrors are
never raised to the caller.
"""

import asyncio
import logging
import uuid
from typing import Callable, Optional

from .config import get_timezone
from .core import ClientState, Conversation, DisplayEvent, Message
from .display import DisplaySink
from .errors import (
    BootstrapFailed,
    Busy,
    NotAuthenticated,
    ProtocolError,
    StreamError,
    TransportError,
    WebChatError,
)
from .sse import SSEDecoder
from .store import SessionStore
from .transport import TransportClient

logger = logging.getLogger(__name__)

ORGANIZATIONS_PATH = "/api/organizations"


def conversations_path(org_id: str) -> str:
    return f"{ORGANIZATIONS_PATH}/{org_id}/chat_conversations"


def completion_path(org_id: str, conversation_id: str) -> str:
    return f"{conversations_path(org_id)}/{conversation_id}/completion"


class ConversationClient:
    """One conversation with the remote service.

    The organization id is resolved once and cached for the lifetime of
    the instance; the conversation is created lazily on the first prompt
    and replaced by ``reset_conversation``. Prompts are serialized: a
    prompt sent while another is in flight is rejected with Busy.
    """

    def __init__(
        self,
        store: SessionStore,
        sink: DisplaySink,
        transport: Optional[TransportClient] = None,
        timezone: Optional[str] = None,
        decoder_factory: Callable[[], SSEDecoder] = SSEDecoder,
    ):
        self.store = store
        self.sink = sink
        self.transport = transport or TransportClient()
        self.timezone = timezone or get_timezone()
        self.decoder_factory = decoder_factory

        self.state = ClientState.UNAUTHENTICATED
        self.org_id: Optional[str] = None
        self._conversation = Conversation()
        self._lock = asyncio.Lock()
        self._task: Optional[asyncio.Task] = None
        self._closed = False

    async def __aenter__(self) -> "ConversationClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    @property
    def conversation_id(self) -> Optional[str]:
        return self._conversation.id

    @property
    def messages(self) -> list[Message]:
        """A snapshot of the transcript, oldest first."""
        return list(self._conversation.messages)

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    # ── Public operations ────────────────────────────────────────────

    def check_auth_status(self) -> bool:
        """Return whether a session token is stored."""
        return self.store.has_token()

    def publish_auth_status(self) -> bool:
        """Report token presence to the display (drives its warning banner)."""
        has_cookie = self.check_auth_status()
        self._emit(DisplayEvent("cookieStatus", has_cookie=has_cookie))
        return has_cookie

    def reset_conversation(self) -> None:
        """Start over: drop the conversation id and transcript together."""
        self._conversation = Conversation()
        logger.info("Conversation reset")
        self._emit(DisplayEvent("clearChat"))

    async def send_prompt(self, text: str) -> None:
        """Send one user prompt and stream the reply to the display."""
        if not text or not text.strip():
            return
        if self._closed:
            logger.debug("Ignoring prompt on closed client")
            return
        if self._lock.locked():
            self._fail(Busy())
            return

        async with self._lock:
            self._task = asyncio.current_task()
            try:
                await self._send(text)
            except WebChatError as e:
                self._fail(e)
            except asyncio.CancelledError:
                if not self._closed:
                    self._emit(DisplayEvent("error", text="Error: request cancelled"))
                raise
            finally:
                self._task = None
                if self.state in (ClientState.BOOTSTRAPPING, ClientState.STREAMING):
                    self.state = ClientState.IDLE

    async def aclose(self) -> None:
        """Stop any in-flight prompt, silence the display, release the connection."""
        if self._closed:
            return
        self._closed = True
        task = self._task
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()
            await asyncio.wait([task])
        await self.transport.aclose()

    # ── Private helpers ──────────────────────────────────────────────

    def _emit(self, event: DisplayEvent) -> None:
        if not self._closed:
            self.sink.emit(event)

    def _fail(self, error: WebChatError) -> None:
        logger.warning("%s: %s", type(error).__name__, error)
        self._emit(DisplayEvent("error", text=f"Error: {error}"))

    def _require_token(self) -> str:
        # Fetched fresh for every request; the store may change between calls.
        token = self.store.get()
        if not token:
            raise NotAuthenticated()
        if not token.isascii():
            # Header values must be ASCII.
            raise NotAuthenticated(
                "Session cookie contains non-ASCII characters. Copy it again and re-run set-cookie."
            )
        return token

    async def _send(self, text: str) -> None:
        self._require_token()
        if self.state == ClientState.UNAUTHENTICATED:
            self.state = ClientState.READY
        conversation = self._conversation

        self._emit(DisplayEvent("userMessage", text=text))
        self._emit(DisplayEvent("thinking"))

        self.state = ClientState.BOOTSTRAPPING
        org_id = await self._ensure_organization()
        conversation_id = await self._ensure_conversation(org_id, conversation)

        conversation.messages.append(Message(role="user", content=text))

        self.state = ClientState.STREAMING
        self._emit(DisplayEvent("startAssistantMessage"))
        reply = await self._stream_completion(org_id, conversation_id, text)

        conversation.messages.append(Message(role="assistant", content=reply))
        self.state = ClientState.IDLE
        self._emit(DisplayEvent("done"))

    async def _ensure_organization(self) -> str:
        if self.org_id:
            return self.org_id

        self._emit(DisplayEvent("status", text="Getting organization..."))
        headers = self.transport.headers_for(self._require_token())
        try:
            result = await self.transport.request(ORGANIZATIONS_PATH, "GET", headers)
            if not result.ok:
                raise ProtocolError.from_response(result.status, result.body)
            orgs = result.json()
        except (TransportError, ProtocolError) as e:
            raise BootstrapFailed(f"Could not get organization: {e}") from e

        if not isinstance(orgs, list) or not orgs:
            raise BootstrapFailed(f"Could not get organization. Response: {result.body}")
        first = orgs[0]
        org_id = first.get("uuid") if isinstance(first, dict) else None
        if not isinstance(org_id, str) or not org_id:
            raise BootstrapFailed(f"Could not get organization. Response: {result.body}")

        self.org_id = org_id
        logger.info("Using organization %s", org_id)
        return org_id

    async def _ensure_conversation(self, org_id: str, conversation: Conversation) -> str:
        if conversation.id:
            return conversation.id

        self._emit(DisplayEvent("status", text="Starting conversation..."))
        headers = self.transport.headers_for(self._require_token(), has_body=True)
        body = {"uuid": str(uuid.uuid4()), "name": ""}
        try:
            result = await self.transport.request(conversations_path(org_id), "POST", headers, body)
            if not result.ok:
                raise ProtocolError.from_response(result.status, result.body)
            data = result.json()
        except (TransportError, ProtocolError) as e:
            raise BootstrapFailed(f"Could not start conversation: {e}") from e

        conversation_id = data.get("uuid") if isinstance(data, dict) else None
        if not isinstance(conversation_id, str) or not conversation_id:
            raise BootstrapFailed(f"No UUID in response: {result.body}")

        conversation.id = conversation_id
        logger.info("Created conversation %s", conversation_id)
        return conversation_id

    async def _stream_completion(self, org_id: str, conversation_id: str, prompt: str) -> str:
        headers = self.transport.headers_for(self._require_token(), has_body=True)
        headers["Accept"] = "text/event-stream"
        # Only the latest prompt is sent; the service keeps its own history.
        body = {
            "prompt": prompt,
            "timezone": self.timezone,
            "attachments": [],
            "files": [],
        }

        parts: list[str] = []
        path = completion_path(org_id, conversation_id)
        try:
            async with self.transport.open_stream(path, "POST", headers, body) as response:
                if response.status >= 400:
                    error_body = await response.read_text()
                    raise StreamError(f"HTTP {response.status}: {error_body}")

                decoder = self.decoder_factory()
                async for event in decoder.decode(response.iter_bytes()):
                    if event.kind == "delta":
                        parts.append(event.text)
                        self._emit(DisplayEvent("chunk", text=event.text))
        except TransportError as e:
            raise StreamError(str(e)) from e

        logger.debug("Completion finished: %d chunks", len(parts))
        return "".join(parts)
