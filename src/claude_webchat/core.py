"""Core data models for claude-webchat."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class ClientState(str, Enum):
    """Lifecycle states of a ConversationClient."""

    UNAUTHENTICATED = "unauthenticated"
    READY = "ready"
    BOOTSTRAPPING = "bootstrapping"
    STREAMING = "streaming"
    IDLE = "idle"


@dataclass
class Message:
    """A single turn in the conversation transcript."""

    role: str  # "user" | "assistant"
    content: str


@dataclass
class Conversation:
    """The active conversation: its remote id and local transcript.

    Replaced as a whole on reset, never cleared field by field.
    """

    id: Optional[str] = None
    messages: list[Message] = field(default_factory=list)


@dataclass(frozen=True)
class StreamEvent:
    """A decoded unit from the completion event stream."""

    kind: str  # "delta" | "done"
    text: str = ""

    @classmethod
    def delta(cls, text: str) -> "StreamEvent":
        return cls(kind="delta", text=text)

    @classmethod
    def done(cls) -> "StreamEvent":
        return cls(kind="done")


# Display event types the core may emit. Nothing else reaches a DisplaySink.
DISPLAY_EVENT_TYPES = frozenset({
    "cookieStatus",
    "userMessage",
    "thinking",
    "status",
    "startAssistantMessage",
    "chunk",
    "done",
    "error",
    "clearChat",
})


@dataclass(frozen=True)
class DisplayEvent:
    """A presentation event sent from the client to the display layer."""

    type: str
    text: Optional[str] = None
    has_cookie: Optional[bool] = None

    def __post_init__(self):
        if self.type not in DISPLAY_EVENT_TYPES:
            raise ValueError(f"Unknown display event type: {self.type}")

    def to_dict(self) -> dict:
        """Convert to the JSON shape the web page consumes."""
        data: dict = {"type": self.type}
        if self.text is not None:
            data["text"] = self.text
        if self.has_cookie is not None:
            data["hasCookie"] = self.has_cookie
        return data
