"""Exception hierarchy for claude-webchat.

Every failure a public ConversationClient operation can hit is a
WebChatError. The client turns these into ``error`` display events;
they never escape its public methods.
"""

from typing import Optional


class WebChatError(Exception):
    """Base class for all client-side failures."""


class NotAuthenticated(WebChatError):
    """No session token is stored."""

    def __init__(self, message: str = 'No session cookie set. Run "claude-webchat set-cookie" to configure.'):
        super().__init__(message)


class TransportError(WebChatError):
    """Connection-level failure: refused, TLS, timeout, premature close."""


class ProtocolError(WebChatError):
    """HTTP status >= 400, or an unusable success-path body."""

    def __init__(self, message: str, status: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status = status
        self.body = body

    @classmethod
    def from_response(cls, status: int, body: str) -> "ProtocolError":
        return cls(f"HTTP {status}: {body}", status=status, body=body)


class StreamError(WebChatError):
    """Failure during the streaming completion exchange."""


class BootstrapFailed(WebChatError):
    """Organization or conversation could not be established."""


class Busy(WebChatError):
    """A prompt is already in flight on this client."""

    def __init__(self, message: str = "A message is already being sent. Wait for it to finish."):
        super().__init__(message)
