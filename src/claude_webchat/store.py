"""Session token storage.

The token never leaves a SessionStore except to be placed in the
credential header of an outgoing request.
"""

import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from .config import get_session_path

logger = logging.getLogger(__name__)


class SessionStore(ABC):
    """Key-value store for the browser session token."""

    @abstractmethod
    def get(self) -> Optional[str]:
        """Return the stored token, or None when nothing is stored."""
        ...

    @abstractmethod
    def set(self, token: str) -> None:
        """Store a token, trimming surrounding whitespace."""
        ...

    @abstractmethod
    def delete(self) -> None:
        """Forget the stored token. Deleting an empty store is a no-op."""
        ...

    def has_token(self) -> bool:
        return bool(self.get())


class MemorySessionStore(SessionStore):
    """Process-local store, used by tests and throwaway sessions."""

    def __init__(self, token: Optional[str] = None):
        self._token = token.strip() if token else None

    def get(self) -> Optional[str]:
        return self._token or None

    def set(self, token: str) -> None:
        self._token = token.strip()

    def delete(self) -> None:
        self._token = None


class FileSessionStore(SessionStore):
    """Token persisted in a single owner-only file in the data directory."""

    def __init__(self, path: Optional[Path] = None):
        self.path = path or get_session_path()

    def get(self) -> Optional[str]:
        try:
            value = self.path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning("Could not read session file %s: %s", self.path, e)
            return None
        return value or None

    def set(self, token: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(token.strip())
        logger.debug("Stored session token in %s", self.path)

    def delete(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            return
        logger.debug("Removed session file %s", self.path)
