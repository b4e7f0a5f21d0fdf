"""Platform-aware paths and settings, with environment overrides."""

import os
import sys
from pathlib import Path

APP_NAME = "claude-webchat"

DEFAULT_BASE_URL = "https://claude.ai"
DEFAULT_TIMEOUT = 60.0

# SSE framing
DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"
LINE_TERMINATOR = "\n"


def get_data_dir() -> Path:
    """Return the directory holding the stored session token."""
    env = os.environ.get("CLAUDE_WEBCHAT_HOME")
    if env:
        return Path(env)

    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / APP_NAME
    elif sys.platform == "win32":
        return Path(os.environ.get("APPDATA", "")) / APP_NAME
    else:  # Linux
        xdg = os.environ.get("XDG_CONFIG_HOME")
        base = Path(xdg) if xdg else Path.home() / ".config"
        return base / APP_NAME


def get_session_path() -> Path:
    """Return the path of the session token file."""
    return get_data_dir() / "session"


def get_base_url() -> str:
    """Return the remote service origin, without a trailing slash."""
    return os.environ.get("CLAUDE_WEBCHAT_BASE_URL", DEFAULT_BASE_URL).rstrip("/")


def get_timeout() -> float:
    """Return the transport read timeout in seconds."""
    env = os.environ.get("CLAUDE_WEBCHAT_TIMEOUT")
    if env:
        try:
            return float(env)
        except ValueError:
            pass
    return DEFAULT_TIMEOUT


def get_timezone() -> str:
    """Return the local IANA timezone name sent with each completion."""
    for var in ("CLAUDE_WEBCHAT_TIMEZONE", "TZ"):
        value = os.environ.get(var, "").strip().lstrip(":")
        if value and ("/" in value or value == "UTC"):
            return value

    etc_timezone = Path("/etc/timezone")
    try:
        value = etc_timezone.read_text(encoding="utf-8").strip()
        if value:
            return value
    except OSError:
        pass

    # /etc/localtime -> /usr/share/zoneinfo/Europe/Berlin
    localtime = Path("/etc/localtime")
    try:
        target = str(localtime.resolve())
        marker = "zoneinfo/"
        if marker in target:
            return target.split(marker, 1)[1]
    except OSError:
        pass

    return "UTC"
