"""Export the conversation transcript to Markdown and JSON formats."""

import json
from datetime import datetime, timezone
from typing import Optional

from .core import Message

ROLE_LABELS = {"user": "You", "assistant": "Claude"}


def transcript_to_markdown(
    messages: list[Message],
    conversation_id: Optional[str] = None,
    exported: Optional[datetime] = None,
) -> str:
    """Export a transcript as clean Markdown."""
    exported = exported or datetime.now(timezone.utc)
    lines = ["# Claude conversation", ""]

    if conversation_id:
        lines.append(f"**Conversation:** {conversation_id}")
    lines.append(f"**Exported:** {exported.isoformat()}")
    lines.append(f"**Messages:** {len(messages)}")
    lines.extend(["", "---", ""])

    for msg in messages:
        lines.append(f"## {ROLE_LABELS.get(msg.role, msg.role.capitalize())}")
        lines.append("")
        lines.append(msg.content)
        lines.extend(["", "---", ""])

    return "\n".join(lines)


def transcript_to_json(
    messages: list[Message],
    conversation_id: Optional[str] = None,
    exported: Optional[datetime] = None,
) -> str:
    """Export a transcript as structured JSON."""
    exported = exported or datetime.now(timezone.utc)
    data = {
        "conversation": {
            "id": conversation_id,
            "exported": exported.isoformat(),
            "message_count": len(messages),
        },
        "messages": [
            {"role": msg.role, "content": msg.content}
            for msg in messages
        ],
    }
    return json.dumps(data, indent=2, ensure_ascii=False)


EXPORTERS = {
    "md": transcript_to_markdown,
    "json": transcript_to_json,
}
