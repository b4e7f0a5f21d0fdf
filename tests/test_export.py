"""Tests for transcript export."""

import json
from datetime import datetime, timezone

import pytest

from claude_webchat.core import Message
from claude_webchat.export import EXPORTERS, transcript_to_json, transcript_to_markdown

EXPORTED = datetime(2025, 1, 15, 10, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def sample_messages():
    return [
        Message(role="user", content="Fix the login bug in auth.ts"),
        Message(
            role="assistant",
            content="Here's the change:\n\n```typescript\nconst token = await validateToken(input);\n```",
        ),
        Message(role="user", content="Looks good, thanks!"),
    ]


class TestMarkdownExport:
    def test_header(self, sample_messages):
        result = transcript_to_markdown(sample_messages, conversation_id="conv-1", exported=EXPORTED)
        assert result.startswith("# Claude conversation")
        assert "**Conversation:** conv-1" in result
        assert "**Exported:** 2025-01-15T10:00:00+00:00" in result
        assert "**Messages:** 3" in result

    def test_roles_and_content_in_order(self, sample_messages):
        result = transcript_to_markdown(sample_messages, exported=EXPORTED)
        assert result.index("## You") < result.index("## Claude")
        assert result.count("## You") == 2
        assert "```typescript" in result
        assert "Looks good, thanks!" in result

    def test_without_conversation_id(self):
        result = transcript_to_markdown([], exported=EXPORTED)
        assert "**Conversation:**" not in result
        assert "**Messages:** 0" in result


class TestJsonExport:
    def test_structure(self, sample_messages):
        data = json.loads(transcript_to_json(sample_messages, conversation_id="conv-1", exported=EXPORTED))
        assert data["conversation"] == {
            "id": "conv-1",
            "exported": "2025-01-15T10:00:00+00:00",
            "message_count": 3,
        }
        assert data["messages"][0] == {"role": "user", "content": "Fix the login bug in auth.ts"}
        assert [m["role"] for m in data["messages"]] == ["user", "assistant", "user"]

    def test_unicode_preserved(self):
        result = transcript_to_json([Message(role="assistant", content="héllo ✨")], exported=EXPORTED)
        assert "héllo ✨" in result


def test_exporter_registry():
    assert set(EXPORTERS) == {"md", "json"}
