"""Tests for the bounded message log and role alternation."""

from salesbot.conversation.history import MessageHistory, alternate_roles
from salesbot.schemas.conversation_schema import ConversationMessage, MessageRole
from tests.conftest import START


def _msg(text: str, role: MessageRole = MessageRole.USER) -> ConversationMessage:
    return ConversationMessage(role=role, content=text, timestamp=START)


class TestMessageHistory:
    def test_default_cap_is_fifty(self):
        history = MessageHistory()
        for i in range(60):
            history.add("+1", _msg(f"m{i}"))
        assert history.count("+1") == 50
        assert history.recent("+1", 100)[0].content == "m10"

    def test_custom_cap_drops_oldest(self):
        history = MessageHistory(cap=3)
        for i in range(5):
            history.add("+1", _msg(f"m{i}"))
        assert [m.content for m in history.recent("+1")] == ["m2", "m3", "m4"]

    def test_recent_limit_oldest_first(self):
        history = MessageHistory()
        for i in range(5):
            history.add("+1", _msg(f"m{i}"))
        assert [m.content for m in history.recent("+1", 2)] == ["m3", "m4"]

    def test_unknown_phone_empty(self):
        history = MessageHistory()
        assert history.recent("+404") == []
        assert history.count("+404") == 0

    def test_phones_are_isolated(self):
        history = MessageHistory()
        history.add("+1", _msg("a"))
        history.add("+2", _msg("b"))
        assert [m.content for m in history.recent("+1")] == ["a"]


class TestAlternateRoles:
    def test_merges_consecutive_same_role(self):
        result = alternate_roles([
            {"role": "user", "content": "hi"},
            {"role": "user", "content": "anyone there?"},
            {"role": "assistant", "content": "hello!"},
        ])
        assert result == [
            {"role": "user", "content": "hi\nanyone there?"},
            {"role": "assistant", "content": "hello!"},
        ]

    def test_drops_system_and_leading_assistant(self):
        result = alternate_roles([
            {"role": "system", "content": "rules"},
            {"role": "assistant", "content": "follow-up"},
            {"role": "user", "content": "yes"},
        ])
        assert result == [{"role": "user", "content": "yes"}]

    def test_roles_alternate_and_start_with_user(self):
        result = alternate_roles([
            {"role": "assistant", "content": "a"},
            {"role": "user", "content": "b"},
            {"role": "system", "content": "s"},
            {"role": "user", "content": "c"},
            {"role": "assistant", "content": "d"},
            {"role": "assistant", "content": "e"},
        ])
        assert result[0]["role"] == "user"
        for first, second in zip(result, result[1:]):
            assert first["role"] != second["role"]
        assert result[-1]["content"] == "d\ne"

    def test_empty(self):
        assert alternate_roles([]) == []
