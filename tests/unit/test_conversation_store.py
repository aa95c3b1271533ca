"""Unit tests for ConversationStore."""

import pytest

from triagevoice.dialogue.persona import WELCOME_MESSAGE
from triagevoice.dialogue.storage import ConversationStore, new_id
from triagevoice.models.conversation import Message


def message(role, content, timestamp=0.0):
    return Message(id=new_id("msg"), role=role, content=content, timestamp=timestamp)


@pytest.mark.unit
class TestConversationStore:
    """Test cases for the in-memory conversation store."""

    def test_new_session_starts_with_welcome(self):
        store = ConversationStore()

        session = store.create_session("session-1")

        assert store.get_session("session-1") is session
        assert len(session.messages) == 1
        assert session.messages[0].role == "assistant"
        assert session.messages[0].content == WELCOME_MESSAGE

    def test_unknown_session(self):
        assert ConversationStore().get_session("nope") is None

    def test_add_message_creates_session(self):
        store = ConversationStore()

        session = store.add_message("session-2", message("user", "¿Qué le duele?"))

        assert [m.role for m in session.messages] == ["assistant", "user"]
        assert session.updated_at >= session.created_at

    def test_history_limit(self):
        store = ConversationStore()
        store.create_session("s")
        for i in range(6):
            store.add_message("s", message("user" if i % 2 == 0 else "assistant", f"m{i}"))
        store.add_message("s", message("system", "ignored"))

        history = store.history("s", limit=3)

        assert [m.content for m in history] == ["m3", "m4", "m5"]

    def test_history_of_unknown_session(self):
        assert ConversationStore().history("missing") == []

    def test_history_zero_limit(self):
        store = ConversationStore()
        store.create_session("s")
        assert store.history("s", limit=0) == []

    def test_save_and_list_conversations(self):
        store = ConversationStore()
        first = store.save_conversation("case-1", "Dolor abdominal", "general",
                                        [message("user", "hola", 1.0)])
        first.created_at = 1.0
        second = store.save_conversation("case-2", "Trauma", "trauma_shock", [],
                                         final_triage="Prioridad I")
        second.created_at = 2.0

        conversations = store.list_conversations()

        assert [c.id for c in conversations] == [second.id, first.id]
        assert second.final_triage == "Prioridad I"
        assert first.id.startswith("conv-")

    @pytest.mark.parametrize("case_id,case_name,category,messages", [
        ("", "name", "cat", []),
        ("id", "", "cat", []),
        ("id", "name", "", []),
        ("id", "name", "cat", None),
    ])
    def test_save_requires_fields(self, case_id, case_name, category, messages):
        with pytest.raises(ValueError):
            ConversationStore().save_conversation(case_id, case_name, category, messages)
