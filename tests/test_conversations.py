"""Tests for conversation aggregation and chat read state."""

import copy
from datetime import datetime, timedelta, timezone

import pytest

from errors import AuthorizationError, NotFoundError, ValidationError
from models.chat import MessageCreate
from services import conversations
from services.conversations import aggregate_conversations, conversation_id_for

T0 = datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)


def msg(sender, receiver, minutes, is_read=False, text="olá"):
    return {
        "id": f"{sender}-{receiver}-{minutes}",
        "conversation_id": conversation_id_for(sender, receiver),
        "sender_id": sender,
        "receiver_id": receiver,
        "message": text,
        "is_read": is_read,
        "created_date": T0 + timedelta(minutes=minutes),
    }


class TestConversationId:
    def test_order_independent(self):
        assert conversation_id_for("b", "a") == conversation_id_for("a", "b") == "a_b"


class TestAggregate:
    def test_three_messages_two_conversations(self):
        messages = [
            msg("a", "b", 0),
            msg("b", "a", 5, text="tudo bem?"),
            msg("c", "a", 2),
        ]
        summaries = aggregate_conversations(messages, "a")

        assert [s["conversation_id"] for s in summaries] == ["a_b", "a_c"]
        ab, ac = summaries
        assert ab["last_message"]["message"] == "tudo bem?"
        assert ab["message_count"] == 2
        assert ab["unread_count"] == 1  # only the one addressed to "a"
        assert ac["unread_count"] == 1
        assert ab["participant_ids"] == ["a", "b"]

    def test_read_and_outgoing_not_counted(self):
        messages = [msg("a", "b", 0), msg("b", "a", 1, is_read=True)]
        [summary] = aggregate_conversations(messages, "a")
        assert summary["unread_count"] == 0

    def test_input_not_mutated(self):
        messages = [msg("a", "b", 0), msg("b", "a", 1)]
        snapshot = copy.deepcopy(messages)
        aggregate_conversations(messages, "a")
        assert messages == snapshot

    def test_empty(self):
        assert aggregate_conversations([], "a") == []


class TestSendAndOpen:
    @pytest.mark.asyncio
    async def test_send_creates_message_and_notification(self, store, employer, worker):
        long_text = "x" * 60
        message = await conversations.send_message(store, worker, MessageCreate(receiver_id=employer["id"], message=long_text))

        assert message["conversation_id"] == conversation_id_for(worker["id"], employer["id"])
        assert message["is_read"] is False

        [notification] = await store.filter("Notification", {"user_id": employer["id"]})
        assert notification["type"] == "new_message"
        assert notification["title"] == "Nova mensagem de Rui Santos"
        assert notification["message"] == "x" * 50 + "..."
        assert notification["related_id"] == worker["id"]

    @pytest.mark.asyncio
    async def test_attachment_only_message(self, store, employer, worker):
        message = await conversations.send_message(
            store, worker, MessageCreate(receiver_id=employer["id"], attachment_url="/uploads/chat/f.pdf")
        )
        assert message["attachment_type"] == "document"
        assert message["message"] == ""

    def test_empty_message_rejected(self):
        with pytest.raises(ValueError):
            MessageCreate(receiver_id="x", message="   ")

    @pytest.mark.asyncio
    async def test_cannot_message_self_or_ghost(self, store, worker):
        with pytest.raises(ValidationError):
            await conversations.send_message(store, worker, MessageCreate(receiver_id=worker["id"], message="eu"))
        with pytest.raises(NotFoundError):
            await conversations.send_message(store, worker, MessageCreate(receiver_id="ghost", message="olá"))

    @pytest.mark.asyncio
    async def test_open_marks_read_and_resets_unread(self, store, employer, worker):
        for text in ("primeira", "segunda"):
            await conversations.send_message(store, worker, MessageCreate(receiver_id=employer["id"], message=text))
        await conversations.send_message(store, employer, MessageCreate(receiver_id=worker["id"], message="resposta"))

        [before] = await conversations.list_conversations(store, employer)
        assert before["unread_count"] == 2
        assert before["other_user"]["id"] == worker["id"]

        opened = await conversations.open_conversation(store, employer, before["conversation_id"])
        assert [m["message"] for m in opened["messages"]] == ["primeira", "segunda", "resposta"]
        assert all(m["is_read"] for m in opened["messages"] if m["receiver_id"] == employer["id"])

        [after] = await conversations.list_conversations(store, employer)
        assert after["unread_count"] == 0
        assert await store.filter("Notification", {"user_id": employer["id"], "is_read": False}) == []

        # the worker's own unread message is untouched
        [worker_view] = await conversations.list_conversations(store, worker)
        assert worker_view["unread_count"] == 1

    @pytest.mark.asyncio
    async def test_outsider_cannot_open(self, store, employer, worker, make_user):
        await conversations.send_message(store, worker, MessageCreate(receiver_id=employer["id"], message="olá"))
        outsider = await make_user("worker")

        with pytest.raises(AuthorizationError):
            await conversations.open_conversation(store, outsider, conversation_id_for(worker["id"], employer["id"]))

    @pytest.mark.asyncio
    async def test_admin_sees_all_conversations(self, store, employer, worker, admin, make_user):
        other = await make_user("employer")
        await conversations.send_message(store, worker, MessageCreate(receiver_id=employer["id"], message="1"))
        await conversations.send_message(store, worker, MessageCreate(receiver_id=other["id"], message="2"))

        assert len(await conversations.list_conversations(store, admin)) == 2
        assert len(await conversations.list_conversations(store, employer)) == 1

    @pytest.mark.asyncio
    async def test_conversation_with_deleted_user_skipped(self, store, employer, worker):
        await conversations.send_message(store, worker, MessageCreate(receiver_id=employer["id"], message="olá"))
        await store.delete("User", employer["id"])

        assert await conversations.list_conversations(store, worker) == []
