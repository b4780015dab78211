# services/conversations.py
"""
Chat conversations.

There is no conversation table: a conversation is every ChatMessage sharing a
conversation_id, which is the two participant ids sorted and joined with "_".
The conversation list is derived from the flat message log on every read.
"""

import logging

from errors import AuthorizationError, NotFoundError, ValidationError
from models.chat import MessageCreate
from models.notification import NotificationType
from models.user import public_user
from services.notifications import is_admin, mark_matching_read, notify

logger = logging.getLogger(__name__)

PREVIEW_LENGTH = 50


def conversation_id_for(user_a: str, user_b: str) -> str:
    return "_".join(sorted([user_a, user_b]))


def participants_of(conversation_id: str) -> list[str]:
    return conversation_id.split("_")


def preview(text: str, length: int = PREVIEW_LENGTH) -> str:
    return text[:length] + ("..." if len(text) > length else "")


def aggregate_conversations(messages: list[dict], viewer_id: str) -> list[dict]:
    """
    Group messages into conversation summaries.

    Each summary carries the latest message, the total message count and how
    many unread messages are addressed to `viewer_id`. Ordered by latest
    message, newest first. The input messages are not modified.
    """
    summaries: dict[str, dict] = {}

    for m in messages:
        cid = m["conversation_id"]
        summary = summaries.get(cid)
        if summary is None:
            summary = {
                "conversation_id": cid,
                "participant_ids": sorted({m["sender_id"], m["receiver_id"]}),
                "last_message": m,
                "message_count": 0,
                "unread_count": 0,
            }
            summaries[cid] = summary
        elif m["created_date"] > summary["last_message"]["created_date"]:
            summary["last_message"] = m

        summary["message_count"] += 1
        if not m["is_read"] and m["receiver_id"] == viewer_id:
            summary["unread_count"] += 1

    return sorted(summaries.values(), key=lambda s: s["last_message"]["created_date"], reverse=True)


async def _messages_visible_to(store, user: dict) -> list[dict]:
    if is_admin(user):
        return await store.list("ChatMessage")

    sent = await store.filter("ChatMessage", {"sender_id": user["id"]})
    received = await store.filter("ChatMessage", {"receiver_id": user["id"]})
    by_id = {m["id"]: m for m in sent + received}
    return list(by_id.values())


async def list_conversations(store, user: dict) -> list[dict]:
    """Conversation summaries for `user`, each with its participants and `other_user`."""
    messages = await _messages_visible_to(store, user)
    summaries = aggregate_conversations(messages, user["id"])

    users: dict[str, dict | None] = {}
    result = []
    for summary in summaries:
        for pid in summary["participant_ids"]:
            if pid not in users:
                users[pid] = await store.get("User", pid)

        participants = [users[pid] for pid in summary["participant_ids"]]
        if any(p is None for p in participants):
            # a participant account is gone, nothing useful to show
            continue

        other = next((p for p in participants if p["id"] != user["id"]), None)
        result.append({
            **summary,
            "participants": [public_user(p) for p in participants],
            "other_user": public_user(other),
        })
    return result


async def open_conversation(store, user: dict, conversation_id: str) -> dict:
    """
    Load a conversation oldest-first and clear the caller's unread state.

    Every unread message addressed to the caller is flagged read, along with
    the caller's new_message notifications from the other participant.
    """
    participant_ids = participants_of(conversation_id)
    if user["id"] not in participant_ids and not is_admin(user):
        raise AuthorizationError("You are not part of this conversation")

    messages = await store.filter("ChatMessage", {"conversation_id": conversation_id}, sort="created_date")

    async with store.transaction():
        for i, m in enumerate(messages):
            if not m["is_read"] and m["receiver_id"] == user["id"]:
                messages[i] = await store.update("ChatMessage", m["id"], {"is_read": True})

        other_ids = [pid for pid in participant_ids if pid != user["id"]]
        for other_id in other_ids:
            await mark_matching_read(store, {
                "user_id": user["id"],
                "type": NotificationType.NEW_MESSAGE.value,
                "related_id": other_id,
            })

    other_user = await store.get("User", other_ids[0]) if len(other_ids) == 1 else None
    return {
        "conversation_id": conversation_id,
        "messages": messages,
        "other_user": public_user(other_user),
    }


async def send_message(store, user: dict, data: MessageCreate) -> dict:
    """Append a message to the sender/receiver conversation and notify the receiver."""
    if data.receiver_id == user["id"]:
        raise ValidationError("You cannot send a message to yourself")

    receiver = await store.get("User", data.receiver_id)
    if receiver is None:
        raise NotFoundError("Receiver not found")

    cid = conversation_id_for(user["id"], receiver["id"])
    async with store.transaction():
        message = await store.create("ChatMessage", {
            "conversation_id": cid,
            "sender_id": user["id"],
            "receiver_id": receiver["id"],
            "message": data.message,
            "attachment_url": data.attachment_url,
            "attachment_type": data.attachment_type.value if data.attachment_type else None,
            "is_read": False,
        })
        await notify(
            store,
            receiver["id"],
            NotificationType.NEW_MESSAGE,
            title=f"Nova mensagem de {user.get('full_name') or user['email']}",
            message=preview(data.message),
            related_id=user["id"],
            action_url=f"/chat?conversation={cid}",
        )

    logger.info("Message %s sent in %s", message["id"], cid)
    return message
