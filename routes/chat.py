from fastapi import APIRouter, Depends, status

from models.chat import MessageCreate
from routes.auth import require_user
from services import conversations
from store import get_store

router = APIRouter(tags=["chat"])


@router.get("/conversations")
async def list_conversations(user: dict = Depends(require_user), store=Depends(get_store)):
    return await conversations.list_conversations(store, user)


@router.get("/conversations/{conversation_id}")
async def open_conversation(conversation_id: str, user: dict = Depends(require_user), store=Depends(get_store)):
    """Messages oldest first. Opening marks the caller's unread messages read."""
    return await conversations.open_conversation(store, user, conversation_id)


@router.post("/messages", status_code=status.HTTP_201_CREATED)
async def send_message(body: MessageCreate, user: dict = Depends(require_user), store=Depends(get_store)):
    # Attachments are uploaded first through POST /files (folder=chat)
    return await conversations.send_message(store, user, body)
