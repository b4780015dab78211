from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from models.notification import NotificationCategory
from routes.auth import require_user
from services import notifications
from store import get_store

router = APIRouter(tags=["notifications"])


@router.get("")
async def list_notifications(
    category: NotificationCategory = NotificationCategory.ALL,
    grouped: bool = False,
    user: dict = Depends(require_user),
    store=Depends(get_store),
):
    items = await notifications.list_notifications(store, user, category)
    if grouped:
        return notifications.group_by_day(items, datetime.now(timezone.utc).date())
    return items


@router.get("/badges")
async def badges(user: dict = Depends(require_user), store=Depends(get_store)):
    """Polled by the client every poll_interval_seconds."""
    return await notifications.unread_badges(store, user)


@router.post("/read-all")
async def mark_all_read(user: dict = Depends(require_user), store=Depends(get_store)):
    return {"updated": await notifications.mark_all_read(store, user)}


@router.post("/{notification_id}/read")
async def mark_read(notification_id: str, user: dict = Depends(require_user), store=Depends(get_store)):
    return await notifications.mark_read(store, user, notification_id)
