# services/notifications.py
"""
In-app notifications.

There is no push channel: clients poll unread_badges() every
NOTIFICATION_POLL_SECONDS. A notification never expires and only its
is_read flag ever changes.
"""

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from config import NOTIFICATION_POLL_SECONDS
from errors import AuthorizationError, NotFoundError
from models.notification import (
    APPLICATION_BADGE_TYPES,
    PROPOSAL_TYPES,
    NotificationCategory,
    NotificationType,
)
from models.user import UserType

logger = logging.getLogger(__name__)


def is_admin(user: dict) -> bool:
    return user.get("user_type") == UserType.ADMIN.value


async def notify(
    store,
    user_id: str,
    type: NotificationType,
    title: str,
    message: str,
    related_id: Optional[str] = None,
    action_url: Optional[str] = None,
) -> dict:
    record = await store.create("Notification", {
        "user_id": user_id,
        "type": NotificationType(type).value,
        "title": title,
        "message": message,
        "related_id": related_id,
        "action_url": action_url,
        "is_read": False,
    })
    logger.debug("Notified %s: %s", user_id, record["type"])
    return record


async def list_notifications(store, user: dict, category: NotificationCategory = NotificationCategory.ALL) -> list[dict]:
    """Newest first. Admins see every notification, everyone else their own."""
    predicate = {} if is_admin(user) else {"user_id": user["id"]}

    category = NotificationCategory(category)
    if category == NotificationCategory.PROPOSALS:
        predicate["type"] = {"$in": PROPOSAL_TYPES}
    elif category == NotificationCategory.MESSAGES:
        predicate["type"] = NotificationType.NEW_MESSAGE.value

    return await store.filter("Notification", predicate, sort="-created_date")


async def mark_read(store, user: dict, notification_id: str) -> dict:
    notification = await store.get("Notification", notification_id)
    if notification is None:
        raise NotFoundError("Notification not found")
    if notification["user_id"] != user["id"] and not is_admin(user):
        raise AuthorizationError("Not your notification")
    if notification["is_read"]:
        return notification
    return await store.update("Notification", notification_id, {"is_read": True})


async def mark_matching_read(store, predicate: dict) -> int:
    """Flag every unread notification matching `predicate` as read. Returns how many changed."""
    unread = await store.filter("Notification", {**predicate, "is_read": False})
    for n in unread:
        await store.update("Notification", n["id"], {"is_read": True})
    return len(unread)


async def mark_all_read(store, user: dict) -> int:
    predicate = {} if is_admin(user) else {"user_id": user["id"]}
    async with store.transaction():
        count = await mark_matching_read(store, predicate)
    logger.info("User %s marked %d notifications read", user["id"], count)
    return count


async def unread_badges(store, user: dict) -> dict:
    """Unread counts for the navigation badges, plus the poll interval."""
    unread = await store.filter("Notification", {"user_id": user["id"], "is_read": False})
    return {
        "chat": sum(1 for n in unread if n["type"] == NotificationType.NEW_MESSAGE.value),
        "applications": sum(1 for n in unread if n["type"] in APPLICATION_BADGE_TYPES),
        "poll_interval_seconds": NOTIFICATION_POLL_SECONDS,
    }


def _day_of(value) -> date:
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).date()


def group_by_day(notifications: list[dict], today: date) -> dict[str, list[dict]]:
    """Split into today / yesterday / older buckets, keeping input order."""
    yesterday = today - timedelta(days=1)
    groups = {"today": [], "yesterday": [], "older": []}
    for n in notifications:
        day = _day_of(n["created_date"])
        if day >= today:
            groups["today"].append(n)
        elif day == yesterday:
            groups["yesterday"].append(n)
        else:
            groups["older"].append(n)
    return groups
