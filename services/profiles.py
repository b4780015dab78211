# services/profiles.py
import logging
from typing import Optional

from errors import ConflictError, NotFoundError, ValidationError
from models.user import OnboardingRequest, ProfileUpdate, UserStatus, UserType, public_user

logger = logging.getLogger(__name__)


def document_type(content_type: Optional[str]) -> str:
    return "pdf" if content_type and "pdf" in content_type.lower() else "document"


async def _fresh(store, user: dict) -> dict:
    current = await store.get("User", user["id"])
    if current is None:
        raise NotFoundError("User not found")
    return current


async def complete_onboarding(store, user: dict, data: OnboardingRequest) -> dict:
    """Pick worker or employer. Allowed exactly once."""
    current = await _fresh(store, user)
    if current.get("user_type") not in (None, UserType.UNSET.value):
        raise ConflictError("Profile type is already set")

    updated = await store.update("User", user["id"], {"user_type": data.user_type.value})
    logger.info("User %s onboarded as %s", user["id"], data.user_type.value)
    return updated


async def update_profile(store, user: dict, data: ProfileUpdate) -> dict:
    fields = data.model_dump(exclude_unset=True)
    if not fields:
        return await _fresh(store, user)
    return await store.update("User", user["id"], fields)


async def set_avatar(store, user: dict, url: str) -> dict:
    return await store.update("User", user["id"], {"avatar_url": url})


# --- Portfolio ---
async def add_portfolio_image(store, user: dict, url: str) -> dict:
    async with store.transaction():
        current = await _fresh(store, user)
        images = list(current.get("portfolio_images") or [])
        images.append(url)
        return await store.update("User", user["id"], {"portfolio_images": images})


async def remove_portfolio_image(store, user: dict, index: int) -> dict:
    async with store.transaction():
        current = await _fresh(store, user)
        images = list(current.get("portfolio_images") or [])
        if not 0 <= index < len(images):
            raise NotFoundError("Portfolio image not found")
        images.pop(index)
        return await store.update("User", user["id"], {"portfolio_images": images})


# --- Documents (certificates, licences, insurance) ---
async def add_document(store, user: dict, name: str, url: str, content_type: Optional[str] = None) -> dict:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Document name is required")

    async with store.transaction():
        current = await _fresh(store, user)
        documents = list(current.get("documents") or [])
        documents.append({"name": name, "url": url, "type": document_type(content_type)})
        return await store.update("User", user["id"], {"documents": documents})


async def remove_document(store, user: dict, index: int) -> dict:
    async with store.transaction():
        current = await _fresh(store, user)
        documents = list(current.get("documents") or [])
        if not 0 <= index < len(documents):
            raise NotFoundError("Document not found")
        documents.pop(index)
        return await store.update("User", user["id"], {"documents": documents})


# --- Discovery ---
async def search_workers(store, skill: Optional[str] = None, search: Optional[str] = None) -> list[dict]:
    """Active workers, best rated first, filtered by skill and free text over name, city and skills."""
    workers = await store.filter(
        "User",
        {"user_type": UserType.WORKER.value, "status": UserStatus.ACTIVE.value},
        sort="-rating",
    )

    if skill and skill != "all":
        workers = [w for w in workers if skill in (w.get("skills") or [])]

    if search:
        needle = search.strip().lower()
        workers = [
            w for w in workers
            if needle in (w.get("full_name") or "").lower()
            or needle in (w.get("city") or "").lower()
            or any(needle in s.lower() for s in (w.get("skills") or []))
        ]
    return [public_user(w) for w in workers]


async def public_profile(store, user_id: str) -> dict:
    """A user as others see them, with the ratings they received (newest first)."""
    user = await store.get("User", user_id)
    if user is None:
        raise NotFoundError("User not found")

    ratings = await store.filter("Rating", {"rated_id": user_id}, sort="-created_date")
    raters = {}
    for r in ratings:
        if r["rater_id"] not in raters:
            raters[r["rater_id"]] = public_user(await store.get("User", r["rater_id"]))

    return {
        "user": public_user(user),
        "ratings": [{**r, "rater": raters[r["rater_id"]]} for r in ratings],
        "rating_count": len(ratings),
    }
