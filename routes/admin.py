from typing import Optional

from fastapi import APIRouter, Depends, status

from models.user import InviteRequest, PenaltyRequest
from routes.auth import get_current_admin_user
from services import admin
from store import get_store

router = APIRouter(tags=["admin"])


@router.post("/wipe")
async def wipe_all_data(user: dict = Depends(get_current_admin_user), store=Depends(get_store)):
    """Delete all jobs, applications, messages, notifications and ratings."""
    return await admin.wipe_all_data(store, user)


@router.post("/penalties", status_code=status.HTTP_201_CREATED)
async def apply_penalty(body: PenaltyRequest, user: dict = Depends(get_current_admin_user), store=Depends(get_store)):
    return await admin.apply_penalty(store, user, body)


@router.post("/invite", status_code=status.HTTP_201_CREATED)
async def invite_user(body: InviteRequest, user: dict = Depends(get_current_admin_user), store=Depends(get_store)):
    """Create a test worker or employer. The response carries its one-time password."""
    return await admin.invite_user(store, user, body)


@router.post("/test-scenario", status_code=status.HTTP_201_CREATED)
async def seed_test_scenario(user: dict = Depends(get_current_admin_user), store=Depends(get_store)):
    """Three jobs with pending, accepted and proposal applications. Needs an employer and a worker."""
    return await admin.generate_test_scenario(store, user)


@router.get("/stats")
async def stats(user: dict = Depends(get_current_admin_user), store=Depends(get_store)):
    return await admin.platform_stats(store, user)


@router.get("/users")
async def users(search: Optional[str] = None, user: dict = Depends(get_current_admin_user), store=Depends(get_store)):
    return await admin.list_users(store, user, search)


@router.get("/low-ratings")
async def low_ratings(user: dict = Depends(get_current_admin_user), store=Depends(get_store)):
    return await admin.low_ratings(store, user)


@router.get("/blacklist")
async def blacklist(user: dict = Depends(get_current_admin_user), store=Depends(get_store)):
    return await admin.list_blacklist(store, user)
