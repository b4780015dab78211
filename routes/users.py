from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile

from models.user import ProfileUpdate, public_user
from routes.auth import require_user
from services import profiles
from store import get_store
from utils import FOLDER_AVATARS, FOLDER_DOCUMENTS, FOLDER_PORTFOLIO, save_upload_file

router = APIRouter(tags=["users"])


# =========================================================
# 1. Worker directory
# =========================================================
@router.get("/workers")
async def search_workers(
    skill: Optional[str] = None,
    search: Optional[str] = None,
    user: dict = Depends(require_user),
    store=Depends(get_store),
):
    return await profiles.search_workers(store, skill=skill, search=search)


# =========================================================
# 2. Own profile
# =========================================================
@router.patch("/me")
async def update_profile(body: ProfileUpdate, user: dict = Depends(require_user), store=Depends(get_store)):
    """full_name, phone, bio, city, company and skills. user_type is set at onboarding only."""
    return public_user(await profiles.update_profile(store, user, body))


@router.post("/me/avatar")
async def upload_avatar(
    avatar: UploadFile = File(...),
    user: dict = Depends(require_user),
    store=Depends(get_store),
):
    url = await save_upload_file(avatar, FOLDER_AVATARS, user["id"])
    return public_user(await profiles.set_avatar(store, user, url))


@router.post("/me/portfolio")
async def add_portfolio_image(
    image: UploadFile = File(...),
    user: dict = Depends(require_user),
    store=Depends(get_store),
):
    url = await save_upload_file(image, FOLDER_PORTFOLIO, user["id"])
    return public_user(await profiles.add_portfolio_image(store, user, url))


@router.delete("/me/portfolio/{index}")
async def remove_portfolio_image(index: int, user: dict = Depends(require_user), store=Depends(get_store)):
    return public_user(await profiles.remove_portfolio_image(store, user, index))


@router.post("/me/documents")
async def add_document(
    name: str = Form(...),
    file: UploadFile = File(...),
    user: dict = Depends(require_user),
    store=Depends(get_store),
):
    url = await save_upload_file(file, FOLDER_DOCUMENTS, user["id"])
    return public_user(await profiles.add_document(store, user, name, url, file.content_type))


@router.delete("/me/documents/{index}")
async def remove_document(index: int, user: dict = Depends(require_user), store=Depends(get_store)):
    return public_user(await profiles.remove_document(store, user, index))


# =========================================================
# 3. Public profile
# =========================================================
@router.get("/{user_id}")
async def view_user_profile(user_id: str, user: dict = Depends(require_user), store=Depends(get_store)):
    """Anyone logged in can look at a profile and the ratings it received."""
    return await profiles.public_profile(store, user_id)
