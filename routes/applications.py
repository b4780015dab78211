from fastapi import APIRouter, Depends, status

from models.application import ApplicationCreate
from routes.auth import get_current_employer_user, get_current_worker_user, require_user
from services import lifecycle
from store import get_store

router = APIRouter(tags=["applications"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def apply(body: ApplicationCreate, user: dict = Depends(get_current_worker_user), store=Depends(get_store)):
    """Apply at the posted price, or send a proposal with proposed_price."""
    return await lifecycle.apply(store, user, body)


@router.get("")
async def list_applications(user: dict = Depends(require_user), store=Depends(get_store)):
    return await lifecycle.list_applications(store, user)


@router.post("/{application_id}/accept")
async def accept(application_id: str, user: dict = Depends(get_current_employer_user), store=Depends(get_store)):
    return await lifecycle.accept(store, user, application_id)


@router.post("/{application_id}/reject")
async def reject(application_id: str, user: dict = Depends(get_current_employer_user), store=Depends(get_store)):
    return await lifecycle.reject(store, user, application_id)
