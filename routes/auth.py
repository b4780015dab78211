import logging

from fastapi import APIRouter, Depends, Request, status

from errors import AuthenticationError, AuthorizationError
from models.user import (
    LoginRequest,
    OnboardingRequest,
    RegisterRequest,
    UserType,
    new_user,
    public_user,
)
from security import hash_password, verify_password
from services.admin import account_blocked
from services.profiles import complete_onboarding
from store import get_store

logger = logging.getLogger(__name__)

# --- 1. Router ---
router = APIRouter(tags=["auth"])


# --- 2. Core dependency: who is calling ---
async def get_current_user(request: Request, store=Depends(get_store)) -> dict | None:
    """
    Resolve the session cookie to a user record.

    1. The signed cookie carries "user_id".
    2. The user is loaded from the store. A stale id (deleted account) clears
       the session and counts as anonymous.
    3. Suspended or banned accounts are refused until banned_until passes.

    Returns None when nobody is logged in.
    """
    user_id = request.session.get("user_id")
    if not user_id:
        return None

    user = await store.get("User", str(user_id))
    if user is None:
        request.session.clear()
        return None

    if account_blocked(user):
        logger.info("Refused request from %s account %s", user["status"], user["id"])
        raise AuthorizationError(
            f"Account {user['status']}: {user.get('suspension_reason') or 'contact support'}",
            code="account_suspended",
        )

    return user


# --- 3. Role gates ---
async def require_user(user: dict | None = Depends(get_current_user)) -> dict:
    if user is None:
        raise AuthenticationError("Not authenticated")
    return user


async def get_current_employer_user(user: dict = Depends(require_user)) -> dict:
    if user.get("user_type") != UserType.EMPLOYER.value:
        raise AuthorizationError("Access denied: user is not an employer")
    return user


async def get_current_worker_user(user: dict = Depends(require_user)) -> dict:
    if user.get("user_type") != UserType.WORKER.value:
        raise AuthorizationError("Access denied: user is not a worker")
    return user


async def get_current_admin_user(user: dict | None = Depends(get_current_user)) -> dict:
    # Separate 401 (anonymous) from 403 (logged in, not admin)
    if user is None:
        raise AuthenticationError("Not authenticated")
    if user.get("user_type") != UserType.ADMIN.value:
        raise AuthorizationError("Access denied: admins only")
    return user


# --- 4. Register ---
@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(request: Request, body: RegisterRequest, store=Depends(get_store)):
    """
    Create an account and log it in.
    The account starts as user_type "unset" until onboarding picks a role.
    A taken email fails with 409 from the store's unique key.
    """
    user = await store.create("User", new_user(body.email, hash_password(body.password), body.full_name.strip()))

    request.session["user_id"] = user["id"]
    logger.info("Registered user %s", user["id"])
    return public_user(user)


# --- 5. Login / logout ---
@router.post("/login")
async def login(request: Request, body: LoginRequest, store=Depends(get_store)):
    users = await store.filter("User", {"email": body.email.lower()})
    user = users[0] if users else None

    if not user or not verify_password(body.password, user["hashed_password"]):
        logger.info("Failed login for %s", body.email)
        raise AuthenticationError("Invalid email or password")

    if account_blocked(user):
        raise AuthorizationError(f"Account {user['status']}", code="account_suspended")

    request.session["user_id"] = user["id"]
    return public_user(user)


@router.post("/logout")
async def logout(request: Request):
    request.session.clear()
    return {"success": True}


# --- 6. Current user and onboarding ---
@router.get("/me")
async def me(user: dict = Depends(require_user)):
    return public_user(user)


@router.post("/onboarding")
async def onboarding(body: OnboardingRequest, user: dict = Depends(require_user), store=Depends(get_store)):
    return public_user(await complete_onboarding(store, user, body))
