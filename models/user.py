# models/user.py
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator


class UserType(str, Enum):
    UNSET = "unset"        # registered, onboarding not done yet
    WORKER = "worker"
    EMPLOYER = "employer"
    ADMIN = "admin"


class UserStatus(str, Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"
    BANNED = "banned"


class PenaltySeverity(str, Enum):
    WARNING = "warning"
    SUSPENSION = "suspension"
    BAN = "ban"


# Penalty severity -> resulting account status
SEVERITY_STATUS = {
    PenaltySeverity.WARNING: UserStatus.ACTIVE,
    PenaltySeverity.SUSPENSION: UserStatus.SUSPENDED,
    PenaltySeverity.BAN: UserStatus.BANNED,
}

# Never sent back to clients
PRIVATE_FIELDS = {"hashed_password"}


def public_user(user: dict | None) -> dict | None:
    """Strip private columns before a user record leaves the API."""
    if user is None:
        return None
    return {k: v for k, v in user.items() if k not in PRIVATE_FIELDS}


def new_user(email: str, hashed_password: str, full_name: Optional[str], user_type: UserType = UserType.UNSET) -> dict:
    """Fields of a freshly created account: no reputation, no uploads, active."""
    return {
        "email": email.lower(),
        "hashed_password": hashed_password,
        "full_name": full_name,
        "user_type": user_type.value,
        "rating": 0,
        "xp": 0,
        "skills": [],
        "portfolio_images": [],
        "documents": [],
        "status": UserStatus.ACTIVE.value,
    }


def dedupe(values: list[str]) -> list[str]:
    """Trim, drop blanks and duplicates, keep first-seen order."""
    seen = []
    for v in values:
        v = v.strip()
        if v and v not in seen:
            seen.append(v)
    return seen


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8)
    full_name: str = Field(min_length=1, max_length=255)

    @field_validator("password")
    @classmethod
    def bcrypt_limit(cls, v: str) -> str:
        # bcrypt only looks at the first 72 bytes
        if len(v.encode("utf-8")) > 72:
            raise ValueError("password must be at most 72 bytes")
        return v


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class OnboardingRequest(BaseModel):
    user_type: UserType

    @field_validator("user_type")
    @classmethod
    def only_public_roles(cls, v: UserType) -> UserType:
        if v not in (UserType.WORKER, UserType.EMPLOYER):
            raise ValueError("user_type must be worker or employer")
        return v


class ProfileUpdate(BaseModel):
    full_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    phone: Optional[str] = None
    bio: Optional[str] = None
    city: Optional[str] = None
    company: Optional[str] = None
    skills: Optional[list[str]] = None

    # Leaving a field out keeps it; an explicit null would break NOT NULL columns
    @field_validator("full_name", "skills")
    @classmethod
    def not_null(cls, v, info):
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v

    @field_validator("skills")
    @classmethod
    def unique_skills(cls, v):
        return dedupe(v)


class PenaltyRequest(BaseModel):
    user_id: str
    reason: str = Field(min_length=1)
    severity: PenaltySeverity
    expires_at: Optional[datetime] = None


class InviteRequest(BaseModel):
    """Admin creates a ready-to-use worker or employer account."""

    email: EmailStr
    user_type: UserType = UserType.WORKER
    full_name: Optional[str] = Field(default=None, max_length=255)

    @field_validator("user_type")
    @classmethod
    def only_public_roles(cls, v: UserType) -> UserType:
        if v not in (UserType.WORKER, UserType.EMPLOYER):
            raise ValueError("user_type must be worker or employer")
        return v
