# models/__init__.py
from .application import ApplicationCreate, ApplicationStatus, ApplicationType
from .chat import AttachmentType, MessageCreate
from .job import JobCreate, JobStatus, PriceType, Urgency
from .notification import NotificationCategory, NotificationType
from .rating import RatingCreate
from .user import (
    LoginRequest,
    InviteRequest,
    OnboardingRequest,
    PenaltyRequest,
    PenaltySeverity,
    ProfileUpdate,
    RegisterRequest,
    UserStatus,
    UserType,
)

__all__ = [
    "ApplicationCreate", "ApplicationStatus", "ApplicationType",
    "AttachmentType", "MessageCreate",
    "JobCreate", "JobStatus", "PriceType", "Urgency",
    "NotificationCategory", "NotificationType",
    "RatingCreate",
    "InviteRequest", "LoginRequest", "OnboardingRequest", "PenaltyRequest", "PenaltySeverity",
    "ProfileUpdate", "RegisterRequest", "UserStatus", "UserType",
]
