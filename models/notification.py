# models/notification.py
from enum import Enum


class NotificationType(str, Enum):
    NEW_APPLICATION = "new_application"
    NEW_PROPOSAL = "new_proposal"
    JOB_ACCEPTED = "job_accepted"
    JOB_REJECTED = "job_rejected"
    JOB_STARTED = "job_started"
    JOB_READY_FOR_REVIEW = "job_ready_for_review"
    JOB_COMPLETED = "job_completed"
    NEW_MESSAGE = "new_message"


class NotificationCategory(str, Enum):
    ALL = "all"
    PROPOSALS = "proposals"
    MESSAGES = "messages"


# Cleared when the caller views their applications
APPLICATION_TYPES = [
    NotificationType.NEW_APPLICATION.value,
    NotificationType.NEW_PROPOSAL.value,
    NotificationType.JOB_ACCEPTED.value,
    NotificationType.JOB_REJECTED.value,
    NotificationType.JOB_READY_FOR_REVIEW.value,
    NotificationType.JOB_COMPLETED.value,
]

# Counted on the applications badge (job_completed links to the profile instead)
APPLICATION_BADGE_TYPES = [t for t in APPLICATION_TYPES if t != NotificationType.JOB_COMPLETED.value]

# "proposals" tab of the notification list
PROPOSAL_TYPES = [
    NotificationType.NEW_APPLICATION.value,
    NotificationType.NEW_PROPOSAL.value,
]
