# services/schedule.py
import logging
from datetime import date, datetime, timedelta

from models.job import JobStatus
from models.user import UserType

logger = logging.getLogger(__name__)


def week_days(reference: date) -> list[date]:
    """The seven days (Monday first) of the week containing `reference`."""
    monday = reference - timedelta(days=reference.weekday())
    return [monday + timedelta(days=i) for i in range(7)]


def _as_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str):
        return date.fromisoformat(value[:10])
    return value


async def jobs_for_week(store, user: dict, reference: date) -> dict:
    """
    Calendar view for one week.

    Jobs are scoped by role (admin: all, employer: owned, worker: assigned)
    and only those with a planned start_date are shown, bucketed on that day.
    The status counts cover every dated job in scope, not just this week.
    """
    user_type = user.get("user_type")
    if user_type == UserType.ADMIN.value:
        jobs = await store.list("Job")
    elif user_type == UserType.EMPLOYER.value:
        jobs = await store.filter("Job", {"employer_id": user["id"]})
    elif user_type == UserType.WORKER.value:
        jobs = await store.filter("Job", {"worker_id": user["id"]})
    else:
        jobs = []

    dated = [j for j in jobs if j.get("start_date")]
    days = week_days(reference)

    return {
        "week_start": days[0],
        "days": [
            {"date": day, "jobs": [j for j in dated if _as_date(j["start_date"]) == day]}
            for day in days
        ],
        "counts": {
            status.value: sum(1 for j in dated if j["status"] == status.value)
            for status in (JobStatus.OPEN, JobStatus.IN_PROGRESS, JobStatus.COMPLETED)
        },
    }
