from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, status

from models.job import JobCreate
from models.rating import RatingCreate
from models.user import UserType
from routes.auth import require_user
from services import lifecycle, schedule
from store import get_store

router = APIRouter(tags=["jobs"])


# =========================================================
# Part 1: posting and browsing
# =========================================================

@router.post("", status_code=status.HTTP_201_CREATED)
async def create_job(body: JobCreate, user: dict = Depends(require_user), store=Depends(get_store)):
    return await lifecycle.create_job(store, user, body)


@router.get("")
async def list_jobs(
    category: Optional[str] = None,
    search: Optional[str] = None,
    user: dict = Depends(require_user),
    store=Depends(get_store),
):
    """Open jobs for the dashboard, optionally by category and free text."""
    return await lifecycle.list_jobs(store, category=category, search=search)


@router.post("/samples", status_code=status.HTTP_201_CREATED)
async def create_sample_jobs(user: dict = Depends(require_user), store=Depends(get_store)):
    return await lifecycle.create_sample_jobs(store, user)


@router.get("/mine")
async def list_my_jobs(user: dict = Depends(require_user), store=Depends(get_store)):
    return await lifecycle.list_my_jobs(store, user)


@router.get("/calendar")
async def calendar(week: Optional[date] = None, user: dict = Depends(require_user), store=Depends(get_store)):
    # week: any day inside the wanted week, defaults to today
    return await schedule.jobs_for_week(store, user, week or date.today())


@router.get("/{job_id}")
async def job_detail(job_id: str, user: dict = Depends(require_user), store=Depends(get_store)):
    """Opening a job counts as a view."""
    await lifecycle.record_view(store, job_id)
    return await lifecycle.get_job(store, job_id)


@router.delete("/{job_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_job(job_id: str, user: dict = Depends(require_user), store=Depends(get_store)):
    await lifecycle.delete_job(store, user, job_id)


# =========================================================
# Part 2: on site (QR scan) and completion
# =========================================================

@router.get("/{job_id}/scan")
async def scan(job_id: str, application_id: str, user: dict = Depends(require_user), store=Depends(get_store)):
    """The worker's QR code encodes job_id and application_id."""
    return await lifecycle.scan_confirmation(store, user, job_id, application_id)


@router.post("/{job_id}/start")
async def start_job(job_id: str, user: dict = Depends(require_user), store=Depends(get_store)):
    return await lifecycle.start(store, user, job_id)


@router.post("/{job_id}/complete")
async def complete_job(job_id: str, body: RatingCreate, user: dict = Depends(require_user), store=Depends(get_store)):
    """
    Both sides finish a job here, each rating the other:
    - the employer first (in_progress -> completed_by_employer)
    - then the worker (completed_by_employer -> completed)
    """
    if user.get("user_type") == UserType.WORKER.value:
        return await lifecycle.complete_by_worker(store, user, job_id, body)
    return await lifecycle.complete_by_employer(store, user, job_id, body)
