# services/admin.py
"""Admin console: data wipe, penalties, platform statistics and test accounts/data."""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from errors import AuthenticationError, AuthorizationError, NotFoundError, ValidationError
from models.application import ApplicationStatus, ApplicationType
from models.job import JobCreate, JobStatus
from models.user import (
    SEVERITY_STATUS,
    InviteRequest,
    PenaltyRequest,
    UserStatus,
    UserType,
    new_user,
    public_user,
)
from security import hash_password, temporary_password
from services.lifecycle import create_job
from services.notifications import is_admin

logger = logging.getLogger(__name__)

# Deletion order: dependents before the jobs they point at
WIPE_ORDER = ["Rating", "Application", "ChatMessage", "Notification", "Job"]

LOW_RATING = 2


def require_admin(user: Optional[dict]) -> dict:
    if user is None:
        raise AuthenticationError("Not authenticated")
    if not is_admin(user):
        raise AuthorizationError("Admins only")
    return user


def account_blocked(user: dict, now: Optional[datetime] = None) -> bool:
    """Suspended or banned, and the penalty has not run out yet."""
    if user.get("status") not in (UserStatus.SUSPENDED.value, UserStatus.BANNED.value):
        return False
    until = user.get("banned_until")
    if until is None:
        return True
    if until.tzinfo is None:
        until = until.replace(tzinfo=timezone.utc)
    return (now or datetime.now(timezone.utc)) < until


async def wipe_all_data(store, user: Optional[dict]) -> dict:
    """
    Delete every transactional record and reset user reputation.

    Users themselves survive with rating, xp, portfolio_images and documents
    cleared. Returns how many records of each type were deleted.
    """
    require_admin(user)
    logger.warning("Data wipe started by admin %s", user["email"])

    deleted = {}
    async with store.transaction():
        for entity in WIPE_ORDER:
            records = await store.list(entity)
            for record in records:
                await store.delete(entity, record["id"])
            deleted[entity] = len(records)
            logger.info("%s: %d records deleted", entity, len(records))

        users = await store.list("User")
        for u in users:
            await store.update("User", u["id"], {
                "rating": 0,
                "xp": 0,
                "portfolio_images": [],
                "documents": [],
            })

    logger.info("Reputation reset for %d users", len(users))
    return {"success": True, "deleted": deleted, "users_reset": len(users)}


async def apply_penalty(store, user: dict, data: PenaltyRequest) -> dict:
    """Record a Blacklist entry and move the target account to the matching status."""
    require_admin(user)

    target = await store.get("User", data.user_id)
    if target is None:
        raise NotFoundError("User not found")

    status = SEVERITY_STATUS[data.severity]
    async with store.transaction():
        entry = await store.create("Blacklist", {
            "user_id": target["id"],
            "admin_id": user["id"],
            "reason": data.reason,
            "severity": data.severity.value,
            "expires_at": data.expires_at,
        })
        target = await store.update("User", target["id"], {
            "status": status.value,
            "suspension_reason": data.reason,
            "banned_until": data.expires_at if status != UserStatus.ACTIVE else None,
        })

    logger.info("Admin %s applied %s to %s", user["id"], data.severity.value, target["id"])
    return {"entry": entry, "user": public_user(target)}


# =========================================================
# Test accounts and data
# =========================================================

async def invite_user(store, user: dict, data: InviteRequest) -> dict:
    """
    Create a worker or employer account that skips onboarding.

    There is no mail channel, so the one-time password comes back in the
    response for the admin to hand over. A taken email is a 409.
    """
    require_admin(user)

    password = temporary_password()
    full_name = (data.full_name or "").strip() or data.email.split("@")[0]
    invited = await store.create("User", new_user(data.email, hash_password(password), full_name, data.user_type))

    logger.info("Admin %s invited %s as %s", user["id"], invited["id"], data.user_type.value)
    return {"user": public_user(invited), "temporary_password": password}


SCENARIO_JOBS = [
    {
        "title": "Renovação de Cozinha",
        "category": "Pintura",
        "description": "Pintura completa de cozinha moderna, incluindo preparação de paredes e teto. Área de aproximadamente 15m².",
        "location": "Lisboa, Centro", "latitude": 38.7223, "longitude": -9.1393,
        "price_type": "fixed", "price": 800, "urgency": "medium",
    },
    {
        "title": "Reparação Elétrica - Urgente",
        "category": "Eletricidade",
        "description": "Quadro elétrico com problema. Precisa de verificação urgente e possível troca de disjuntores.",
        "location": "Porto, Boavista", "latitude": 41.1579, "longitude": -8.6291,
        "price_type": "hourly", "price": 35, "urgency": "high",
    },
    {
        "title": "Instalação de Piso Laminado",
        "category": "Pavimentos",
        "description": "Instalação de piso laminado em sala e dois quartos. Total de 45m². Material já adquirido.",
        "location": "Braga, Centro", "latitude": 41.5518, "longitude": -8.4229,
        "price_type": "fixed", "price": 1200, "urgency": "low",
    },
]


async def _seed_application(store, job: dict, worker: dict, message: str,
                            status: ApplicationStatus = ApplicationStatus.PENDING,
                            proposed_price: Optional[Decimal] = None) -> dict:
    return await store.create("Application", {
        "job_id": job["id"],
        "worker_id": worker["id"],
        "message": message,
        "application_type": (ApplicationType.PROPOSAL if proposed_price else ApplicationType.APPLICATION).value,
        "proposed_price": proposed_price,
        "status": status.value,
    })


async def generate_test_scenario(store, user: dict) -> dict:
    """
    Seed three jobs for the oldest employer, with applications from the two
    oldest workers:

    - job 1: worker 1 accepted (job in progress), worker 2 proposes 750
    - job 2: worker 1 applies
    - job 3: worker 2 proposes 1000

    With a single worker, that worker plays both parts and the second
    application to job 1 is skipped (one application per job and worker).
    """
    require_admin(user)

    employers = await store.filter("User", {"user_type": UserType.EMPLOYER.value}, sort="created_date")
    workers = await store.filter("User", {"user_type": UserType.WORKER.value}, sort="created_date")
    if not employers or not workers:
        raise ValidationError("At least one employer and one worker are needed, invite them first")

    employer = employers[0]
    worker1 = workers[0]
    worker2 = workers[1] if len(workers) > 1 else worker1

    async with store.transaction():
        jobs = [await create_job(store, employer, JobCreate(**data)) for data in SCENARIO_JOBS]

        applications = [await _seed_application(
            store, jobs[0], worker1,
            "Tenho 8 anos de experiência em pintura. Posso começar esta semana!",
            status=ApplicationStatus.ACCEPTED,
        )]
        if worker2["id"] != worker1["id"]:
            applications.append(await _seed_application(
                store, jobs[0], worker2,
                "Especialista em pintura de cozinhas. Portfólio disponível.",
                proposed_price=Decimal("750"),
            ))
        jobs[0] = await store.update("Job", jobs[0]["id"], {
            "worker_id": worker1["id"],
            "status": JobStatus.IN_PROGRESS.value,
        })

        applications.append(await _seed_application(
            store, jobs[1], worker1,
            "Eletricista certificado. Disponível para atendimento urgente hoje mesmo.",
        ))
        applications.append(await _seed_application(
            store, jobs[2], worker2,
            "Experiência de 10 anos em instalação de pisos. Posso oferecer um preço melhor mantendo a qualidade.",
            proposed_price=Decimal("1000"),
        ))

    logger.info("Admin %s seeded %d jobs and %d applications", user["id"], len(jobs), len(applications))
    return {"jobs": jobs, "applications": applications}


async def list_users(store, user: dict, search: Optional[str] = None) -> list[dict]:
    """Non-admin users, filtered by name or email."""
    require_admin(user)
    users = [u for u in await store.list("User", sort="-created_date") if u.get("user_type") != UserType.ADMIN.value]
    if search:
        needle = search.strip().lower()
        users = [
            u for u in users
            if needle in (u.get("full_name") or "").lower() or needle in (u.get("email") or "").lower()
        ]
    return [public_user(u) for u in users]


async def low_ratings(store, user: dict) -> list[dict]:
    """Ratings of 2 stars or less with the people and job involved."""
    require_admin(user)
    ratings = [r for r in await store.list("Rating", sort="-created_date") if r["rating"] <= LOW_RATING]
    result = []
    for r in ratings:
        result.append({
            **r,
            "rated": public_user(await store.get("User", r["rated_id"])),
            "rater": public_user(await store.get("User", r["rater_id"])),
            "job": await store.get("Job", r["job_id"]),
        })
    return result


async def platform_stats(store, user: dict) -> dict:
    require_admin(user)
    users = await store.list("User")
    jobs = await store.list("Job")
    ratings = await store.list("Rating")
    blacklist = await store.list("Blacklist")

    return {
        "total_users": sum(1 for u in users if u.get("user_type") != UserType.ADMIN.value),
        "active_jobs": sum(1 for j in jobs if j["status"] == JobStatus.OPEN.value),
        "completed_jobs": sum(1 for j in jobs if j["status"] == JobStatus.COMPLETED.value),
        "low_ratings": sum(1 for r in ratings if r["rating"] <= LOW_RATING),
        "blacklist": len(blacklist),
    }


async def list_blacklist(store, user: dict) -> list[dict]:
    require_admin(user)
    return await store.list("Blacklist", sort="-created_date")
