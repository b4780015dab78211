# services/lifecycle.py
"""
Job lifecycle engine.

    open -> in_progress -> completed_by_employer -> completed

A job only ever moves forward, and `completed` accepts nothing. Every
operation takes the acting user explicitly and runs its writes inside one
store transaction, so a failure leaves no partial state behind.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from errors import (
    AuthorizationError,
    ConflictError,
    DuplicateApplicationError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from models.application import ApplicationCreate, ApplicationStatus, ApplicationType
from models.job import JobCreate, JobStatus
from models.notification import APPLICATION_TYPES, NotificationType
from models.rating import RatingCreate
from models.user import UserType, public_user
from services.conversations import conversation_id_for
from services.notifications import is_admin, mark_matching_read, notify
from services.reputation import settle_rating

logger = logging.getLogger(__name__)

STARTABLE = (JobStatus.OPEN.value, JobStatus.IN_PROGRESS.value)


# =========================================================
# Helpers
# =========================================================

def _require_role(user: dict, *roles: UserType):
    if user.get("user_type") not in [r.value for r in roles]:
        allowed = " or ".join(r.value for r in roles)
        raise AuthorizationError(f"Only {allowed} users can do this")


def _require_owner(user: dict, job: dict):
    if job["employer_id"] != user["id"]:
        raise AuthorizationError("You do not own this job")


async def _load(store, entity: str, record_id: str) -> dict:
    record = await store.get(entity, record_id)
    if record is None:
        raise NotFoundError(f"{entity} not found")
    return record


def _now(now: Optional[datetime]) -> datetime:
    return now or datetime.now(timezone.utc)


# =========================================================
# Jobs
# =========================================================

async def create_job(store, user: dict, data: JobCreate) -> dict:
    _require_role(user, UserType.EMPLOYER, UserType.ADMIN)

    job = await store.create("Job", {
        "employer_id": user["id"],
        "worker_id": None,
        "title": data.title,
        "category": data.category,
        "description": data.description,
        "location": data.location,
        "price": data.price,
        "price_type": data.price_type.value,
        "status": JobStatus.OPEN.value,
        "urgency": data.urgency.value,
        "start_date": data.start_date,
        "end_date": data.end_date,
        "latitude": data.latitude,
        "longitude": data.longitude,
        "actual_start_date": None,
        "actual_end_date": None,
        "views": 0,
    })
    logger.info("Job %s created by %s", job["id"], user["id"])
    return job


# Demo listings around Lisbon, posted by the "Exemplos" button on the dashboard
SAMPLE_JOBS = [
    {
        "title": "Pintar fachada de prédio - Avenidas Novas",
        "category": "Pintura",
        "description": "Pintura completa da fachada de um prédio de 4 andares. Necessário andaimes. Cor a manter.",
        "location": "Lisboa - Avenidas Novas", "latitude": 38.736, "longitude": -9.153,
        "price_type": "fixed", "price": 5500, "urgency": "low",
    },
    {
        "title": "Instalar quadro elétrico novo - Baixa",
        "category": "Eletricidade",
        "description": "Substituição de quadro elétrico antigo por um novo, com disjuntores modernos, em apartamento T2.",
        "location": "Lisboa - Baixa", "latitude": 38.71, "longitude": -9.138,
        "price_type": "fixed", "price": 750, "urgency": "high",
    },
    {
        "title": "Remodelação completa de WC - Estrela",
        "category": "Canalização",
        "description": "Remodelação total de casa de banho com 5m². Inclui nova canalização, colocação de sanita, base de duche, e lavatório.",
        "location": "Lisboa - Estrela", "latitude": 38.712, "longitude": -9.16,
        "price_type": "fixed", "price": 2800, "urgency": "medium",
    },
    {
        "title": "Montar cozinha de IKEA",
        "category": "Carpintaria",
        "description": "Montagem completa de móveis de cozinha da IKEA. Todos os módulos já estão no local.",
        "location": "Lisboa - Campo de Ourique", "latitude": 38.7191, "longitude": -9.1674,
        "price_type": "fixed", "price": 400, "urgency": "medium",
    },
]


async def create_sample_jobs(store, user: dict) -> list[dict]:
    """Post the SAMPLE_JOBS listings as `user` (employer or admin), all or none."""
    _require_role(user, UserType.EMPLOYER, UserType.ADMIN)

    async with store.transaction():
        jobs = [await create_job(store, user, JobCreate(**sample)) for sample in SAMPLE_JOBS]

    logger.info("User %s posted %d sample jobs", user["id"], len(jobs))
    return jobs


async def get_job(store, job_id: str) -> dict:
    """Job with its employer and assigned worker attached."""
    job = await _load(store, "Job", job_id)
    employer = await store.get("User", job["employer_id"])
    worker = await store.get("User", job["worker_id"]) if job.get("worker_id") else None
    return {**job, "employer": public_user(employer), "worker": public_user(worker)}


async def record_view(store, job_id: str) -> dict:
    async with store.transaction():
        job = await _load(store, "Job", job_id)
        return await store.update("Job", job_id, {"views": (job.get("views") or 0) + 1})


async def delete_job(store, user: dict, job_id: str) -> None:
    job = await _load(store, "Job", job_id)
    if job["employer_id"] != user["id"] and not is_admin(user):
        raise AuthorizationError("You do not own this job")

    async with store.transaction():
        for application in await store.filter("Application", {"job_id": job_id}):
            await store.delete("Application", application["id"])
        await store.delete("Job", job_id)
    logger.info("Job %s deleted by %s", job_id, user["id"])


async def list_jobs(store, category: Optional[str] = None, search: Optional[str] = None) -> list[dict]:
    """Open jobs, newest first, optionally narrowed by category and free text."""
    predicate = {"status": JobStatus.OPEN.value}
    if category and category != "all":
        predicate["category"] = category

    jobs = await store.filter("Job", predicate, sort="-created_date")

    if search:
        needle = search.strip().lower()
        jobs = [
            j for j in jobs
            if needle in j["title"].lower()
            or needle in j["location"].lower()
            or needle in j["description"].lower()
        ]
    return jobs


async def list_my_jobs(store, user: dict) -> list[dict]:
    user_type = user.get("user_type")
    if user_type == UserType.ADMIN.value:
        return await store.list("Job", sort="-created_date")
    if user_type == UserType.EMPLOYER.value:
        return await store.filter("Job", {"employer_id": user["id"]}, sort="-created_date")
    if user_type == UserType.WORKER.value:
        return await store.filter("Job", {"worker_id": user["id"]}, sort="-created_date")
    return []


# =========================================================
# Applications
# =========================================================

async def apply(store, user: dict, data: ApplicationCreate) -> dict:
    """
    Worker applies to (or sends a priced proposal for) an open job.

    1. Application{pending}; a second one for the same job fails as a duplicate.
    2. The employer is notified (new_application / new_proposal).
    3. An opening chat message starts the worker/employer conversation.
    """
    _require_role(user, UserType.WORKER)

    job = await _load(store, "Job", data.job_id)
    if job["status"] != JobStatus.OPEN.value:
        raise InvalidTransitionError("This job is no longer accepting applications")
    if not job.get("employer_id"):
        raise InvalidTransitionError("This job has no employer")

    is_proposal = data.application_type == ApplicationType.PROPOSAL
    message = data.message.strip()
    name = user.get("full_name") or user["email"]

    async with store.transaction():
        # --- 1. Application ---
        try:
            application = await store.create("Application", {
                "job_id": job["id"],
                "worker_id": user["id"],
                "message": message,
                "application_type": data.application_type.value,
                "proposed_price": data.proposed_price,
                "status": ApplicationStatus.PENDING.value,
            })
        except ConflictError as e:
            logger.warning("Duplicate application by %s on job %s", user["id"], job["id"])
            raise DuplicateApplicationError("You already applied to this job") from e

        # --- 2. Notify employer ---
        if is_proposal:
            await notify(
                store, job["employer_id"], NotificationType.NEW_PROPOSAL,
                title="Nova proposta!",
                message=f'{name} enviou uma proposta para a obra "{job["title"]}"',
                related_id=job["id"], action_url="/applications",
            )
        else:
            await notify(
                store, job["employer_id"], NotificationType.NEW_APPLICATION,
                title="Nova candidatura!",
                message=f'{name} candidatou-se para a obra "{job["title"]}"',
                related_id=job["id"], action_url="/applications",
            )

        # --- 3. Opening chat message ---
        if is_proposal:
            opening = f'Olá! Enviei uma proposta para a obra "{job["title"]}" no valor de €{data.proposed_price}. {message}'
        else:
            opening = f'Olá! Candidatei-me à obra "{job["title"]}". {message}'
        await store.create("ChatMessage", {
            "conversation_id": conversation_id_for(user["id"], job["employer_id"]),
            "sender_id": user["id"],
            "receiver_id": job["employer_id"],
            "message": opening,
            "attachment_url": None,
            "attachment_type": None,
            "is_read": False,
        })

    logger.info("Worker %s sent %s %s for job %s", user["id"], data.application_type.value, application["id"], job["id"])
    return application


async def accept(store, user: dict, application_id: str) -> dict:
    """Employer accepts a pending application: the applicant becomes the job's worker."""
    application = await _load(store, "Application", application_id)
    job = await _load(store, "Job", application["job_id"])
    _require_owner(user, job)

    if application["status"] != ApplicationStatus.PENDING.value:
        raise InvalidTransitionError(f"Application is already {application['status']}")
    if job["status"] not in STARTABLE:
        raise InvalidTransitionError(f"Cannot accept applications on a {job['status']} job")
    if job.get("worker_id") and job["worker_id"] != application["worker_id"]:
        # TODO: decide whether a second acceptance should be refused instead of reassigning
        logger.warning("Job %s already had worker %s, reassigning", job["id"], job["worker_id"])

    fields = {"status": JobStatus.IN_PROGRESS.value, "worker_id": application["worker_id"]}
    if application.get("proposed_price") is not None:
        fields["price"] = application["proposed_price"]

    async with store.transaction():
        application = await store.update("Application", application_id, {"status": ApplicationStatus.ACCEPTED.value})
        job = await store.update("Job", job["id"], fields)
        await notify(
            store, application["worker_id"], NotificationType.JOB_ACCEPTED,
            title="Proposta aceite!",
            message=f'A sua candidatura para "{job["title"]}" foi aceite.',
            related_id=job["id"], action_url="/applications",
        )

    logger.info("Application %s accepted, job %s in progress at %s", application_id, job["id"], job["price"])
    return {"application": application, "job": job}


async def reject(store, user: dict, application_id: str) -> dict:
    application = await _load(store, "Application", application_id)
    job = await _load(store, "Job", application["job_id"])
    _require_owner(user, job)

    if application["status"] != ApplicationStatus.PENDING.value:
        raise InvalidTransitionError(f"Application is already {application['status']}")

    async with store.transaction():
        application = await store.update("Application", application_id, {"status": ApplicationStatus.REJECTED.value})
        await notify(
            store, application["worker_id"], NotificationType.JOB_REJECTED,
            title="Proposta recusada",
            message=f'A sua candidatura para "{job["title"]}" foi recusada.',
            related_id=job["id"], action_url="/applications",
        )

    logger.info("Application %s rejected", application_id)
    return application


async def list_applications(store, user: dict) -> list[dict]:
    """
    Applications visible to `user`, newest first, each with its job and both
    parties attached. Viewing them clears the caller's unread
    application-type notifications.
    """
    user_type = user.get("user_type")
    if user_type == UserType.ADMIN.value:
        applications = await store.list("Application", sort="-created_date")
    elif user_type == UserType.EMPLOYER.value:
        jobs = await store.filter("Job", {"employer_id": user["id"]})
        applications = await store.filter(
            "Application", {"job_id": {"$in": [j["id"] for j in jobs]}}, sort="-created_date"
        )
    elif user_type == UserType.WORKER.value:
        applications = await store.filter("Application", {"worker_id": user["id"]}, sort="-created_date")
    else:
        applications = []

    jobs_by_id: dict[str, dict | None] = {}
    users_by_id: dict[str, dict | None] = {}

    async def cached(cache, entity, record_id):
        if record_id is None:
            return None
        if record_id not in cache:
            cache[record_id] = await store.get(entity, record_id)
        return cache[record_id]

    enriched = []
    for a in applications:
        job = await cached(jobs_by_id, "Job", a["job_id"])
        worker = await cached(users_by_id, "User", a["worker_id"])
        employer = await cached(users_by_id, "User", job["employer_id"]) if job else None
        enriched.append({**a, "job": job, "worker": public_user(worker), "employer": public_user(employer)})

    async with store.transaction():
        await mark_matching_read(store, {"user_id": user["id"], "type": {"$in": APPLICATION_TYPES}})

    return enriched


# =========================================================
# On site
# =========================================================

async def start(store, user: dict, job_id: str, now: Optional[datetime] = None) -> dict:
    """
    Employer confirms the worker is on site (QR scan).

    Idempotent: once actual_start_date is set the job comes back unchanged
    and the worker is not notified again.
    """
    job = await _load(store, "Job", job_id)
    _require_owner(user, job)

    if job.get("actual_start_date"):
        return job
    if not job.get("worker_id"):
        raise InvalidTransitionError("No worker has been accepted for this job")
    if job["status"] not in STARTABLE:
        raise InvalidTransitionError(f"Cannot start a {job['status']} job")

    async with store.transaction():
        job = await store.update("Job", job_id, {
            "actual_start_date": _now(now),
            "status": JobStatus.IN_PROGRESS.value,
        })
        await notify(
            store, job["worker_id"], NotificationType.JOB_STARTED,
            title="Trabalho iniciado!",
            message=f'O trabalho "{job["title"]}" foi oficialmente iniciado.',
            related_id=job["id"], action_url="/my-jobs",
        )

    logger.info("Job %s started", job_id)
    return job


async def scan_confirmation(store, user: dict, job_id: str, application_id: str) -> dict:
    """What the employer sees after scanning a worker's QR code."""
    job = await _load(store, "Job", job_id)
    _require_owner(user, job)

    application = await _load(store, "Application", application_id)
    if application["job_id"] != job["id"]:
        raise ValidationError("This application does not belong to this job")

    worker = await store.get("User", application["worker_id"])
    agreed = application.get("proposed_price")
    return {
        "job": job,
        "application": application,
        "worker": public_user(worker),
        "agreed_price": agreed if agreed is not None else job["price"],
    }


# =========================================================
# Completion
# =========================================================

async def complete_by_employer(store, user: dict, job_id: str, data: RatingCreate, now: Optional[datetime] = None) -> dict:
    """Employer finishes the job and rates the worker. The worker is asked to rate back."""
    job = await _load(store, "Job", job_id)
    _require_owner(user, job)

    if job["status"] != JobStatus.IN_PROGRESS.value:
        raise InvalidTransitionError(f"Cannot complete a {job['status']} job")
    if not job.get("worker_id"):
        raise InvalidTransitionError("No worker has been accepted for this job")
    worker = await _load(store, "User", job["worker_id"])

    async with store.transaction():
        settlement = await settle_rating(store, job, user, worker, data, _now(now))
        job = await store.update("Job", job_id, {"status": JobStatus.COMPLETED_BY_EMPLOYER.value})
        await notify(
            store, worker["id"], NotificationType.JOB_READY_FOR_REVIEW,
            title="Obra finalizada! Avalie o empregador.",
            message=f'O trabalho "{job["title"]}" foi marcado como concluído. Por favor, deixe sua avaliação.',
            related_id=job["id"], action_url="/applications",
        )

    logger.info("Job %s completed by employer, worker %s +%s XP", job_id, worker["id"], settlement["xp_gained"])
    return {"job": job, **settlement}


async def complete_by_worker(store, user: dict, job_id: str, data: RatingCreate, now: Optional[datetime] = None) -> dict:
    """Assigned worker rates the employer, closing the job."""
    job = await _load(store, "Job", job_id)
    if job.get("worker_id") != user["id"]:
        raise AuthorizationError("You are not the worker on this job")

    if job["status"] != JobStatus.COMPLETED_BY_EMPLOYER.value:
        raise InvalidTransitionError("The employer has not completed this job yet")
    employer = await _load(store, "User", job["employer_id"])
    finished_at = _now(now)

    async with store.transaction():
        settlement = await settle_rating(store, job, user, employer, data, finished_at)
        job = await store.update("Job", job_id, {
            "status": JobStatus.COMPLETED.value,
            "actual_end_date": finished_at,
        })
        await notify(
            store, employer["id"], NotificationType.JOB_COMPLETED,
            title="Trabalho concluído e avaliado!",
            message=f'O profissional avaliou o seu trabalho em "{job["title"]}". A obra está oficialmente concluída.',
            related_id=job["id"], action_url="/profile",
        )

    logger.info("Job %s completed, employer %s +%s XP", job_id, employer["id"], settlement["xp_gained"])
    return {"job": job, **settlement}
