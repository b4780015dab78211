import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.middleware.sessions import SessionMiddleware

import config
from db import close_pool
from errors import KanduError
from init_db import init_database
from log import configure_logging
from utils import setup_upload_directories

# --- 1. Logging ---
configure_logging()
logger = logging.getLogger(__name__)

# --- 2. Application ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create tables on start so nobody has to run SQL by hand
    init_database()
    logger.info("Kandu API ready")
    yield
    await close_pool()


app = FastAPI(title="Kandu", lifespan=lifespan)

# --- 3. Uploaded files ---
# Avatars, portfolio images, documents and chat attachments, e.g. /uploads/avatars/...
setup_upload_directories()
app.mount("/uploads", StaticFiles(directory=config.UPLOAD_ROOT), name="uploads")

# --- 4. Session (login state) ---
# The signed cookie only carries user_id
app.add_middleware(
    SessionMiddleware,
    secret_key=config.SECRET_KEY,
    max_age=config.SESSION_MAX_AGE,
    same_site="lax",
    https_only=config.HTTPS_ONLY,
)


# --- 5. Error rendering ---
# Every error body is {"detail": ..., "code": ...}
@app.exception_handler(KanduError)
async def kandu_error_handler(request: Request, exc: KanduError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, "code": exc.code})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=422,
        content={"detail": jsonable_encoder(exc.errors()), "code": "validation_error"},
    )


# --- 6. Routers ---
from routes.admin import router as admin_router
from routes.applications import router as applications_router
from routes.auth import router as auth_router
from routes.chat import router as chat_router
from routes.jobs import router as jobs_router
from routes.notifications import router as notifications_router
from routes.uploads import router as uploads_router
from routes.users import router as users_router

app.include_router(auth_router, prefix="/auth")
app.include_router(jobs_router, prefix="/jobs")
app.include_router(applications_router, prefix="/applications")
app.include_router(chat_router, prefix="/chat")
app.include_router(notifications_router, prefix="/notifications")
app.include_router(users_router, prefix="/users")
app.include_router(admin_router, prefix="/admin")
app.include_router(uploads_router, prefix="/files")


@app.get("/health")
async def health():
    return {"status": "ok"}
