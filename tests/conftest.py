"""Pytest configuration and fixtures."""

import itertools
import os
import tempfile
from datetime import date
from decimal import Decimal

# Must be set before config.py is imported anywhere
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("SECRET_KEY", "test-only-secret")
os.environ.setdefault("UPLOAD_ROOT", tempfile.mkdtemp(prefix="kandu-uploads-"))

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402

from models.job import JobCreate  # noqa: E402
from services import lifecycle  # noqa: E402
from store import InMemoryEntityStore  # noqa: E402


@pytest.fixture
def store():
    """Fresh in-memory store per test."""
    return InMemoryEntityStore()


@pytest.fixture
def make_user(store):
    """Factory: await make_user("worker", full_name=...) -> stored user record."""
    counter = itertools.count(1)

    async def _make(user_type: str = "worker", **fields) -> dict:
        n = next(counter)
        record = {
            "email": f"{user_type}{n}@kandu.pt",
            "hashed_password": "not-a-real-hash",
            "full_name": f"{user_type.title()} {n}",
            "user_type": user_type,
            "rating": 0,
            "xp": 0,
            "skills": [],
            "portfolio_images": [],
            "documents": [],
            "status": "active",
        }
        record.update(fields)
        return await store.create("User", record)

    return _make


@pytest_asyncio.fixture
async def employer(make_user):
    return await make_user("employer", full_name="Ana Costa")


@pytest_asyncio.fixture
async def worker(make_user):
    return await make_user("worker", full_name="Rui Santos", city="Porto", skills=["Canalização"])


@pytest_asyncio.fixture
async def admin(make_user):
    return await make_user("admin", full_name="Admin")


@pytest.fixture
def job_data():
    """Factory for valid job input."""

    def _data(**overrides) -> JobCreate:
        fields = {
            "title": "Reparação de canalização",
            "category": "Canalização",
            "description": "Fuga de água na cozinha",
            "location": "Lisboa",
            "price": Decimal("500"),
        }
        fields.update(overrides)
        return JobCreate(**fields)

    return _data


@pytest_asyncio.fixture
async def job(store, employer, job_data):
    """An open job owned by `employer`, planned for a week in 2030."""
    return await lifecycle.create_job(
        store, employer, job_data(start_date=date(2030, 1, 7), end_date=date(2030, 1, 14))
    )
