"""Tests for the in-memory entity store."""

from datetime import datetime, timezone
from typing import get_type_hints

import pytest

from errors import ConflictError, NotFoundError
from store import EntityStore, InMemoryEntityStore, PostgresEntityStore


class TestCrud:
    @pytest.mark.asyncio
    async def test_create_assigns_id_and_created_date(self, store):
        record = await store.create("Notification", {"user_id": "u1", "type": "new_message", "is_read": False})

        assert record["id"]
        assert record["created_date"].tzinfo is not None
        assert await store.get("Notification", record["id"]) == record

    @pytest.mark.asyncio
    async def test_explicit_created_date_kept(self, store):
        when = datetime(2024, 5, 1, tzinfo=timezone.utc)
        record = await store.create("ChatMessage", {"conversation_id": "a_b", "created_date": when})
        assert record["created_date"] == when

    @pytest.mark.asyncio
    async def test_update_is_partial(self, store):
        record = await store.create("Job", {"title": "Pintura", "views": 0})
        updated = await store.update("Job", record["id"], {"views": 1})

        assert updated["title"] == "Pintura"
        assert updated["views"] == 1

    @pytest.mark.asyncio
    async def test_update_unknown_id(self, store):
        with pytest.raises(NotFoundError):
            await store.update("Job", "missing", {"views": 1})

    @pytest.mark.asyncio
    async def test_delete(self, store):
        record = await store.create("Job", {"title": "Pintura"})
        await store.delete("Job", record["id"])
        assert await store.get("Job", record["id"]) is None

    @pytest.mark.asyncio
    async def test_returned_records_are_copies(self, store):
        record = await store.create("User", {"email": "a@kandu.pt", "skills": ["Pintura"]})
        record["skills"].append("Eletricidade")

        stored = await store.get("User", record["id"])
        assert stored["skills"] == ["Pintura"]

    @pytest.mark.asyncio
    async def test_unknown_entity(self, store):
        with pytest.raises(ValueError):
            await store.list("Invoice")


class TestQueries:
    @pytest.mark.asyncio
    async def test_filter_exact_and_in(self, store):
        await store.create("Notification", {"user_id": "u1", "type": "new_message"})
        await store.create("Notification", {"user_id": "u1", "type": "job_accepted"})
        await store.create("Notification", {"user_id": "u2", "type": "new_message"})

        mine = await store.filter("Notification", {"user_id": "u1"})
        assert len(mine) == 2

        typed = await store.filter("Notification", {"type": {"$in": ["job_accepted", "job_rejected"]}})
        assert [n["user_id"] for n in typed] == ["u1"]

    @pytest.mark.asyncio
    async def test_sort_descending_by_creation(self, store):
        first = await store.create("Job", {"title": "A"})
        second = await store.create("Job", {"title": "B"})

        newest_first = await store.list("Job", sort="-created_date")
        assert [j["id"] for j in newest_first] == [second["id"], first["id"]]

        oldest_first = await store.list("Job", sort="created_date")
        assert [j["id"] for j in oldest_first] == [first["id"], second["id"]]


class TestConstraints:
    @pytest.mark.asyncio
    async def test_application_unique_per_job_and_worker(self, store):
        await store.create("Application", {"job_id": "j1", "worker_id": "w1"})
        await store.create("Application", {"job_id": "j1", "worker_id": "w2"})

        with pytest.raises(ConflictError):
            await store.create("Application", {"job_id": "j1", "worker_id": "w1"})

    @pytest.mark.asyncio
    async def test_user_email_unique(self, store):
        await store.create("User", {"email": "a@kandu.pt"})
        with pytest.raises(ConflictError):
            await store.create("User", {"email": "a@kandu.pt"})


class TestTransactions:
    @pytest.mark.asyncio
    async def test_rollback_on_error(self, store):
        job = await store.create("Job", {"title": "Pintura", "status": "open"})

        with pytest.raises(RuntimeError):
            async with store.transaction():
                await store.update("Job", job["id"], {"status": "in_progress"})
                await store.create("Notification", {"user_id": "u1"})
                raise RuntimeError("boom")

        assert (await store.get("Job", job["id"]))["status"] == "open"
        assert await store.list("Notification") == []

    @pytest.mark.asyncio
    async def test_commit_on_success(self, store):
        async with store.transaction():
            await store.create("Notification", {"user_id": "u1"})
        assert len(await store.list("Notification")) == 1

    @pytest.mark.asyncio
    async def test_inner_failure_only_undoes_inner_block(self):
        store = InMemoryEntityStore()
        async with store.transaction():
            await store.create("Job", {"title": "kept"})
            with pytest.raises(ConflictError):
                async with store.transaction():
                    await store.create("User", {"email": "x@kandu.pt"})
                    await store.create("User", {"email": "x@kandu.pt"})

        assert len(await store.list("Job")) == 1
        assert await store.list("User") == []


class TestAnnotations:
    @pytest.mark.parametrize("backend", [EntityStore, PostgresEntityStore, InMemoryEntityStore])
    def test_list_method_does_not_hide_builtin(self, backend):
        # The `list` method shares a name with the builtin used in return types
        assert get_type_hints(backend.filter)["return"] == list[dict]
        assert get_type_hints(backend.list)["return"] == list[dict]
