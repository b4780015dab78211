# store.py
"""
Entity store: the one persistence boundary of the app.

Every record type (User, Job, Application, ...) is handled through the same
small CRUD/filter contract. Records are plain dicts with a server-assigned
string `id` and a `created_date`.

Two backends:
- PostgresEntityStore: one table per entity, used by the running app.
- InMemoryEntityStore: used by the test suite in place of the database.
  Enforces the same unique keys and rolls back on errors inside transaction().
"""

from __future__ import annotations

import copy
import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import Any, AsyncContextManager, Optional, Protocol

import psycopg
from fastapi import Depends
from psycopg import sql
from psycopg.types.json import Jsonb

from db import getDB
from errors import ConflictError, NotFoundError

logger = logging.getLogger(__name__)

# Entity name -> table name
ENTITY_TABLES = {
    "User": "users",
    "Job": "jobs",
    "Application": "applications",
    "ChatMessage": "chat_messages",
    "Notification": "notifications",
    "Rating": "ratings",
    "Blacklist": "blacklist",
}

# Unique keys, mirrored by the UNIQUE constraints in init_db.py
UNIQUE_KEYS = {
    "User": [("email",)],
    "Application": [("job_id", "worker_id")],
    "Rating": [("job_id", "rater_id", "rated_id")],
}

JSONB_COLUMNS = {
    "User": {"documents"},
}


class EntityStore(Protocol):
    """Contract every backend implements."""

    async def list(self, entity: str, sort: Optional[str] = None) -> list[dict]:
        """All records of a type. sort: "field" ascending, "-field" descending."""
        ...

    async def filter(self, entity: str, predicate: dict, sort: Optional[str] = None) -> list[dict]:
        """Records matching field == value or field in {"$in": [...]}."""
        ...

    async def get(self, entity: str, record_id: str) -> Optional[dict]:
        ...

    async def create(self, entity: str, fields: dict) -> dict:
        """Insert a record. Raises ConflictError on a unique key violation."""
        ...

    async def update(self, entity: str, record_id: str, fields: dict) -> dict:
        """Partial update. Raises NotFoundError for an unknown id."""
        ...

    async def delete(self, entity: str, record_id: str) -> None:
        ...

    def transaction(self) -> AsyncContextManager:
        """Writes inside the block commit together or not at all."""
        ...


def _parse_sort(sort: Optional[str]) -> tuple[Optional[str], bool]:
    if not sort:
        return None, False
    if sort.startswith("-"):
        return sort[1:], True
    return sort, False


def _table_for(entity: str) -> str:
    try:
        return ENTITY_TABLES[entity]
    except KeyError:
        raise ValueError(f"Unknown entity: {entity}") from None


# =========================================================
# PostgreSQL backend
# =========================================================

class PostgresEntityStore:
    """Entity store over one psycopg async connection (rows as dicts)."""

    def __init__(self, conn: psycopg.AsyncConnection):
        self.conn = conn

    def transaction(self):
        # Nested calls become savepoints
        return self.conn.transaction()

    def _adapt(self, entity: str, fields: dict) -> dict:
        jsonb = JSONB_COLUMNS.get(entity, set())
        return {k: (Jsonb(v) if k in jsonb and v is not None else v) for k, v in fields.items()}

    def _where(self, predicate: dict) -> tuple[sql.Composable, list]:
        clauses = []
        params: list[Any] = []
        for field, value in predicate.items():
            column = sql.Identifier(field)
            if isinstance(value, dict) and "$in" in value:
                values = list(value["$in"])
                if not values:
                    clauses.append(sql.SQL("FALSE"))
                    continue
                # Cast so enum columns compare against a text[] parameter
                clauses.append(sql.SQL("{}::text = ANY(%s)").format(column))
                params.append([str(v) for v in values])
            elif value is None:
                clauses.append(sql.SQL("{} IS NULL").format(column))
            else:
                clauses.append(sql.SQL("{} = %s").format(column))
                params.append(value)
        if not clauses:
            return sql.SQL(""), params
        return sql.SQL(" WHERE ") + sql.SQL(" AND ").join(clauses), params

    async def list(self, entity: str, sort: Optional[str] = None) -> list[dict]:
        return await self.filter(entity, {}, sort)

    async def filter(self, entity: str, predicate: dict, sort: Optional[str] = None) -> list[dict]:
        table = sql.Identifier(_table_for(entity))
        where, params = self._where(predicate)
        query = sql.SQL("SELECT * FROM {}").format(table) + where

        field, descending = _parse_sort(sort)
        if field:
            query += sql.SQL(" ORDER BY {} {}").format(
                sql.Identifier(field), sql.SQL("DESC" if descending else "ASC")
            )

        async with self.conn.cursor() as cur:
            await cur.execute(query, params)
            return await cur.fetchall()

    async def get(self, entity: str, record_id: str) -> Optional[dict]:
        rows = await self.filter(entity, {"id": record_id})
        return rows[0] if rows else None

    async def create(self, entity: str, fields: dict) -> dict:
        table = sql.Identifier(_table_for(entity))
        data = self._adapt(entity, {"id": str(uuid.uuid4()), **fields})
        query = sql.SQL("INSERT INTO {} ({}) VALUES ({}) RETURNING *").format(
            table,
            sql.SQL(", ").join(sql.Identifier(k) for k in data),
            sql.SQL(", ").join(sql.Placeholder() for _ in data),
        )
        try:
            # Savepoint: a rejected insert must not poison the outer transaction
            async with self.conn.transaction():
                async with self.conn.cursor() as cur:
                    await cur.execute(query, list(data.values()))
                    return await cur.fetchone()
        except psycopg.errors.UniqueViolation as e:
            logger.warning("Unique key violated on %s: %s", entity, e.diag.constraint_name)
            raise ConflictError(f"{entity} already exists") from e

    async def update(self, entity: str, record_id: str, fields: dict) -> dict:
        if not fields:
            record = await self.get(entity, record_id)
            if record is None:
                raise NotFoundError(f"{entity} not found")
            return record

        table = sql.Identifier(_table_for(entity))
        data = self._adapt(entity, fields)
        query = sql.SQL("UPDATE {} SET {} WHERE id = %s RETURNING *").format(
            table,
            sql.SQL(", ").join(
                sql.SQL("{} = %s").format(sql.Identifier(k)) for k in data
            ),
        )
        try:
            async with self.conn.transaction():
                async with self.conn.cursor() as cur:
                    await cur.execute(query, [*data.values(), record_id])
                    row = await cur.fetchone()
        except psycopg.errors.UniqueViolation as e:
            raise ConflictError(f"{entity} already exists") from e
        if row is None:
            raise NotFoundError(f"{entity} not found")
        return row

    async def delete(self, entity: str, record_id: str) -> None:
        table = sql.Identifier(_table_for(entity))
        async with self.conn.cursor() as cur:
            await cur.execute(sql.SQL("DELETE FROM {} WHERE id = %s").format(table), (record_id,))


# =========================================================
# In-memory backend
# =========================================================

class InMemoryEntityStore:
    """In-memory entity store, swapped in for get_store by the tests."""

    def __init__(self):
        self._tables: dict[str, dict[str, dict]] = {name: {} for name in ENTITY_TABLES}
        self._last_created: Optional[datetime] = None

    def _now(self) -> datetime:
        # Strictly increasing so creation order is always recoverable
        now = datetime.now(timezone.utc)
        if self._last_created is not None and now <= self._last_created:
            now = self._last_created + timedelta(microseconds=1)
        self._last_created = now
        return now

    def _rows(self, entity: str) -> dict[str, dict]:
        _table_for(entity)
        return self._tables[entity]

    @staticmethod
    def _matches(record: dict, predicate: dict) -> bool:
        for field, value in predicate.items():
            if isinstance(value, dict) and "$in" in value:
                if record.get(field) not in value["$in"]:
                    return False
            elif record.get(field) != value:
                return False
        return True

    def _check_unique(self, entity: str, record: dict, exclude_id: Optional[str] = None):
        for key in UNIQUE_KEYS.get(entity, []):
            wanted = tuple(record.get(f) for f in key)
            for other in self._rows(entity).values():
                if other["id"] == exclude_id:
                    continue
                if tuple(other.get(f) for f in key) == wanted:
                    raise ConflictError(f"{entity} already exists")

    @asynccontextmanager
    async def transaction(self):
        snapshot = copy.deepcopy(self._tables)
        try:
            yield self
        except BaseException:
            self._tables = snapshot
            raise

    async def list(self, entity: str, sort: Optional[str] = None) -> list[dict]:
        return await self.filter(entity, {}, sort)

    async def filter(self, entity: str, predicate: dict, sort: Optional[str] = None) -> list[dict]:
        rows = [r for r in self._rows(entity).values() if self._matches(r, predicate)]

        field, descending = _parse_sort(sort)
        if field:
            present = [r for r in rows if r.get(field) is not None]
            missing = [r for r in rows if r.get(field) is None]
            present.sort(key=lambda r: r[field], reverse=descending)
            rows = present + missing

        return copy.deepcopy(rows)

    async def get(self, entity: str, record_id: str) -> Optional[dict]:
        record = self._rows(entity).get(record_id)
        return copy.deepcopy(record) if record is not None else None

    async def create(self, entity: str, fields: dict) -> dict:
        record = copy.deepcopy(fields)
        record["id"] = str(uuid.uuid4())
        record.setdefault("created_date", self._now())
        self._check_unique(entity, record)
        self._rows(entity)[record["id"]] = record
        return copy.deepcopy(record)

    async def update(self, entity: str, record_id: str, fields: dict) -> dict:
        current = self._rows(entity).get(record_id)
        if current is None:
            raise NotFoundError(f"{entity} not found")
        updated = {**current, **copy.deepcopy(fields)}
        self._check_unique(entity, updated, exclude_id=record_id)
        self._rows(entity)[record_id] = updated
        return copy.deepcopy(updated)

    async def delete(self, entity: str, record_id: str) -> None:
        self._rows(entity).pop(record_id, None)


# --- FastAPI dependency ---
async def get_store(conn: psycopg.AsyncConnection = Depends(getDB)) -> PostgresEntityStore:
    """One store per request, bound to the request's pooled connection."""
    return PostgresEntityStore(conn)
