"""In-memory stand-ins for the database session, repositories, and Redis.

Mock strategy:
  - ``MemoryStore`` holds committed rows and one ``asyncio.Lock`` per
    counter row, shared by every session of a test.
  - ``FakeSession`` mimics ``AsyncSession`` transaction semantics: writes
    are staged and applied on ``commit()``, discarded on ``rollback()``.
    Row locks taken during the transaction are held until it ends, like
    PostgreSQL's ``UPDATE`` row locks.
  - The mock repositories implement every method the service calls,
    staging writes on the session they are given.
  - ``FakeRedis`` implements the ``get``/``set``/``delete`` subset of
    ``redis.asyncio.Redis`` and can be told to fail.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable

import redis.asyncio as redis

from survey_db.models.enums import SurveyStatus, SurveyType


# =====================================================================
# Rows
# =====================================================================


@dataclass
class MockSurveyRow:
    """In-memory stand-in for the Survey ORM model."""

    id: int
    admin_id: int
    title: str
    type: SurveyType
    path: str
    schema: str
    status: SurveyStatus = SurveyStatus.UNPUBLISHED
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class MockResultRow:
    """In-memory stand-in for the SurveyResult ORM model."""

    id: int
    survey_id: int
    username: str | None
    data: str
    created_at: datetime


# =====================================================================
# Store and session
# =====================================================================


class MemoryStore:
    """Committed state shared by all sessions in a test."""

    def __init__(self) -> None:
        self.surveys: dict[int, MockSurveyRow] = {}
        self.results: list[MockResultRow] = []
        self.counters: dict[tuple[int, str, str], int] = {}
        self.row_locks: dict[tuple[int, str, str], asyncio.Lock] = {}
        self._next_id = 0
        # Timestamp given to new answer records
        self.now: Callable[[], datetime] = lambda: datetime.now(timezone.utc)

    def next_id(self) -> int:
        self._next_id += 1
        return self._next_id

    def lock_for(self, key: tuple[int, str, str]) -> asyncio.Lock:
        return self.row_locks.setdefault(key, asyncio.Lock())


class FakeSession:
    """AsyncSession stand-in with staged writes and transaction-scoped row locks."""

    def __init__(self, store: MemoryStore) -> None:
        self.store = store
        self.commits = 0
        self.rollbacks = 0
        self._pending: list[Callable[[], None]] = []
        self._held: list[asyncio.Lock] = []

    def stage(self, apply: Callable[[], None]) -> None:
        self._pending.append(apply)

    async def lock_row(self, key: tuple[int, str, str]) -> None:
        lock = self.store.lock_for(key)
        await lock.acquire()
        self._held.append(lock)

    @property
    def holds_locks(self) -> bool:
        return bool(self._held)

    async def flush(self) -> None:
        pass

    async def commit(self) -> None:
        for apply in self._pending:
            apply()
        self.commits += 1
        self._end()

    async def rollback(self) -> None:
        self.rollbacks += 1
        self._end()

    def _end(self) -> None:
        self._pending.clear()
        for lock in reversed(self._held):
            lock.release()
        self._held.clear()

    async def __aenter__(self) -> "FakeSession":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        # Closing a session discards anything uncommitted
        self._end()


def session_factory(store: MemoryStore) -> Callable[[], FakeSession]:
    """Stand-in for ``async_sessionmaker``: each call opens a new session."""
    return lambda: FakeSession(store)


# =====================================================================
# Repositories
# =====================================================================


class MockSurveyRepository:
    """In-memory SurveyRepository replacement."""

    def __init__(self, store: MemoryStore) -> None:
        self.store = store
        self.get_by_path_calls = 0

    async def create(self, db, *, admin_id, title, survey_type, path, schema):
        row = MockSurveyRow(
            id=self.store.next_id(),
            admin_id=admin_id,
            title=title,
            type=survey_type,
            path=path,
            schema=schema,
        )
        db.stage(lambda: self.store.surveys.__setitem__(row.id, row))
        return row

    async def get_by_id(self, db, survey_id):
        return self.store.surveys.get(survey_id)

    async def get_by_path(self, db, path):
        self.get_by_path_calls += 1
        # Yield so that concurrent readers can pile up behind one load
        await asyncio.sleep(0.01)
        for row in self.store.surveys.values():
            if row.path == path:
                return row
        return None

    async def list_page(
        self, db, *, admin_id=None, survey_type=None, status=None, keyword=None,
        limit=20, offset=0,
    ):
        rows = [
            row for row in sorted(self.store.surveys.values(), key=lambda r: -r.id)
            if (admin_id is None or row.admin_id == admin_id)
            and (survey_type is None or row.type == survey_type)
            and (status is None or row.status == status)
            and (not keyword or keyword in row.title)
        ]
        return rows[offset:offset + limit], len(rows)

    async def update_schema(self, db, survey, *, title, schema):
        def apply():
            survey.title = title
            survey.schema = schema
            survey.updated_at = datetime.now(timezone.utc)
        db.stage(apply)
        return survey

    async def update_status(self, db, survey, status):
        def apply():
            survey.status = status
            survey.updated_at = datetime.now(timezone.utc)
        db.stage(apply)
        return survey

    async def delete(self, db, survey):
        db.stage(lambda: self.store.surveys.pop(survey.id, None))


class MockResultRepository:
    """In-memory ResultRepository replacement."""

    def __init__(self, store: MemoryStore) -> None:
        self.store = store

    async def create(self, db, *, survey_id, username, data):
        row = MockResultRow(
            id=self.store.next_id(),
            survey_id=survey_id,
            username=username,
            data=data,
            created_at=self.store.now(),
        )
        db.stage(lambda: self.store.results.append(row))
        return row

    async def count_by_survey(self, db, survey_id):
        return sum(1 for r in self.store.results if r.survey_id == survey_id)

    async def count_by_user(self, db, survey_id, username, *, since=None, until=None):
        return sum(
            1 for r in self.store.results
            if r.survey_id == survey_id
            and r.username == username
            and (since is None or r.created_at >= since)
            and (until is None or r.created_at < until)
        )

    async def list_page(self, db, survey_id, *, limit=20, offset=0):
        rows = [r for r in reversed(self.store.results) if r.survey_id == survey_id]
        return rows[offset:offset + limit], len(rows)


class MockStatsRepository:
    """In-memory StatsRepository replacement with row-level locking.

    ``increment`` takes the counter's row lock on the session, holds it
    until the transaction ends, and yields to the event loop between rows
    so that concurrent batches interleave.
    """

    def __init__(self, store: MemoryStore) -> None:
        self.store = store
        self.increment_order: list[list[tuple[str, str]]] = []

    async def seed(self, db, survey_id, keys):
        def apply():
            for q, o in keys:
                self.store.counters.setdefault((survey_id, q, o), 0)
        db.stage(apply)

    async def increment(self, db, survey_id, question_id, option_id):
        key = (survey_id, question_id, option_id)
        if key not in self.store.counters:
            return 0
        await db.lock_row(key)
        await asyncio.sleep(0)

        def apply():
            self.store.counters[key] += 1
        db.stage(apply)
        return 1

    async def batch_increment(self, db, survey_id, keys):
        self.increment_order.append([tuple(k) for k in keys])
        updated = 0
        for question_id, option_id in keys:
            updated += await self.increment(db, survey_id, question_id, option_id)
        return updated

    async def list_by_survey(self, db, survey_id):
        return {
            (q, o): count
            for (sid, q, o), count in self.store.counters.items()
            if sid == survey_id
        }


# =====================================================================
# Redis
# =====================================================================


class FakeRedis:
    """Dict-backed subset of ``redis.asyncio.Redis``.

    Set ``fail = True`` to make every call raise ``ConnectionError``.
    """

    def __init__(self) -> None:
        self.data: dict[str, bytes] = {}
        self.ttls: dict[str, int | None] = {}
        self.fail = False
        self.calls: list[tuple[str, str]] = []

    def _check(self, op: str, key: str) -> None:
        self.calls.append((op, key))
        if self.fail:
            raise redis.ConnectionError("redis unavailable")

    async def get(self, key):
        self._check("get", key)
        return self.data.get(key)

    async def set(self, key, value, ex=None):
        self._check("set", key)
        self.data[key] = value.encode() if isinstance(value, str) else value
        self.ttls[key] = ex
        return True

    async def delete(self, *keys):
        for key in keys:
            self._check("delete", key)
        return sum(1 for key in keys if self.data.pop(key, None) is not None)
