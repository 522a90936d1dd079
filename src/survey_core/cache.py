"""Survey snapshot cache and per-key request coalescing.

``SurveyCache`` stores :class:`SurveySnapshot` JSON in Redis under
``<prefix><path>`` with a TTL.  The cache is never authoritative: every
client or payload failure is raised as :class:`CacheError`, which readers
log and treat as a miss.

``SingleFlight`` collapses concurrent loads of the same key into one
in-flight task, so a cold popular survey costs one database read no matter
how many requests arrive at once.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, TypeVar

import redis.asyncio as redis
from pydantic import ValidationError

from survey_core.constants import SURVEY_CACHE_PREFIX, SURVEY_CACHE_TTL
from survey_core.errors import CacheError
from survey_core.models.survey import SurveySnapshot

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SurveyCache:
    """Cache-aside storage for survey snapshots keyed by public path."""

    def __init__(
        self,
        client: redis.Redis,
        *,
        prefix: str = SURVEY_CACHE_PREFIX,
        ttl: int = SURVEY_CACHE_TTL,
    ) -> None:
        self._client = client
        self._prefix = prefix
        self._ttl = ttl

    def key(self, path: str) -> str:
        return f"{self._prefix}{path}"

    async def get(self, path: str) -> SurveySnapshot | None:
        """Return the cached snapshot, or ``None`` on a miss."""
        try:
            raw = await self._client.get(self.key(path))
        except redis.RedisError as exc:
            raise CacheError(f"cache read failed for {path}") from exc
        if raw is None:
            return None
        try:
            return SurveySnapshot.model_validate_json(raw)
        except ValidationError as exc:
            raise CacheError(f"cached snapshot for {path} is unreadable") from exc

    async def set(self, snapshot: SurveySnapshot) -> None:
        payload = snapshot.model_dump_json(by_alias=True)
        try:
            await self._client.set(self.key(snapshot.path), payload, ex=self._ttl)
        except redis.RedisError as exc:
            raise CacheError(f"cache write failed for {snapshot.path}") from exc

    async def delete(self, path: str) -> None:
        try:
            await self._client.delete(self.key(path))
        except redis.RedisError as exc:
            raise CacheError(f"cache delete failed for {path}") from exc


class SingleFlight:
    """Per-key de-duplication of concurrent coroutine calls.

    The first caller for a key starts ``fn()`` as a task; callers arriving
    while it runs await the same task and receive the same result or
    exception.  Each caller awaits through ``asyncio.shield``, so cancelling
    one caller leaves the load running for the others.  The key is released
    as soon as the task finishes, so later calls start a fresh load.
    """

    def __init__(self) -> None:
        self._calls: dict[str, asyncio.Task[Any]] = {}

    def in_flight(self, key: str) -> bool:
        return key in self._calls

    async def do(self, key: str, fn: Callable[[], Awaitable[T]]) -> T:
        task = self._calls.get(key)
        if task is None:
            task = asyncio.ensure_future(fn())
            self._calls[key] = task
            task.add_done_callback(lambda done: self._release(key, done))
        else:
            logger.debug("Joining in-flight load for %s", key)
        return await asyncio.shield(task)

    def _release(self, key: str, task: asyncio.Task[Any]) -> None:
        if self._calls.get(key) is task:
            del self._calls[key]
        # Mark the outcome as retrieved even if every waiter was cancelled
        if not task.cancelled():
            task.exception()
