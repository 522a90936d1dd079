"""Cache-aside read path for survey snapshots.

    get_snapshot(path)
      ├── cache hit ─────────────────────────────► snapshot
      ├── cache error → logged, treated as miss
      └── miss → SingleFlight(path)
                   └── own session → load row → build snapshot
                         └── cache.set (failure logged) ──► snapshot

Only the task that performed the load writes the cache; coalesced callers
share its result.  Invalidation happens on the write side after commit.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from survey_db.models.survey import Survey
from survey_db.repository import SurveyRepository

from survey_core.cache import SingleFlight, SurveyCache
from survey_core.errors import CacheError, NotFound, StorageError
from survey_core.models.survey import SurveySnapshot
from survey_core.normalizer import load_stored_schema

logger = logging.getLogger(__name__)


def snapshot_from_row(survey: Survey) -> SurveySnapshot:
    """Project a survey row into a snapshot, parsing its stored schema."""
    return SurveySnapshot(
        id=survey.id,
        admin_id=survey.admin_id,
        type=survey.type,
        status=survey.status,
        path=survey.path,
        title=survey.title,
        schema=load_stored_schema(survey.schema),
    )


class SurveyReader:
    """Serves survey snapshots by path, from cache when possible.

    Args:
        cache: snapshot cache, or ``None`` to always read through
        session_factory: opens the session used by coalesced loads; the
            load outlives any single caller, so it cannot borrow theirs
        surveys: repository used for the by-path lookup
    """

    def __init__(
        self,
        cache: SurveyCache | None,
        session_factory: async_sessionmaker[AsyncSession],
        surveys: SurveyRepository | None = None,
    ) -> None:
        self._cache = cache
        self._session_factory = session_factory
        self._surveys = surveys or SurveyRepository()
        self._flight = SingleFlight()

    async def get_snapshot(self, path: str) -> SurveySnapshot:
        """Return the snapshot for ``path``.

        Raises:
            NotFound: no survey has this path.
            StorageError: the backing store failed.
            SerializationError: the stored schema is corrupt.
        """
        if self._cache is not None:
            try:
                cached = await self._cache.get(path)
            except CacheError as exc:
                logger.error("Survey cache read failed, reading through: %s", exc)
                cached = None
            if cached is not None:
                return cached

        return await self._flight.do(path, lambda: self._load(path))

    async def invalidate(self, path: str) -> None:
        """Drop the cached snapshot.  Failures are logged, never raised."""
        if self._cache is None:
            return
        try:
            await self._cache.delete(path)
        except CacheError as exc:
            logger.error("Survey cache invalidation failed for %s: %s", path, exc)

    async def _load(self, path: str) -> SurveySnapshot:
        try:
            async with self._session_factory() as db:
                survey = await self._surveys.get_by_path(db, path)
        except SQLAlchemyError as exc:
            logger.error("Loading survey %s failed: %s", path, exc)
            raise StorageError("storage operation failed") from exc
        if survey is None:
            raise NotFound(f"survey not found: {path}")

        snapshot = snapshot_from_row(survey)
        if self._cache is not None:
            try:
                await self._cache.set(snapshot)
            except CacheError as exc:
                logger.error("Survey cache write failed for %s: %s", path, exc)
        return snapshot
