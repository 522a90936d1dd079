"""Async repositories for surveys, answer records, and stat counters.

All public methods accept an ``AsyncSession`` so the caller controls
transaction boundaries: methods ``flush()`` but never ``commit()``.

The repositories deliberately avoid business-logic validation — that
belongs in the SDK layer.  Structural invariants (unique counters, unique
paths) are enforced by DB constraints.
"""

from datetime import datetime
from typing import Iterable, Sequence

from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from survey_db.models.enums import SurveyStatus, SurveyType
from survey_db.models.result import SurveyResult
from survey_db.models.stats import SurveyStat
from survey_db.models.survey import Survey


class SurveyRepository:
    """Read/write operations on the ``surveys`` table."""

    async def create(
        self,
        db: AsyncSession,
        *,
        admin_id: int,
        title: str,
        survey_type: SurveyType,
        path: str,
        schema: str,
    ) -> Survey:
        """Insert a new, unpublished survey and return it with its id populated."""
        survey = Survey(
            admin_id=admin_id,
            title=title,
            type=survey_type,
            path=path,
            schema=schema,
            status=SurveyStatus.UNPUBLISHED,
        )
        db.add(survey)
        await db.flush()  # Populate the autoincrement id
        return survey

    async def get_by_id(self, db: AsyncSession, survey_id: int) -> Survey | None:
        return await db.get(Survey, survey_id)

    async def get_by_path(self, db: AsyncSession, path: str) -> Survey | None:
        stmt = select(Survey).where(Survey.path == path)
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def list_page(
        self,
        db: AsyncSession,
        *,
        admin_id: int | None = None,
        survey_type: SurveyType | None = None,
        status: SurveyStatus | None = None,
        keyword: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Survey], int]:
        """List surveys newest first, with the total count for the same filters.

        ``admin_id=None`` lists every admin's surveys.
        """
        conditions = []
        if admin_id is not None:
            conditions.append(Survey.admin_id == admin_id)
        if survey_type is not None:
            conditions.append(Survey.type == survey_type)
        if status is not None:
            conditions.append(Survey.status == status)
        if keyword:
            conditions.append(Survey.title.contains(keyword, autoescape=True))

        stmt = (
            select(Survey)
            .where(*conditions)
            .order_by(Survey.id.desc())
            .limit(limit)
            .offset(offset)
        )
        rows = list((await db.execute(stmt)).scalars().all())

        count_stmt = select(func.count()).select_from(Survey).where(*conditions)
        total = (await db.execute(count_stmt)).scalar_one()
        return rows, total

    async def update_schema(
        self, db: AsyncSession, survey: Survey, *, title: str, schema: str
    ) -> Survey:
        """Replace the schema document wholesale."""
        survey.title = title
        survey.schema = schema
        await db.flush()
        return survey

    async def update_status(
        self, db: AsyncSession, survey: Survey, status: SurveyStatus
    ) -> Survey:
        survey.status = status
        await db.flush()
        return survey

    async def delete(self, db: AsyncSession, survey: Survey) -> None:
        """Delete the survey row.  Its answer records and counters are kept."""
        await db.delete(survey)
        await db.flush()


class ResultRepository:
    """Insert-only access to the ``survey_results`` table."""

    async def create(
        self,
        db: AsyncSession,
        *,
        survey_id: int,
        username: str | None,
        data: str,
    ) -> SurveyResult:
        record = SurveyResult(survey_id=survey_id, username=username, data=data)
        db.add(record)
        await db.flush()
        return record

    async def count_by_survey(self, db: AsyncSession, survey_id: int) -> int:
        stmt = select(func.count()).select_from(SurveyResult).where(
            SurveyResult.survey_id == survey_id,
        )
        return (await db.execute(stmt)).scalar_one()

    async def count_by_user(
        self,
        db: AsyncSession,
        survey_id: int,
        username: str,
        *,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> int:
        """Count a user's submissions, optionally within ``[since, until)``."""
        stmt = select(func.count()).select_from(SurveyResult).where(
            SurveyResult.survey_id == survey_id,
            SurveyResult.username == username,
        )
        if since is not None:
            stmt = stmt.where(SurveyResult.created_at >= since)
        if until is not None:
            stmt = stmt.where(SurveyResult.created_at < until)
        return (await db.execute(stmt)).scalar_one()

    async def list_page(
        self,
        db: AsyncSession,
        survey_id: int,
        *,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[SurveyResult], int]:
        """List answer records newest first, with the survey's total count."""
        stmt = (
            select(SurveyResult)
            .where(SurveyResult.survey_id == survey_id)
            .order_by(SurveyResult.id.desc())
            .limit(limit)
            .offset(offset)
        )
        rows = list((await db.execute(stmt)).scalars().all())
        total = await self.count_by_survey(db, survey_id)
        return rows, total


class StatsRepository:
    """Counter rows in ``survey_stats``: seeding, increments, and reads."""

    async def seed(
        self,
        db: AsyncSession,
        survey_id: int,
        keys: Iterable[tuple[str, str]],
    ) -> None:
        """Insert zero-valued counters for ``(question_id, option_id)`` keys.

        Existing rows are left untouched, so an option that returns after
        being removed keeps counting from its orphaned value.
        """
        values = [
            {"survey_id": survey_id, "question_id": q, "option_id": o, "count": 0}
            for q, o in keys
        ]
        if not values:
            return
        stmt = pg_insert(SurveyStat).values(values).on_conflict_do_nothing(
            constraint="uq_survey_question_option",
        )
        await db.execute(stmt)

    async def increment(
        self, db: AsyncSession, survey_id: int, question_id: str, option_id: str
    ) -> int:
        """Add one to a single counter; returns the number of rows updated.

        The UPDATE takes the row lock, held until the transaction ends.
        """
        stmt = (
            update(SurveyStat)
            .where(
                SurveyStat.survey_id == survey_id,
                SurveyStat.question_id == question_id,
                SurveyStat.option_id == option_id,
            )
            .values(count=SurveyStat.count + 1)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        return result.rowcount

    async def batch_increment(
        self,
        db: AsyncSession,
        survey_id: int,
        keys: Sequence[tuple[str, str]],
    ) -> int:
        """Increment each key in the given order; returns total rows updated.

        Row locks are acquired in iteration order, so callers must pass
        keys already sorted.  A return value short of ``len(keys)`` means
        some counter was never seeded.
        """
        updated = 0
        for question_id, option_id in keys:
            updated += await self.increment(db, survey_id, question_id, option_id)
        return updated

    async def list_by_survey(
        self, db: AsyncSession, survey_id: int
    ) -> dict[tuple[str, str], int]:
        """Return every counter of a survey keyed by ``(question_id, option_id)``."""
        stmt = select(
            SurveyStat.question_id, SurveyStat.option_id, SurveyStat.count,
        ).where(SurveyStat.survey_id == survey_id)
        result = await db.execute(stmt)
        return {(q, o): c for q, o, c in result.all()}
