"""SurveyService — orchestrates schema authoring, submissions, and reads.

Every operation takes an ``AsyncSession`` from the caller and runs its
statements inside one ``transaction(db)`` unit, so each call either
commits completely or leaves no trace.  Cache invalidation runs after the
commit and never fails the operation.

Admin operations:
    create_survey, update_survey, set_status, delete_survey,
    get_survey, list_surveys, get_stats, list_results

User operations:
    get_detail   — cached snapshot + visible vote counts
    submit       — policy checks, validation, record + counters in one txn
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta
from typing import Any, Sequence
from zoneinfo import ZoneInfo

from pydantic import TypeAdapter, ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from survey_db.models.enums import SurveyStatus, SurveyType
from survey_db.models.survey import Survey
from survey_db.repository import ResultRepository, StatsRepository, SurveyRepository

from survey_core.constants import ANSWER_SEPARATOR, SURVEY_TIMEZONE
from survey_core.errors import (
    MissingCounterError,
    NotFound,
    PermissionDenied,
    SchemaInvalid,
    SerializationError,
    SubmitLimitExceeded,
    SurveyClosed,
    Unauthenticated,
    ValidationFailed,
)
from survey_core.models.identity import AdminIdentity, UserIdentity
from survey_core.models.question import OptionQuestion
from survey_core.models.schema import BaseConf, SurveySchema
from survey_core.models.stats import StatsReport
from survey_core.models.survey import (
    AdminSurveyDetail,
    AnswerItem,
    OthersKeyHeader,
    ResultHeader,
    ResultPage,
    ResultRow,
    SurveyDetail,
    SurveyInfo,
    SurveyPage,
)
from survey_core.normalizer import (
    check_category_compatibility,
    dump_schema,
    load_stored_schema,
    normalize_and_verify,
    parse_schema,
)
from survey_core.reader import SurveyReader
from survey_core.stats import (
    build_stats_report,
    build_vote_stats,
    needs_submission_check,
    seed_keys_for_create,
    seed_keys_for_update,
    visible_vote_questions,
)
from survey_core.transaction import transaction
from survey_core.validator import SubmissionValidator

logger = logging.getLogger(__name__)

# Wire format of SurveyResult.data
_ANSWERS = TypeAdapter(list[AnswerItem])


class SurveyService:
    """Admin and user operations over surveys.

    Args:
        reader: cache-aside snapshot reader used by ``get_detail`` and for
                post-commit invalidation
        timezone: zone for naive schema timestamps and the daily-limit
                  window; defaults to ``SURVEY_TIMEZONE``
    """

    def __init__(self, reader: SurveyReader, *, timezone: str = SURVEY_TIMEZONE) -> None:
        self._reader = reader
        self._tz = ZoneInfo(timezone)
        self._surveys = SurveyRepository()
        self._results = ResultRepository()
        self._stats = StatsRepository()
        self._validator = SubmissionValidator()

    # ==================================================================
    # Admin: authoring
    # ==================================================================

    async def create_survey(
        self,
        db: AsyncSession,
        *,
        admin: AdminIdentity,
        survey_type: SurveyType,
        schema: SurveySchema | dict[str, Any] | str,
    ) -> SurveyInfo:
        """Normalize ``schema`` and persist it as a new unpublished survey.

        The row and its seeded counters are written in one transaction.
        """
        normalized = self._prepare(schema)
        async with transaction(db):
            survey = await self._surveys.create(
                db,
                admin_id=admin.id,
                title=normalized.title,
                survey_type=survey_type,
                path=uuid.uuid4().hex,
                schema=dump_schema(normalized),
            )
            await self._stats.seed(db, survey.id, seed_keys_for_create(normalized))
        logger.info(
            "Survey created: id=%d path=%s admin=%d", survey.id, survey.path, admin.id,
        )
        return self._to_info(survey)

    async def update_survey(
        self,
        db: AsyncSession,
        *,
        admin: AdminIdentity,
        survey_id: int,
        schema: SurveySchema | dict[str, Any] | str,
    ) -> SurveyInfo:
        """Replace a survey's schema wholesale.

        Questions may not change category.  Options introduced by the new
        revision get fresh counters; counters of removed options are kept.
        """
        normalized = self._prepare(schema)
        async with transaction(db):
            survey = await self._load_owned(db, admin, survey_id)
            previous = load_stored_schema(survey.schema)
            check_category_compatibility(previous, normalized)
            await self._stats.seed(db, survey.id, seed_keys_for_update(previous, normalized))
            await self._surveys.update_schema(
                db, survey, title=normalized.title, schema=dump_schema(normalized),
            )
        logger.info("Survey updated: id=%d admin=%d", survey.id, admin.id)
        await self._reader.invalidate(survey.path)
        return self._to_info(survey)

    async def set_status(
        self,
        db: AsyncSession,
        *,
        admin: AdminIdentity,
        survey_id: int,
        status: SurveyStatus,
    ) -> SurveyInfo:
        async with transaction(db):
            survey = await self._load_owned(db, admin, survey_id)
            await self._surveys.update_status(db, survey, status)
        logger.info("Survey status set: id=%d status=%s", survey.id, status.value)
        await self._reader.invalidate(survey.path)
        return self._to_info(survey)

    async def delete_survey(
        self, db: AsyncSession, *, admin: AdminIdentity, survey_id: int
    ) -> None:
        """Delete the survey row.  Answer records and counters are retained."""
        async with transaction(db):
            survey = await self._load_owned(db, admin, survey_id)
            path = survey.path
            await self._surveys.delete(db, survey)
        logger.info("Survey deleted: id=%d admin=%d", survey_id, admin.id)
        await self._reader.invalidate(path)

    # ==================================================================
    # Admin: reads
    # ==================================================================

    async def get_survey(
        self, db: AsyncSession, *, admin: AdminIdentity, survey_id: int
    ) -> AdminSurveyDetail:
        async with transaction(db):
            survey = await self._load_owned(db, admin, survey_id)
        return AdminSurveyDetail(
            **self._to_info(survey).model_dump(),
            schema=load_stored_schema(survey.schema),
        )

    async def list_surveys(
        self,
        db: AsyncSession,
        *,
        admin: AdminIdentity,
        survey_type: SurveyType | None = None,
        status: SurveyStatus | None = None,
        keyword: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> SurveyPage:
        """List surveys newest first.  Super admins see every admin's surveys."""
        async with transaction(db):
            rows, total = await self._surveys.list_page(
                db,
                admin_id=None if admin.is_super else admin.id,
                survey_type=survey_type,
                status=status,
                keyword=keyword,
                limit=limit,
                offset=offset,
            )
        return SurveyPage(items=[self._to_info(row) for row in rows], total=total)

    async def get_stats(
        self, db: AsyncSession, *, admin: AdminIdentity, survey_id: int
    ) -> StatsReport:
        """Per-option counts for every option question, orphans included."""
        async with transaction(db):
            survey = await self._load_owned(db, admin, survey_id)
            schema = load_stored_schema(survey.schema)
            counters = await self._stats.list_by_survey(db, survey.id)
            submit_count = await self._results.count_by_survey(db, survey.id)
        return build_stats_report(schema, counters, submit_count)

    async def list_results(
        self,
        db: AsyncSession,
        *,
        admin: AdminIdentity,
        survey_id: int,
        limit: int = 20,
        offset: int = 0,
    ) -> ResultPage:
        """Page through answer records, newest first.

        Rows follow the current schema's question order.  Option answers
        are rendered as option texts; ids the schema no longer knows are
        shown as-is.  Each option question is followed by the companion
        answers of its ``others`` options.
        """
        async with transaction(db):
            survey = await self._load_owned(db, admin, survey_id)
            schema = load_stored_schema(survey.schema)
            records, total = await self._results.list_page(
                db, survey.id, limit=limit, offset=offset,
            )

        headers = [
            ResultHeader(
                id=item.id,
                title=item.title,
                type=item.type,
                others_keys=[
                    OthersKeyHeader(key=opt.others_key, option=opt.text)
                    for opt in item.options
                    if opt.others
                ] if isinstance(item, OptionQuestion) else [],
            )
            for item in schema.items
        ]
        rows = [
            ResultRow(
                id=record.id,
                username=record.username,
                created_at=record.created_at,
                answers=self._render_answers(schema, record.id, record.data),
            )
            for record in records
        ]
        return ResultPage(headers=headers, rows=rows, total=total)

    # ==================================================================
    # User operations
    # ==================================================================

    async def get_detail(
        self,
        db: AsyncSession,
        *,
        path: str,
        identity: UserIdentity | None = None,
    ) -> SurveyDetail:
        """Respondent view of a published survey, with visible vote counts.

        Raises:
            NotFound: no survey has this path, or it is not published.
        """
        snapshot = await self._reader.get_snapshot(path)
        if not snapshot.is_published:
            raise NotFound(f"survey not found: {path}")
        schema = snapshot.schema_

        stats = []
        async with transaction(db):
            has_submitted = False
            if identity is not None and needs_submission_check(schema):
                count = await self._results.count_by_user(db, snapshot.id, identity.username)
                has_submitted = count > 0
            if visible_vote_questions(schema, has_submitted):
                counters = await self._stats.list_by_survey(db, snapshot.id)
                stats = build_vote_stats(schema, counters, has_submitted)

        return SurveyDetail(id=snapshot.id, type=snapshot.type, schema=schema, stats=stats)

    async def submit(
        self,
        db: AsyncSession,
        *,
        survey_id: int,
        answers: Sequence[AnswerItem],
        identity: UserIdentity | None = None,
        now: datetime | None = None,
    ) -> int:
        """Validate and store one submission; returns the answer record id.

        The answer record and every counter increment commit together.
        Increments are applied in ascending (question_id, option_id) order.

        Raises:
            NotFound: the survey does not exist or is not published.
            SurveyClosed: ``now`` is outside the availability window.
            Unauthenticated: login is required and ``identity`` is None.
            PermissionDenied: the user type is not allowed.
            SubmitLimitExceeded: the total or daily limit is reached.
            ValidationFailed: the answers violate the schema.
            MissingCounterError: a counter row was never seeded.
        """
        now = now or datetime.now(self._tz)
        answer_map = self._answer_map(answers)

        async with transaction(db):
            survey = await self._surveys.get_by_id(db, survey_id)
            if survey is None or survey.status != SurveyStatus.PUBLISHED:
                raise NotFound(f"survey not found: {survey_id}")
            schema = load_stored_schema(survey.schema)

            self._check_window(schema.base_conf, now)
            username = await self._check_policy(db, survey.id, schema.base_conf, identity, now)
            increments = self._validator.validate(schema, answer_map)

            record = await self._results.create(
                db,
                survey_id=survey.id,
                username=username,
                data=_ANSWERS.dump_json(list(answers)).decode(),
            )
            updated = await self._stats.batch_increment(db, survey.id, increments)
            if updated != len(increments):
                logger.error(
                    "Counter rows missing: survey=%d expected=%d updated=%d",
                    survey.id, len(increments), updated,
                )
                raise MissingCounterError(
                    f"survey {survey.id}: {len(increments) - updated} counter(s) not seeded"
                )

        logger.info(
            "Submission stored: survey=%d record=%d increments=%d",
            survey.id, record.id, len(increments),
        )
        return record.id

    # ==================================================================
    # Internal helpers
    # ==================================================================

    def _prepare(self, schema: SurveySchema | dict[str, Any] | str) -> SurveySchema:
        try:
            if not isinstance(schema, SurveySchema):
                schema = parse_schema(schema)
            return normalize_and_verify(schema)
        except SchemaInvalid as exc:
            logger.warning("Schema rejected: %s", exc)
            raise

    async def _load_owned(
        self, db: AsyncSession, admin: AdminIdentity, survey_id: int
    ) -> Survey:
        survey = await self._surveys.get_by_id(db, survey_id)
        if survey is None:
            raise NotFound(f"survey not found: {survey_id}")
        if not admin.can_manage(survey.admin_id):
            logger.warning(
                "Admin %d denied access to survey %d owned by %d",
                admin.id, survey.id, survey.admin_id,
            )
            raise PermissionDenied(f"survey {survey_id} belongs to another admin")
        return survey

    @staticmethod
    def _answer_map(answers: Sequence[AnswerItem]) -> dict[str, str]:
        answer_map: dict[str, str] = {}
        for item in answers:
            if item.question_id in answer_map:
                raise ValidationFailed(item.question_id, "duplicate answer")
            answer_map[item.question_id] = item.answer
        return answer_map

    def _localize(self, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=self._tz)
        return value

    def _check_window(self, conf: BaseConf, now: datetime) -> None:
        now = self._localize(now)
        if now < self._localize(conf.begin_time) or now > self._localize(conf.end_time):
            raise SurveyClosed("survey is not open for submissions")

    async def _check_policy(
        self,
        db: AsyncSession,
        survey_id: int,
        conf: BaseConf,
        identity: UserIdentity | None,
        now: datetime,
    ) -> str | None:
        """Apply the login policy; returns the username to record."""
        if not conf.is_login_required:
            return None
        if identity is None:
            raise Unauthenticated("login required")
        if conf.allowed_user_type and identity.user_type not in conf.allowed_user_type:
            raise PermissionDenied(f"user type not allowed: {identity.user_type.value}")

        if conf.total_limit:
            total = await self._results.count_by_user(db, survey_id, identity.username)
            if total >= conf.total_limit:
                raise SubmitLimitExceeded("total submission limit reached")
        if conf.daily_limit:
            local = self._localize(now).astimezone(self._tz)
            day_start = local.replace(hour=0, minute=0, second=0, microsecond=0)
            today = await self._results.count_by_user(
                db, survey_id, identity.username,
                since=day_start, until=day_start + timedelta(days=1),
            )
            if today >= conf.daily_limit:
                raise SubmitLimitExceeded("daily submission limit reached")
        return identity.username

    def _render_answers(
        self, schema: SurveySchema, record_id: int, data: str
    ) -> list[AnswerItem]:
        try:
            stored = _ANSWERS.validate_json(data)
        except ValidationError as exc:
            logger.error("Answer record %d is corrupt: %s", record_id, exc)
            raise SerializationError(f"answer record {record_id} is corrupt") from exc
        answers = {item.question_id: item.answer for item in stored}

        rendered: list[AnswerItem] = []
        for item in schema.items:
            value = answers.get(item.id, "")
            if not isinstance(item, OptionQuestion):
                rendered.append(AnswerItem(question_id=item.id, answer=value))
                continue
            if value:
                texts = {opt.id: opt.text for opt in item.options}
                value = ANSWER_SEPARATOR.join(
                    texts.get(option_id, option_id)
                    for option_id in value.split(ANSWER_SEPARATOR)
                )
            rendered.append(AnswerItem(question_id=item.id, answer=value))
            rendered.extend(
                AnswerItem(question_id=opt.others_key, answer=answers.get(opt.others_key, ""))
                for opt in item.options
                if opt.others
            )
        return rendered

    @staticmethod
    def _to_info(survey: Survey) -> SurveyInfo:
        return SurveyInfo(
            id=survey.id,
            admin_id=survey.admin_id,
            title=survey.title,
            type=survey.type,
            status=survey.status,
            path=survey.path,
            created_at=survey.created_at,
            updated_at=survey.updated_at,
        )
