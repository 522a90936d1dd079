"""Survey and answer view models — the contract between service and callers.

These models are intentionally decoupled from the ORM models in
``survey_db`` so that API consumers never see database internals.

  - SurveySnapshot: the cached projection of a survey row (schema parsed)
  - SurveyDetail: what a respondent sees (schema + visible vote stats)
  - SurveyInfo / SurveyPage: admin list view
  - AnswerItem: one (question_id, answer) pair, also the stored wire format
  - ResultPage: admin view of stored answer records
"""

from datetime import datetime
from typing import List

from pydantic import BaseModel, ConfigDict, Field

from survey_db.models.enums import SurveyStatus, SurveyType

from survey_core.models.schema import SurveySchema
from survey_core.models.stats import VoteQuestionStats


class SurveySnapshot(BaseModel):
    """Everything needed to serve a survey read without the database.

    Stored in the cache as JSON under the survey's public ``path``.
    """

    id: int
    admin_id: int
    type: SurveyType
    status: SurveyStatus
    path: str
    title: str
    schema_: SurveySchema = Field(alias="schema")

    model_config = ConfigDict(populate_by_name=True)

    @property
    def is_published(self) -> bool:
        return self.status == SurveyStatus.PUBLISHED


class SurveyDetail(BaseModel):
    """Respondent view of a published survey."""

    id: int
    type: SurveyType
    schema_: SurveySchema = Field(alias="schema")
    stats: List[VoteQuestionStats]

    model_config = ConfigDict(populate_by_name=True)


class SurveyInfo(BaseModel):
    """Admin view of a survey row, without its schema."""

    id: int
    admin_id: int
    title: str
    type: SurveyType
    status: SurveyStatus
    path: str
    created_at: datetime
    updated_at: datetime


class AdminSurveyDetail(SurveyInfo):
    schema_: SurveySchema = Field(alias="schema")

    model_config = ConfigDict(populate_by_name=True)


class SurveyPage(BaseModel):
    items: List[SurveyInfo]
    total: int


class AnswerItem(BaseModel):
    """One answered question.  Multi-select answers are comma-joined."""

    question_id: str
    answer: str


class OthersKeyHeader(BaseModel):
    key: str
    option: str


class ResultHeader(BaseModel):
    """Column header for the admin result list."""

    id: str
    title: str
    type: str
    others_keys: List[OthersKeyHeader]


class ResultRow(BaseModel):
    id: int
    username: str | None
    created_at: datetime
    answers: List[AnswerItem]


class ResultPage(BaseModel):
    headers: List[ResultHeader]
    rows: List[ResultRow]
    total: int
