"""Pydantic models for the survey schema document.

A ``SurveySchema`` is the complete, versioned definition of one survey:

    SurveySchema
    ├── version       semantic version string
    ├── base_conf     availability window + login / eligibility / limit policy
    ├── question_conf ordered question items (see ``models.question``)
    └── banner_conf   title metadata shown above the form

The schema is persisted as JSON text and replaced wholesale on update.
Field-level rules live here; cross-field rules (ordering, uniqueness,
clearing) live in ``survey_core.normalizer``.
"""

from datetime import datetime
from typing import List

from pydantic import BaseModel, Field

from survey_core.constants import SEMVER_PATTERN
from survey_core.models.identity import UserType
from survey_core.models.question import OptionQuestion, Question


class BaseConf(BaseModel):
    """Availability window and submission policy.

    ``daily_limit``, ``total_limit`` and ``allowed_user_type`` only apply
    when ``is_login_required`` is set; 0 / empty means unrestricted.
    """

    begin_time: datetime
    end_time: datetime
    is_login_required: bool = False
    daily_limit: int = Field(0, ge=0)
    total_limit: int = Field(0, ge=0)
    allowed_user_type: List[UserType] = Field(default_factory=list)


class QuestionConf(BaseModel):
    items: List[Question] = Field(min_length=1)


class TitleConf(BaseModel):
    main_title: str = Field(min_length=1)
    sub_title: str = ""


class BannerConf(BaseModel):
    title_conf: TitleConf


class SurveySchema(BaseModel):
    """Top-level survey definition."""

    version: str = Field(pattern=SEMVER_PATTERN)
    base_conf: BaseConf
    question_conf: QuestionConf
    banner_conf: BannerConf

    @property
    def title(self) -> str:
        return self.banner_conf.title_conf.main_title

    @property
    def items(self) -> list[Question]:
        return self.question_conf.items

    def option_questions(self) -> list[OptionQuestion]:
        """Questions that own stat counters, in schema order."""
        return [q for q in self.items if isinstance(q, OptionQuestion)]
