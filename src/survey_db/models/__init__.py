"""ORM models for survey_db."""

from survey_db.models.base import Base
from survey_db.models.enums import SurveyStatus, SurveyType
from survey_db.models.result import SurveyResult
from survey_db.models.stats import SurveyStat
from survey_db.models.survey import Survey

__all__ = ["Base", "Survey", "SurveyResult", "SurveyStat", "SurveyStatus", "SurveyType"]
