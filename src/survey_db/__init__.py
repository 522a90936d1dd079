"""survey_db — PostgreSQL persistence layer for surveys.

This package provides the ORM models, async engine factory, and
repositories for surveys, answer records, and stat counters.  It is
consumed by the ``survey_core`` SDK and the FastAPI server.
"""

from survey_db.engine import get_engine, get_session_factory
from survey_db.models.enums import SurveyStatus, SurveyType
from survey_db.models.result import SurveyResult
from survey_db.models.stats import SurveyStat
from survey_db.models.survey import Survey
from survey_db.repository import ResultRepository, StatsRepository, SurveyRepository

__all__ = [
    "Survey",
    "SurveyResult",
    "SurveyStat",
    "SurveyStatus",
    "SurveyType",
    "get_engine",
    "get_session_factory",
    "ResultRepository",
    "StatsRepository",
    "SurveyRepository",
]
