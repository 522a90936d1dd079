"""Public model re-exports for survey_core.

Consumers should import from ``survey_core.models`` rather than reaching
into sub-modules directly.
"""

from survey_core.models.identity import AdminIdentity, AdminRole, UserIdentity, UserType
from survey_core.models.question import (
    Category,
    InputQuestion,
    NumberRange,
    Option,
    OptionQuestion,
    Question,
    TextRange,
    UploadQuestion,
)
from survey_core.models.schema import BannerConf, BaseConf, QuestionConf, SurveySchema, TitleConf
from survey_core.models.stats import (
    OptionStat,
    QuestionStats,
    StatKey,
    StatsReport,
    VoteOptionStat,
    VoteQuestionStats,
)
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
    SurveySnapshot,
)

__all__ = [
    # Identities
    "AdminIdentity",
    "AdminRole",
    "UserIdentity",
    "UserType",
    # Schema document
    "BannerConf",
    "BaseConf",
    "Category",
    "InputQuestion",
    "NumberRange",
    "Option",
    "OptionQuestion",
    "Question",
    "QuestionConf",
    "SurveySchema",
    "TextRange",
    "TitleConf",
    "UploadQuestion",
    # Stats
    "OptionStat",
    "QuestionStats",
    "StatKey",
    "StatsReport",
    "VoteOptionStat",
    "VoteQuestionStats",
    # Views
    "AdminSurveyDetail",
    "AnswerItem",
    "OthersKeyHeader",
    "ResultHeader",
    "ResultPage",
    "ResultRow",
    "SurveyDetail",
    "SurveyInfo",
    "SurveyPage",
    "SurveySnapshot",
]
