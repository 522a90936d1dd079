"""Database-level enumerations for surveys."""

import enum


class SurveyStatus(str, enum.Enum):
    """Publication state of a survey.

    Only published surveys are visible to respondents and accept
    submissions.  Admins may toggle between the two states freely.
    """

    UNPUBLISHED = "unpublished"
    PUBLISHED = "published"


class SurveyType(str, enum.Enum):
    """Survey flavour.  Votes usually expose option counts to respondents."""

    SURVEY = "survey"
    VOTE = "vote"
