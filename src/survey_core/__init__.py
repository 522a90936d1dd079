"""survey_core — survey schema validation and submission-processing SDK.

Public API:
    SurveyService        — admin and user operations over surveys
    SurveyReader         — cache-aside snapshot reads with single-flight loads
    SurveyCache          — Redis-backed snapshot cache
    SingleFlight         — per-key coalescing of concurrent loads
    SubmissionValidator  — checks one answer set against one schema

Schema handling:
    parse_schema                 — JSON / dict -> SurveySchema
    normalize_and_verify         — cross-field rules, clearing, defaults
    check_category_compatibility — update-time category guard

Errors:
    SurveyError and its subclasses, each carrying ``status_code``
"""

from survey_core.cache import SingleFlight, SurveyCache
from survey_core.errors import (
    CacheError,
    MissingCounterError,
    NotFound,
    PermissionDenied,
    SchemaInvalid,
    SerializationError,
    StorageError,
    SubmitLimitExceeded,
    SurveyClosed,
    SurveyError,
    Unauthenticated,
    ValidationFailed,
)
from survey_core.normalizer import (
    check_category_compatibility,
    normalize_and_verify,
    parse_schema,
)
from survey_core.reader import SurveyReader
from survey_core.service import SurveyService
from survey_core.validator import SubmissionValidator

__all__ = [
    # Orchestration
    "SurveyService",
    "SurveyReader",
    "SurveyCache",
    "SingleFlight",
    "SubmissionValidator",
    # Schema handling
    "parse_schema",
    "normalize_and_verify",
    "check_category_compatibility",
    # Errors
    "SurveyError",
    "SchemaInvalid",
    "ValidationFailed",
    "SurveyClosed",
    "Unauthenticated",
    "PermissionDenied",
    "NotFound",
    "SubmitLimitExceeded",
    "StorageError",
    "MissingCounterError",
    "SerializationError",
    "CacheError",
]
