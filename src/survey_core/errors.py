"""Exception taxonomy for the survey engine.

Every error raised by the SDK derives from :class:`SurveyError` and carries
the HTTP-equivalent ``status_code`` the server maps it to.  Messages may
contain internal identifiers; the server decides what reaches the client.

    SurveyError
    ├── SchemaInvalid         400  admin-supplied schema is defective
    ├── ValidationFailed      400  submitted answers violate the schema
    ├── SurveyClosed          400  submission outside the availability window
    ├── Unauthenticated       401  login required, no identity supplied
    ├── PermissionDenied      403  ownership / role / user-type mismatch
    ├── NotFound              404  survey absent or not visible
    ├── SubmitLimitExceeded   429  daily / total submission limit reached
    ├── StorageError          500  backing-store failure
    │   └── MissingCounterError    increment hit an unseeded counter row
    ├── SerializationError    500  corrupt stored schema / answer payload
    └── CacheError            ---  never surfaced, treated as a cache miss
"""

from __future__ import annotations


class SurveyError(Exception):
    """Base class for all survey engine errors."""

    status_code: int = 500


class SchemaInvalid(SurveyError):
    """A schema failed parsing or normalization.

    ``path`` locates the defect inside the schema, e.g.
    ``question_conf.items[q1].options[o2].others_key``.
    """

    status_code = 400

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}" if path else reason)


class ValidationFailed(SurveyError):
    """A submission was rejected; nothing from it is applied."""

    status_code = 400

    def __init__(self, question_id: str | None, reason: str) -> None:
        self.question_id = question_id
        self.reason = reason
        if question_id:
            super().__init__(f"question {question_id}: {reason}")
        else:
            super().__init__(reason)


class SurveyClosed(SurveyError):
    """Submission attempted outside ``begin_time``..``end_time``."""

    status_code = 400


class Unauthenticated(SurveyError):
    status_code = 401


class PermissionDenied(SurveyError):
    status_code = 403


class NotFound(SurveyError):
    status_code = 404


class SubmitLimitExceeded(SurveyError):
    status_code = 429


class StorageError(SurveyError):
    """The backing store failed.  Surfaced to the caller, never retried here."""

    status_code = 500


class MissingCounterError(StorageError):
    """An increment targeted a stat counter that was never seeded.

    Seeding guarantees every valid increment target exists, so this is a
    logic error and aborts the enclosing transaction.
    """


class SerializationError(SurveyError):
    status_code = 500


class CacheError(SurveyError):
    """Any cache client or payload failure.  Callers log it and fall through."""
