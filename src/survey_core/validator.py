"""SubmissionValidator — checks one answer set against one schema.

The validator is pure: it touches neither storage nor cache.  Given a
normalized schema and a mapping ``question_id -> raw answer``, it either
returns the stat counter keys the submission increments (sorted into lock
order) or raises :class:`ValidationFailed`.  The decision is all-or-nothing.

Questions are checked in schema order:

  1. required check — a required question with a missing or blank answer
  2. unanswered optional questions are skipped
  3. category dispatch:
       option  — selection count, option existence, mandatory companions
       input   — format tag (number, mobile, email, id card, free text)
       upload  — file count and extension allow-list
"""

from __future__ import annotations

import logging
import re
from decimal import Decimal, InvalidOperation
from pathlib import PurePosixPath
from typing import Mapping

from survey_core.constants import (
    ANSWER_SEPARATOR,
    EMAIL_PATTERN,
    ID_CARD_PATTERN,
    IMAGE_EXTENSIONS,
    MOBILE_PATTERN,
)
from survey_core.errors import ValidationFailed
from survey_core.models.question import (
    InputQuestion,
    OptionQuestion,
    UploadQuestion,
)
from survey_core.models.schema import SurveySchema
from survey_core.models.stats import StatKey
from survey_core.stats import order_increments

logger = logging.getLogger(__name__)

# Input format tags checked by a fixed pattern, with the message used on mismatch.
_FORMAT_PATTERNS = {
    "m": (MOBILE_PATTERN, "invalid mobile number"),
    "e": (EMAIL_PATTERN, "invalid email address"),
    "idcard": (ID_CARD_PATTERN, "invalid id card number"),
}

# Plain decimal notation only; Decimal() alone would also take "1_000" and "NaN".
_NUMBER_PATTERN = re.compile(r"[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?", re.ASCII)


def _is_blank(value: str | None) -> bool:
    return value is None or not value.strip()


class SubmissionValidator:
    """Validates submissions and derives their stat increments."""

    def validate(
        self, schema: SurveySchema, answers: Mapping[str, str]
    ) -> list[StatKey]:
        """Validate ``answers`` against ``schema``.

        Args:
            schema: a normalized schema
            answers: raw answers keyed by question id or others key; absent
                     keys mean "unanswered"

        Returns:
            The counter keys to increment, sorted by (question_id, option_id).

        Raises:
            ValidationFailed: on the first violation found.
        """
        self._check_known_keys(schema, answers)

        increments: list[StatKey] = []
        for item in schema.question_conf.items:
            value = answers.get(item.id)
            if _is_blank(value):
                if item.is_required:
                    raise self._fail(item.id, "answer is required")
                continue

            if isinstance(item, OptionQuestion):
                increments.extend(self._check_option(item, value, answers))
            elif isinstance(item, InputQuestion):
                self._check_input(item, value)
            elif isinstance(item, UploadQuestion):
                self._check_upload(item, value)
            else:
                raise TypeError(f"unhandled question class: {type(item).__name__}")

        return order_increments(increments)

    # ------------------------------------------------------------------
    # Category checks
    # ------------------------------------------------------------------

    def _check_option(
        self, item: OptionQuestion, value: str, answers: Mapping[str, str]
    ) -> list[StatKey]:
        selected = value.split(ANSWER_SEPARATOR)

        if len(set(selected)) != len(selected):
            raise self._fail(item.id, "duplicate selection")
        if item.is_multi_select:
            if item.min_num > 0 and len(selected) < item.min_num:
                raise self._fail(item.id, f"at least {item.min_num} selections required")
            if item.max_num > 0 and len(selected) > item.max_num:
                raise self._fail(item.id, f"at most {item.max_num} selections allowed")
        elif len(selected) != 1:
            raise self._fail(item.id, "exactly one selection allowed")

        options = item.option_map()
        keys: list[StatKey] = []
        for option_id in selected:
            opt = options.get(option_id)
            if opt is None:
                raise self._fail(item.id, f"unknown option: {option_id}")
            if opt.others and opt.must_others and _is_blank(answers.get(opt.others_key)):
                raise self._fail(item.id, f"option {option_id} requires a companion answer")
            keys.append(StatKey(item.id, option_id))
        return keys

    def _check_input(self, item: InputQuestion, value: str) -> None:
        if item.valid == "n":
            text = value.strip()
            if not _NUMBER_PATTERN.fullmatch(text):
                raise self._fail(item.id, "not a number")
            try:
                number = Decimal(text)
            except InvalidOperation:
                raise self._fail(item.id, "not a number")
            rng = item.number_range
            if rng is not None and not (rng.min <= number <= rng.max):
                raise self._fail(item.id, f"number out of range [{rng.min}, {rng.max}]")
        elif item.valid in _FORMAT_PATTERNS:
            pattern, message = _FORMAT_PATTERNS[item.valid]
            if not pattern.fullmatch(value):
                raise self._fail(item.id, message)
        else:
            rng = item.text_range
            if rng is not None and not (rng.min <= len(value) <= rng.max):
                raise self._fail(item.id, f"text length out of range [{rng.min}, {rng.max}]")
            if item.regex and re.search(item.regex, value) is None:
                raise self._fail(item.id, "text does not match the required format")

    def _check_upload(self, item: UploadQuestion, value: str) -> None:
        files = value.split(ANSWER_SEPARATOR)
        if len(files) > item.max_file_num:
            raise self._fail(item.id, f"at most {item.max_file_num} files allowed")

        if item.upload_type == "image":
            allowed = IMAGE_EXTENSIONS
        else:
            allowed = frozenset(item.allowed_file_type)
        for ref in files:
            ext = PurePosixPath(ref.strip()).suffix.lstrip(".").lower()
            if allowed and ext not in allowed:
                raise self._fail(item.id, f"file type not allowed: {ext or '(none)'}")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _check_known_keys(self, schema: SurveySchema, answers: Mapping[str, str]) -> None:
        """Reject answers filed under ids the schema does not define."""
        known = {item.id for item in schema.question_conf.items}
        for item in schema.option_questions():
            known.update(opt.others_key for opt in item.options if opt.others)
        for key in answers:
            if key not in known:
                raise self._fail(key, "unknown question")

    def _fail(self, question_id: str, reason: str) -> ValidationFailed:
        logger.warning("Submission rejected: question=%s reason=%s", question_id, reason)
        return ValidationFailed(question_id, reason)
