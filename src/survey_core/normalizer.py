"""Schema parsing, normalization, and update compatibility checks.

An admin-authored schema goes through two stages before it is persisted:

  1. ``parse_schema`` — pydantic parsing.  Enforces field types, enums,
     required fields and simple bounds, and drops fields that do not belong
     to a question's category.
  2. ``normalize_and_verify`` — cross-field rules.  Clears fields that are
     irrelevant to the question's sub-type, fills defaults, and rejects
     uniqueness, regex and range violations.

Both raise :class:`SchemaInvalid` with a path such as
``question_conf.items[q1].options[o2].others_key``.  Normalization is
idempotent: normalizing a normalized schema returns an equal schema.

On update, ``check_category_compatibility`` additionally rejects any
question whose category (input / option / upload) changed.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from pydantic import ValidationError

from survey_core.constants import DEFAULT_LAYOUT
from survey_core.errors import SchemaInvalid, SerializationError
from survey_core.models.question import (
    InputQuestion,
    OptionQuestion,
    Question,
    UploadQuestion,
)
from survey_core.models.schema import BaseConf, SurveySchema

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Parsing / serialization
# ------------------------------------------------------------------

def _format_loc(loc: tuple[Any, ...]) -> str:
    """Render a pydantic error location as ``a.b[0].c``.

    Discriminated-union errors insert the tag value into the location
    (``items.0.radio.options``); the tag is kept as a qualifier.
    """
    path = ""
    for part in loc:
        if isinstance(part, int):
            path += f"[{part}]"
        else:
            path += f".{part}" if path else str(part)
    return path


def parse_schema(raw: str | bytes | dict[str, Any]) -> SurveySchema:
    """Parse an admin-supplied schema document.

    Raises:
        SchemaInvalid: if the document is not valid JSON or does not fit the
            schema model.  Only the first pydantic error is reported.
    """
    try:
        if isinstance(raw, dict):
            return SurveySchema.model_validate(raw)
        return SurveySchema.model_validate_json(raw)
    except ValidationError as exc:
        first = exc.errors()[0]
        raise SchemaInvalid(_format_loc(first["loc"]), first["msg"]) from exc


def load_stored_schema(text: str) -> SurveySchema:
    """Parse a schema read back from storage.

    Stored schemas were normalized before they were written, so a failure
    here means the stored payload is corrupt, not that the admin erred.
    """
    try:
        return SurveySchema.model_validate_json(text)
    except ValidationError as exc:
        logger.error("Stored survey schema is corrupt: %s", exc)
        raise SerializationError("stored survey schema is corrupt") from exc


def dump_schema(schema: SurveySchema) -> str:
    """Serialize a schema to the JSON text stored in ``surveys.schema``."""
    return schema.model_dump_json()


def schema_to_dict(schema: SurveySchema) -> dict[str, Any]:
    """JSON-compatible dict form, e.g. for printing or YAML export."""
    return json.loads(dump_schema(schema))


# ------------------------------------------------------------------
# Normalization
# ------------------------------------------------------------------

def normalize_and_verify(schema: SurveySchema) -> SurveySchema:
    """Return a normalized copy of ``schema`` or raise :class:`SchemaInvalid`.

    The input schema is not modified.
    """
    normalized = schema.model_copy(deep=True)
    _normalize_base_conf(normalized.base_conf)

    question_ids: set[str] = set()
    for item in normalized.question_conf.items:
        if item.id in question_ids:
            raise SchemaInvalid(
                f"question_conf.items[{item.id}]", f"duplicate question id: {item.id}",
            )
        question_ids.add(item.id)

    # Others keys live in the same answer namespace as question ids, so
    # they are checked against every question, not just their own.
    others_keys: set[str] = set()
    for item in normalized.question_conf.items:
        path = f"question_conf.items[{item.id}]"
        _normalize_question(item, path)
        if isinstance(item, OptionQuestion):
            for opt in item.options:
                if not opt.others:
                    continue
                key_path = f"{path}.options[{opt.id}].others_key"
                if opt.others_key in question_ids:
                    raise SchemaInvalid(
                        key_path, f"collides with question id: {opt.others_key}",
                    )
                if opt.others_key in others_keys:
                    raise SchemaInvalid(
                        key_path, f"duplicate others key: {opt.others_key}",
                    )
                others_keys.add(opt.others_key)

    return normalized


def _normalize_base_conf(conf: BaseConf) -> None:
    path = "base_conf"
    try:
        in_order = conf.end_time > conf.begin_time
    except TypeError:
        # One timestamp carries a timezone and the other does not
        raise SchemaInvalid(
            f"{path}.end_time", "begin_time and end_time must share a timezone form",
        ) from None
    if not in_order:
        raise SchemaInvalid(f"{path}.end_time", "end_time must be after begin_time")

    if not conf.is_login_required:
        conf.daily_limit = 0
        conf.total_limit = 0
        conf.allowed_user_type = []
        return

    if conf.total_limit and conf.daily_limit and conf.total_limit < conf.daily_limit:
        raise SchemaInvalid(
            f"{path}.total_limit", "total_limit must not be less than daily_limit",
        )
    if len(set(conf.allowed_user_type)) != len(conf.allowed_user_type):
        raise SchemaInvalid(f"{path}.allowed_user_type", "duplicate user type")


def _normalize_question(item: Question, path: str) -> None:
    if isinstance(item, InputQuestion):
        _normalize_input(item, path)
    elif isinstance(item, OptionQuestion):
        _normalize_option(item, path)
    elif isinstance(item, UploadQuestion):
        _normalize_upload(item, path)
    else:
        raise TypeError(f"unhandled question class: {type(item).__name__}")


def _normalize_input(item: InputQuestion, path: str) -> None:
    if item.valid != "*":
        item.text_range = None
        item.regex = ""
    if item.valid != "n":
        item.number_range = None

    if item.text_range is not None and item.text_range.min > item.text_range.max:
        raise SchemaInvalid(f"{path}.text_range", "min must not exceed max")
    if item.number_range is not None and item.number_range.min > item.number_range.max:
        raise SchemaInvalid(f"{path}.number_range", "min must not exceed max")

    if item.regex:
        try:
            re.compile(item.regex)
        except re.error as exc:
            raise SchemaInvalid(f"{path}.regex", f"invalid regex pattern: {exc}") from exc


def _normalize_option(item: OptionQuestion, path: str) -> None:
    if item.is_multi_select:
        # max_num == 0 leaves the selection count unbounded above
        if item.max_num > 0 and item.min_num > item.max_num:
            raise SchemaInvalid(f"{path}.min_num", "min_num must not exceed max_num")
        if item.min_num > len(item.options):
            raise SchemaInvalid(
                f"{path}.min_num", "min_num cannot be greater than the number of options",
            )
        if item.max_num > len(item.options):
            raise SchemaInvalid(
                f"{path}.max_num", "max_num cannot be greater than the number of options",
            )
    else:
        item.min_num = 0
        item.max_num = 0

    if not item.is_vote:
        item.show_stats = False
        item.show_stats_after_submit = False
        item.show_rank = False

    if item.layout is None:
        item.layout = DEFAULT_LAYOUT

    # Option ids and others keys share one namespace within the question
    seen: set[str] = set()
    for opt in item.options:
        opt_path = f"{path}.options[{opt.id}]"
        if opt.id in seen:
            raise SchemaInvalid(opt_path, f"duplicate option id: {opt.id}")
        seen.add(opt.id)

        if not opt.others:
            opt.others_key = ""
            opt.must_others = False
            opt.placeholder = ""
            continue
        if not opt.others_key:
            raise SchemaInvalid(f"{opt_path}.others_key", "required when others is set")
        if opt.others_key in seen:
            raise SchemaInvalid(
                f"{opt_path}.others_key", f"collides with option id: {opt.others_key}",
            )
        seen.add(opt.others_key)


def _normalize_upload(item: UploadQuestion, path: str) -> None:
    if item.upload_type == "image":
        item.allowed_file_type = []
        return

    extensions = [ext.strip().lstrip(".").lower() for ext in item.allowed_file_type]
    if any(not ext for ext in extensions):
        raise SchemaInvalid(f"{path}.allowed_file_type", "empty file extension")
    if len(set(extensions)) != len(extensions):
        raise SchemaInvalid(f"{path}.allowed_file_type", "duplicate file extension")
    item.allowed_file_type = extensions


# ------------------------------------------------------------------
# Update compatibility
# ------------------------------------------------------------------

def check_category_compatibility(old: SurveySchema, new: SurveySchema) -> None:
    """Reject updates that move an existing question to another category.

    Changes within a category (``radio`` -> ``checkbox``, ``text`` ->
    ``textarea``) are allowed.  Applies whether or not the question has
    received answers.
    """
    old_items = {item.id: item for item in old.question_conf.items}
    for item in new.question_conf.items:
        previous = old_items.get(item.id)
        if previous is None:
            continue
        if previous.category != item.category:
            raise SchemaInvalid(
                f"question_conf.items[{item.id}].type",
                f"category change not allowed: {previous.category.value} "
                f"({previous.type}) -> {item.category.value} ({item.type})",
            )
