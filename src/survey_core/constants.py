"""Survey engine constants shared across the SDK.

These values are referenced by the normalizer, validator, and cache layer.
A few can be overridden via environment variables so that deployments can
tune caching without code changes.
"""

import os
import re

# Canonical layout for option questions that do not set one.
DEFAULT_LAYOUT = "vertical"

# Extensions accepted by ``upload_type=image`` questions.  Generic file
# uploads use the admin-configured ``allowed_file_type`` list instead.
IMAGE_EXTENSIONS: frozenset[str] = frozenset({"jpg", "jpeg", "png", "webp"})

# Separator used for multi-valued answers (checkbox selections, file lists).
ANSWER_SEPARATOR = ","

# Label template for counters whose option was removed from the schema.
DELETED_OPTION_LABEL = "deleted option ({option_id})"

# Cache-aside settings for survey snapshots.
# Overridable via SURVEY_CACHE_PREFIX / SURVEY_CACHE_TTL env vars.
SURVEY_CACHE_PREFIX = os.getenv("SURVEY_CACHE_PREFIX", "survey:")
SURVEY_CACHE_TTL = int(os.getenv("SURVEY_CACHE_TTL", "300"))

# Answer format patterns for input questions, keyed by ``valid`` tag.
# All are matched against the whole answer with ``fullmatch``.
MOBILE_PATTERN = re.compile(r"1[3-9]\d{9}", re.ASCII)
EMAIL_PATTERN = re.compile(r"\w+([-+.]\w+)*@\w+([-.]\w+)*\.\w+([-.]\w+)*", re.ASCII)
ID_CARD_PATTERN = re.compile(r"\d{15}|\d{18}|\d{17}[\dXx]", re.ASCII)

# Semantic version accepted in ``SurveySchema.version``.
SEMVER_PATTERN = (
    r"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    r"(?:-[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*)?"
    r"(?:\+[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*)?$"
)

# Timezone used for naive begin/end times and for the daily submission
# window boundary.  Overridable via SURVEY_TIMEZONE (an IANA zone name).
SURVEY_TIMEZONE = os.getenv("SURVEY_TIMEZONE", "UTC")
