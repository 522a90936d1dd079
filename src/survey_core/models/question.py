"""Question item models for survey schemas.

Each question ``type`` maps to a UI component and belongs to exactly one
*category*, which drives normalization and validation dispatch:

  input (free-form answers):
    - text: single-line input
    - textarea: multi-line input

  option (pick from a list, counted in stat counters):
    - radio: single select
    - checkbox: multi select with min/max selection counts
    - vote-radio: single select whose counts may be shown to voters
    - vote-checkbox: multi select whose counts may be shown to voters

  upload (file references):
    - upload: ``upload_type`` is ``image`` or ``file``

The discriminated ``Question`` union uses ``type`` as its discriminator; each
category class accepts all of its type tags, so the category is carried by
the class rather than stored as data.  Fields irrelevant to a category are
simply absent from its class and dropped at parse time.
"""

from __future__ import annotations

import enum
from decimal import Decimal
from typing import Annotated, ClassVar, List, Literal, Optional, Union

from pydantic import BaseModel, Field


class Category(str, enum.Enum):
    """Semantic grouping of question types."""

    INPUT = "input"
    OPTION = "option"
    UPLOAD = "upload"


# --- Base question type ---

class BaseQuestion(BaseModel):
    """Fields shared by all question types."""

    category: ClassVar[Category]

    id: str = Field(min_length=1)
    title: str = Field(min_length=1)
    desc: str = ""
    is_required: bool = False


# --- Input category ---

class TextRange(BaseModel):
    """Inclusive bounds on answer length, counted in code points."""

    min: int = Field(0, ge=0)
    max: int = Field(ge=1)


class NumberRange(BaseModel):
    """Inclusive bounds on a numeric answer."""

    min: Decimal
    max: Decimal


class InputQuestion(BaseQuestion):
    """Free-form answer checked against a format tag.

    ``valid`` selects the format:
      - ``*``: any text, optionally bounded by ``text_range`` and ``regex``
      - ``n``: a decimal number, optionally bounded by ``number_range``
      - ``m``: mobile phone number
      - ``e``: email address
      - ``idcard``: national id card number
    """

    category: ClassVar[Category] = Category.INPUT

    type: Literal["text", "textarea"]
    placeholder: str = ""
    valid: Literal["*", "n", "m", "e", "idcard"] = "*"
    text_range: Optional[TextRange] = None
    regex: str = ""
    number_range: Optional[NumberRange] = None


# --- Option category ---

class Option(BaseModel):
    """A selectable option.

    When ``others`` is set, selecting the option invites a free-text
    companion answer submitted under the pseudo-question id ``others_key``.
    """

    id: str = Field(min_length=1)
    text: str = Field(min_length=1)
    others: bool = False
    others_key: str = ""
    must_others: bool = False
    placeholder: str = ""


class OptionQuestion(BaseQuestion):
    """Pick one or more options; every option owns a stat counter."""

    category: ClassVar[Category] = Category.OPTION

    type: Literal["radio", "checkbox", "vote-radio", "vote-checkbox"]
    options: List[Option] = Field(min_length=1)
    layout: Optional[Literal["vertical", "horizontal"]] = None
    # Selection count bounds; only meaningful for multi-select types
    min_num: int = Field(0, ge=0)
    max_num: int = Field(0, ge=0)
    # Vote display flags; only meaningful for vote-* types
    show_stats: bool = False
    show_stats_after_submit: bool = False
    show_rank: bool = False

    @property
    def is_multi_select(self) -> bool:
        return self.type in ("checkbox", "vote-checkbox")

    @property
    def is_vote(self) -> bool:
        return self.type in ("vote-radio", "vote-checkbox")

    def option_map(self) -> dict[str, Option]:
        return {opt.id: opt for opt in self.options}


# --- Upload category ---

class UploadQuestion(BaseQuestion):
    """One or more uploaded file references, comma-joined in the answer."""

    category: ClassVar[Category] = Category.UPLOAD

    type: Literal["upload"]
    upload_type: Literal["file", "image"]
    # Lower-case extensions without the dot; empty means unrestricted
    allowed_file_type: List[str] = Field(default_factory=list)
    # Megabytes; enforced by the upload service, carried here for the UI
    max_file_size: int = Field(ge=1, le=100)
    max_file_num: int = Field(ge=1, le=10)


# --- Discriminated union of all question types ---

Question = Annotated[
    Union[InputQuestion, OptionQuestion, UploadQuestion],
    Field(discriminator="type"),
]
