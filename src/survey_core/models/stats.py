"""Stat counter keys and report models.

``StatKey`` is the (question_id, option_id) half of a counter's identity;
the survey id is supplied separately by whoever owns the survey row.  As a
``NamedTuple`` it sorts by question id, then option id, which is the lock
acquisition order used when incrementing.
"""

from typing import NamedTuple

from pydantic import BaseModel


class StatKey(NamedTuple):
    question_id: str
    option_id: str


class OptionStat(BaseModel):
    """Admin view of one counter.  Orphaned counters carry a placeholder text."""

    id: str
    text: str
    count: int
    deleted: bool = False


class QuestionStats(BaseModel):
    id: str
    title: str
    type: str
    options: list[OptionStat]


class StatsReport(BaseModel):
    """Admin stats for one survey."""

    submit_count: int
    questions: list[QuestionStats]


class VoteOptionStat(BaseModel):
    """Voter-facing count; ``rank`` is 0 unless the question shows ranks."""

    id: str
    count: int
    rank: int = 0


class VoteQuestionStats(BaseModel):
    id: str
    options: list[VoteOptionStat]
