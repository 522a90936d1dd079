"""Stat counter bookkeeping: seeding, increment ordering, and reports.

Every option of every option question owns one counter row keyed by
``(survey_id, question_id, option_id)``.  Counters are seeded at zero when
an option first appears and are never deleted; an option removed by a
later schema revision leaves an *orphaned* counter that the admin report
still lists.

Submissions increment counters in ascending ``(question_id, option_id)``
order so that concurrent transactions always take row locks in the same
order and cannot deadlock each other.
"""

from __future__ import annotations

from typing import Iterable, Mapping

from survey_core.constants import DELETED_OPTION_LABEL
from survey_core.models.schema import SurveySchema
from survey_core.models.stats import (
    OptionStat,
    QuestionStats,
    StatKey,
    StatsReport,
    VoteOptionStat,
    VoteQuestionStats,
)

# (question_id, option_id) -> count, as returned by StatsRepository.list_by_survey
Counters = Mapping[tuple[str, str], int]


# ------------------------------------------------------------------
# Seeding / ordering
# ------------------------------------------------------------------

def seed_keys_for_create(schema: SurveySchema) -> list[StatKey]:
    """One counter key per option of every option question."""
    return [
        StatKey(item.id, opt.id)
        for item in schema.option_questions()
        for opt in item.options
    ]


def seed_keys_for_update(old: SurveySchema, new: SurveySchema) -> list[StatKey]:
    """Counter keys introduced by ``new`` relative to ``old``.

    A question absent from ``old`` seeds all of its options; an existing
    question seeds only the options ``old`` did not have.  Keys for removed
    options are not returned: their rows are kept as orphans.
    """
    old_options = {
        item.id: {opt.id for opt in item.options} for item in old.option_questions()
    }
    keys: list[StatKey] = []
    for item in new.option_questions():
        known = old_options.get(item.id, set())
        keys.extend(StatKey(item.id, opt.id) for opt in item.options if opt.id not in known)
    return keys


def order_increments(keys: Iterable[StatKey]) -> list[StatKey]:
    """Sort keys into lock acquisition order."""
    return sorted(keys)


# ------------------------------------------------------------------
# Reports
# ------------------------------------------------------------------

def competition_ranks(counts: list[int]) -> list[int]:
    """Standard competition ranking by descending count.

    Equal counts share a rank and the next distinct count skips ahead:

    >>> competition_ranks([10, 10, 7])
    [1, 1, 3]
    """
    first_position: dict[int, int] = {}
    for position, count in enumerate(sorted(counts, reverse=True), start=1):
        first_position.setdefault(count, position)
    return [first_position[count] for count in counts]


def build_stats_report(
    schema: SurveySchema, counters: Counters, submit_count: int
) -> StatsReport:
    """Admin report: every option question with current and orphaned counts.

    Current options come first in schema order (count 0 when no row
    exists), followed by orphaned counters sorted by option id.
    """
    questions: list[QuestionStats] = []
    for item in schema.option_questions():
        current = {opt.id for opt in item.options}
        options = [
            OptionStat(id=opt.id, text=opt.text, count=counters.get((item.id, opt.id), 0))
            for opt in item.options
        ]
        orphans = sorted(
            option_id
            for question_id, option_id in counters
            if question_id == item.id and option_id not in current
        )
        options.extend(
            OptionStat(
                id=option_id,
                text=DELETED_OPTION_LABEL.format(option_id=option_id),
                count=counters[(item.id, option_id)],
                deleted=True,
            )
            for option_id in orphans
        )
        questions.append(
            QuestionStats(id=item.id, title=item.title, type=item.type, options=options)
        )
    return StatsReport(submit_count=submit_count, questions=questions)


def visible_vote_questions(schema: SurveySchema, has_submitted: bool) -> list[str]:
    """Ids of the vote questions whose counts a respondent may see."""
    return [
        item.id
        for item in schema.option_questions()
        if item.is_vote
        and item.show_stats
        and (has_submitted or not item.show_stats_after_submit)
    ]


def needs_submission_check(schema: SurveySchema) -> bool:
    """True when some visible vote question hides counts until the user submits."""
    return any(
        item.is_vote and item.show_stats and item.show_stats_after_submit
        for item in schema.option_questions()
    )


def build_vote_stats(
    schema: SurveySchema, counters: Counters, has_submitted: bool
) -> list[VoteQuestionStats]:
    """Respondent-facing counts for vote questions with ``show_stats``.

    Questions flagged ``show_stats_after_submit`` are included only when
    ``has_submitted``.  Ranks are filled in when the question sets
    ``show_rank`` and left at 0 otherwise.
    """
    visible = set(visible_vote_questions(schema, has_submitted))
    result: list[VoteQuestionStats] = []
    for item in schema.option_questions():
        if item.id not in visible:
            continue
        counts = [counters.get((item.id, opt.id), 0) for opt in item.options]
        ranks = competition_ranks(counts) if item.show_rank else [0] * len(counts)
        result.append(VoteQuestionStats(
            id=item.id,
            options=[
                VoteOptionStat(id=opt.id, count=count, rank=rank)
                for opt, count, rank in zip(item.options, counts, ranks)
            ],
        ))
    return result
