"""SurveyStat ORM model — one counter per (survey, question, option).

Rows are seeded with ``count = 0`` when a schema introduces an option and
are only ever incremented afterwards.  They are never deleted: a counter
whose option disappears from a later schema revision is kept and reported
as a deleted option.
"""

from sqlalchemy import BigInteger, CheckConstraint, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from survey_db.models.base import Base


class SurveyStat(Base):
    __tablename__ = "survey_stats"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    survey_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    question_id: Mapped[str] = mapped_column(String(64), nullable=False)
    option_id: Mapped[str] = mapped_column(String(64), nullable=False)
    count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        # Also the index used by the per-row UPDATE during increments
        UniqueConstraint(
            "survey_id", "question_id", "option_id", name="uq_survey_question_option",
        ),
        CheckConstraint("count >= 0", name="ck_count_non_negative"),
    )

    def __repr__(self) -> str:
        return (
            f"<SurveyStat(survey={self.survey_id}, question={self.question_id!r}, "
            f"option={self.option_id!r}, count={self.count})>"
        )
