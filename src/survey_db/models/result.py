"""SurveyResult ORM model — one immutable row per accepted submission."""

from datetime import datetime, timezone

from sqlalchemy import BigInteger, Index, Text
from sqlalchemy.dialects.postgresql import TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column

from survey_db.models.base import Base


class SurveyResult(Base):
    """An answer record.

    ``data`` is a JSON array of ``{"question_id": ..., "answer": ...}``
    objects; answers are always strings, multi-select values comma-joined.
    Rows are inserted once and never updated.
    """

    __tablename__ = "survey_results"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    survey_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    # Submitter username; null for anonymous surveys
    username: Mapped[str | None] = mapped_column(Text, nullable=True)
    data: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        # Per-user submission limits count by (survey, user, time window)
        Index("ix_results_survey_user_created", "survey_id", "username", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<SurveyResult(id={self.id}, survey={self.survey_id}, user={self.username!r})>"
