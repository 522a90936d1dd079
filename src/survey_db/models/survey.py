"""Survey ORM model — one row per survey.

The schema document is stored as JSON text rather than JSONB: it is always
read and replaced wholesale, never queried into, and the SDK owns its
structure.
"""

from datetime import datetime, timezone

from sqlalchemy import BigInteger, Index, String, Text
from sqlalchemy.dialects.postgresql import TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column

from survey_db.models.base import Base
from survey_db.models.enums import SurveyStatus, SurveyType


class Survey(Base):
    """A survey authored by one admin and reachable by its public ``path``."""

    __tablename__ = "surveys"

    # --- Primary key ---
    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)

    # --- Ownership ---
    admin_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)

    # --- Descriptive ---
    # Mirrors banner_conf.title_conf.main_title for list/search queries
    title: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[SurveyType] = mapped_column(
        String(20), nullable=False, default=SurveyType.SURVEY,
    )
    # Public, unguessable identifier used by respondents and as the cache key
    path: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)

    # --- Definition ---
    schema: Mapped[str] = mapped_column(Text, nullable=False)

    # --- Lifecycle ---
    status: Mapped[SurveyStatus] = mapped_column(
        String(20),
        nullable=False,
        default=SurveyStatus.UNPUBLISHED,
        index=True,
    )

    # --- Timestamps ---
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        Index("ix_surveys_title", "title"),
    )

    def __repr__(self) -> str:
        return (
            f"<Survey(id={self.id}, admin={self.admin_id}, path={self.path!r}, "
            f"status={self.status!r})>"
        )
