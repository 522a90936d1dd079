"""Create surveys, survey_results and survey_stats tables.

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import TIMESTAMP

# revision identifiers, used by Alembic.
revision = "20261019_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "surveys",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("admin_id", sa.BigInteger, nullable=False),
        sa.Column("title", sa.Text, nullable=False),
        sa.Column(
            "type", sa.String(20), nullable=False, server_default=sa.text("'survey'"),
        ),
        sa.Column("path", sa.String(64), nullable=False),
        sa.Column("schema", sa.Text, nullable=False),
        sa.Column(
            "status",
            sa.String(20),
            nullable=False,
            server_default=sa.text("'unpublished'"),
        ),
        sa.Column("created_at", TIMESTAMP(timezone=True), nullable=False),
        sa.Column("updated_at", TIMESTAMP(timezone=True), nullable=False),
        sa.UniqueConstraint("path", name="uq_surveys_path"),
    )
    op.create_index("ix_surveys_admin_id", "surveys", ["admin_id"])
    op.create_index("ix_surveys_status", "surveys", ["status"])
    op.create_index("ix_surveys_title", "surveys", ["title"])

    op.create_table(
        "survey_results",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("survey_id", sa.BigInteger, nullable=False),
        sa.Column("username", sa.Text, nullable=True),
        # JSON array of {question_id, answer}; immutable once written
        sa.Column("data", sa.Text, nullable=False),
        sa.Column("created_at", TIMESTAMP(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_results_survey_user_created",
        "survey_results",
        ["survey_id", "username", "created_at"],
    )

    op.create_table(
        "survey_stats",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("survey_id", sa.BigInteger, nullable=False),
        sa.Column("question_id", sa.String(64), nullable=False),
        sa.Column("option_id", sa.String(64), nullable=False),
        sa.Column("count", sa.Integer, nullable=False, server_default=sa.text("0")),
        sa.UniqueConstraint(
            "survey_id", "question_id", "option_id", name="uq_survey_question_option",
        ),
        sa.CheckConstraint("count >= 0", name="ck_count_non_negative"),
    )


def downgrade() -> None:
    op.drop_table("survey_stats")
    op.drop_table("survey_results")
    op.drop_table("surveys")
