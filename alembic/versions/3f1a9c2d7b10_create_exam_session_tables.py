"""create_exam_session_tables

Revision ID: 3f1a9c2d7b10
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3f1a9c2d7b10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ACTIVE_STATUSES = "status IN ('in_progress', 'paused')"


def _enum(*values: str, name: str) -> sa.Enum:
    return sa.Enum(*values, name=name, native_enum=False, length=32)


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "exams",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("duration", sa.Integer(), nullable=False),
        sa.Column("randomize_questions", sa.Boolean(), nullable=True),
        sa.Column("randomize_answers", sa.Boolean(), nullable=True),
        sa.Column("deadline", sa.DateTime(), nullable=True),
        sa.Column("is_archived", sa.Boolean(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )

    op.create_table(
        "exam_questions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "exam_id",
            sa.Integer(),
            sa.ForeignKey("exams.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column(
            "question_type",
            _enum(
                "single_choice",
                "true_false",
                "multiple_choice",
                "matching",
                name="questiontype",
            ),
            nullable=False,
        ),
        sa.Column("prompt", sa.Text(), nullable=False),
        sa.Column("points", sa.Float(), nullable=True),
        sa.Column("partial_scoring_enabled", sa.Boolean(), nullable=True),
        sa.Column("options", sa.JSON(), nullable=True),
    )
    op.create_index("ix_exam_questions_exam_id", "exam_questions", ["exam_id"])

    op.create_table(
        "exam_sessions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "exam_id",
            sa.Integer(),
            sa.ForeignKey("exams.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("participant_id", sa.String(length=64), nullable=False),
        sa.Column("participant_name", sa.String(length=255), nullable=True),
        sa.Column(
            "status",
            _enum("in_progress", "paused", "completed", "expired", name="sessionstatus"),
            nullable=False,
        ),
        sa.Column("started_at", sa.DateTime(), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("answers", sa.JSON(), nullable=True),
        sa.Column("question_order", sa.JSON(), nullable=True),
        sa.Column("answer_orders", sa.JSON(), nullable=True),
        sa.Column("pause_code", sa.String(length=16), nullable=True),
        sa.Column("pause_code_used", sa.Boolean(), nullable=True),
        sa.Column("paused_at", sa.DateTime(), nullable=True),
        sa.Column("pause_count", sa.Integer(), nullable=True),
        sa.Column("pause_history", sa.JSON(), nullable=True),
        sa.Column("attached_client_id", sa.String(length=64), nullable=True),
        sa.Column("attached_at", sa.DateTime(), nullable=True),
        sa.Column("last_activity_at", sa.DateTime(), nullable=True),
        sa.Column("last_save_at", sa.DateTime(), nullable=True),
        sa.Column("finalized_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )
    op.create_index(
        "uq_exam_sessions_active_participant",
        "exam_sessions",
        ["exam_id", "participant_id"],
        unique=True,
        postgresql_where=sa.text(ACTIVE_STATUSES),
        sqlite_where=sa.text(ACTIVE_STATUSES),
    )
    op.create_index(
        "ix_exam_sessions_status_expires_at", "exam_sessions", ["status", "expires_at"]
    )

    op.create_table(
        "exam_results",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "session_id",
            sa.Integer(),
            sa.ForeignKey("exam_sessions.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column(
            "exam_id",
            sa.Integer(),
            sa.ForeignKey("exams.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("participant_id", sa.String(length=64), nullable=False),
        sa.Column("answers", sa.JSON(), nullable=True),
        sa.Column("score", sa.Float(), nullable=False),
        sa.Column("question_scores", sa.JSON(), nullable=True),
        sa.Column("auto_submitted", sa.Boolean(), nullable=True),
        sa.Column("submitted_at", sa.DateTime(), nullable=False),
        sa.Column(
            "grading_status",
            _enum("auto", "graded", name="gradingstatus"),
            nullable=False,
        ),
        sa.Column("manual_scores", sa.JSON(), nullable=True),
        sa.Column("feedbacks", sa.JSON(), nullable=True),
        sa.Column("graded_by", sa.String(length=64), nullable=True),
        sa.Column("graded_at", sa.DateTime(), nullable=True),
        sa.Column("allow_retake", sa.Boolean(), nullable=True),
        sa.Column(
            "notification_state",
            _enum("pending", "notified", "acknowledged", name="notificationstate"),
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )
    op.create_index(
        "ix_exam_results_exam_participant",
        "exam_results",
        ["exam_id", "participant_id"],
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index("ix_exam_results_exam_participant", table_name="exam_results")
    op.drop_table("exam_results")
    op.drop_index("ix_exam_sessions_status_expires_at", table_name="exam_sessions")
    op.drop_index("uq_exam_sessions_active_participant", table_name="exam_sessions")
    op.drop_table("exam_sessions")
    op.drop_index("ix_exam_questions_exam_id", table_name="exam_questions")
    op.drop_table("exam_questions")
    op.drop_table("exams")
