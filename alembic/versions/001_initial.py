"""Initial schema: flashcards, user_progress, quiz_responses.

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "flashcards",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("unit_id", sa.Integer, nullable=False),
        sa.Column("question", sa.Text, nullable=False),
        sa.Column("answer", sa.Text, nullable=False),
        sa.Column("card_type", sa.String(32), server_default="SELF_EVAL"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_flashcards_unit_id", "flashcards", ["unit_id"])
    op.create_table(
        "user_progress",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("flashcard_id", sa.Integer, sa.ForeignKey("flashcards.id", ondelete="CASCADE"), nullable=False),
        sa.Column("ease_factor", sa.Float, server_default="2.5"),
        sa.Column("interval", sa.Integer, server_default="0"),
        sa.Column("repetitions", sa.Integer, server_default="0"),
        sa.Column("next_review_date", sa.Date, nullable=True),
        sa.Column("last_reviewed_at", sa.Date, nullable=True),
        sa.Column("total_reviews", sa.Integer, server_default="0"),
        sa.Column("correct_reviews", sa.Integer, server_default="0"),
        sa.Column("incorrect_reviews", sa.Integer, server_default="0"),
        sa.Column("created_at", sa.Date, nullable=True),
        sa.Column("updated_at", sa.Date, nullable=True),
        sa.UniqueConstraint("user_id", "flashcard_id", name="uq_user_progress_pair"),
    )
    op.create_index("ix_user_progress_user_id", "user_progress", ["user_id"])
    op.create_index("ix_user_progress_next_review_date", "user_progress", ["next_review_date"])
    op.create_table(
        "quiz_responses",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("flashcard_id", sa.Integer, sa.ForeignKey("flashcards.id", ondelete="CASCADE"), nullable=False),
        sa.Column("response_type", sa.String(16), nullable=False),
        sa.Column("responded_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_quiz_responses_user_id", "quiz_responses", ["user_id"])


def downgrade() -> None:
    op.drop_index("ix_quiz_responses_user_id", table_name="quiz_responses")
    op.drop_table("quiz_responses")
    op.drop_index("ix_user_progress_next_review_date", table_name="user_progress")
    op.drop_index("ix_user_progress_user_id", table_name="user_progress")
    op.drop_table("user_progress")
    op.drop_index("ix_flashcards_unit_id", table_name="flashcards")
    op.drop_table("flashcards")
