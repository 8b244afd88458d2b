"""Initial schema: decks, cards, deck_options, card_progress.

Revision ID: 001
Revises:
Create Date: 2026-10-17

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
        "decks",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), nullable=False, index=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("language", sa.String(64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_table(
        "cards",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("deck_id", sa.String(36), sa.ForeignKey("decks.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("front_text", sa.Text, nullable=False, server_default=""),
        sa.Column("back_text", sa.Text, nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_table(
        "deck_options",
        sa.Column("deck_id", sa.String(36), sa.ForeignKey("decks.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("easy_bonus", sa.Float, nullable=True),
        sa.Column("hard_interval_factor", sa.Float, nullable=True),
        sa.Column("lapse_interval_percent", sa.Integer, nullable=True),
        sa.Column("interval_modifier", sa.Float, nullable=True),
        sa.Column("max_interval_days", sa.Integer, nullable=True),
        sa.Column("learning_steps", sa.String(255), nullable=True),
    )
    op.create_table(
        "card_progress",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("card_id", sa.String(36), sa.ForeignKey("cards.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("state", sa.String(16), nullable=False, server_default="new"),
        sa.Column("ease_factor", sa.Float, nullable=False, server_default="2.5"),
        sa.Column("interval_days", sa.Integer, nullable=False, server_default="0"),
        sa.Column("repetitions", sa.Integer, nullable=False, server_default="0"),
        sa.Column("lapses", sa.Integer, nullable=False, server_default="0"),
        sa.Column("learning_step_index", sa.Integer, nullable=False, server_default="0"),
        sa.Column("due_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("user_id", "card_id", name="uq_card_progress_user_card"),
        sa.CheckConstraint("ease_factor >= 1.3", name="ck_card_progress_min_ease"),
    )
    op.create_index("ix_card_progress_user_due", "card_progress", ["user_id", "due_at"])


def downgrade() -> None:
    op.drop_index("ix_card_progress_user_due", table_name="card_progress")
    op.drop_table("card_progress")
    op.drop_table("deck_options")
    op.drop_table("cards")
    op.drop_table("decks")
