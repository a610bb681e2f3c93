"""Create learner progress, achievements and review history tables."""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "20261017_0002"
down_revision: Union[str, None] = "20261017_0001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _counter(name: str, default: int = 0) -> sa.Column:
    return sa.Column(name, sa.Integer(), server_default=sa.text(str(default)), nullable=False)


def upgrade() -> None:
    op.create_table(
        "user_progress",
        sa.Column("chat_id", sa.BigInteger(), primary_key=True, autoincrement=False, nullable=False),
        _counter("total_xp"),
        _counter("level", 1),
        _counter("current_streak"),
        _counter("longest_streak"),
        sa.Column("last_review_date", sa.Date(), nullable=True),
        _counter("total_reviews"),
        _counter("total_correct"),
        _counter("daily_progress"),
        _counter("daily_goal", 20),
        _counter("version", 1),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            server_onupdate=sa.func.now(),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["chat_id"], ["users.chat_id"], ondelete="CASCADE"),
    )

    op.create_table(
        "achievements",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("key", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), server_default=sa.text("''"), nullable=False),
        sa.Column("icon", sa.String(length=64), server_default=sa.text("''"), nullable=False),
        sa.Column("category", sa.String(length=32), server_default=sa.text("''"), nullable=False),
        sa.Column("requirement", sa.Integer(), nullable=False),
        _counter("xp_reward"),
        sa.UniqueConstraint("key", name="uq_achievements_key"),
    )

    op.create_table(
        "user_achievements",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("chat_id", sa.BigInteger(), nullable=False),
        sa.Column("achievement_id", sa.Integer(), nullable=False),
        sa.Column("unlocked_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(["chat_id"], ["users.chat_id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["achievement_id"], ["achievements.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("chat_id", "achievement_id", name="uq_user_achievements_user_achievement"),
    )

    op.create_table(
        "review_events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("chat_id", sa.BigInteger(), nullable=False),
        sa.Column("item_id", sa.Integer(), nullable=False),
        sa.Column("quality", sa.SmallInteger(), nullable=False),
        sa.Column("ease_factor", sa.Float(), nullable=False),
        sa.Column("interval", sa.Integer(), nullable=False),
        sa.Column("xp_earned", sa.Integer(), nullable=False),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(["chat_id"], ["users.chat_id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["item_id"], ["learning_items.id"], ondelete="CASCADE"),
    )
    op.create_index(
        "ix_review_events_chat_id_reviewed_at",
        "review_events",
        ["chat_id", "reviewed_at"],
    )


def downgrade() -> None:
    op.drop_index("ix_review_events_chat_id_reviewed_at", table_name="review_events")
    op.drop_table("review_events")
    op.drop_table("user_achievements")
    op.drop_table("achievements")
    op.drop_table("user_progress")
