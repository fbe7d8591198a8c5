"""Initial habit architect schema."""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "202501150900"
down_revision = None
branch_labels = None
depends_on = None


def _id_column() -> sa.Column:
    return sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False)


def _created_at_column() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()"))


def upgrade() -> None:
    op.create_table(
        "users",
        _id_column(),
        sa.Column("email", sa.Text(), nullable=True),
        _created_at_column(),
    )

    op.create_table(
        "goals",
        _id_column(),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("category", sa.String(length=100), nullable=True),
        _created_at_column(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_goals_user_id", "goals", ["user_id"], unique=False)

    op.create_table(
        "barriers",
        _id_column(),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("goal_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("type", sa.String(length=100), nullable=True),
        _created_at_column(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["goal_id"], ["goals.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_barriers_user_id", "barriers", ["user_id"], unique=False)
    op.create_index("ix_barriers_goal_id", "barriers", ["goal_id"], unique=False)

    op.create_table(
        "habit_plans",
        _id_column(),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("goal_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("title", sa.Text(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("phase1_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("phase2_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("phase3_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("phase4_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        _created_at_column(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["goal_id"], ["goals.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_habit_plans_user_id", "habit_plans", ["user_id"], unique=False)
    op.create_index("ix_habit_plans_goal_id", "habit_plans", ["goal_id"], unique=False)

    op.create_table(
        "plan_phases",
        _id_column(),
        sa.Column("plan_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("phase_number", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        _created_at_column(),
        sa.ForeignKeyConstraint(["plan_id"], ["habit_plans.id"], ondelete="CASCADE"),
        sa.CheckConstraint("phase_number BETWEEN 1 AND 4", name="ck_plan_phases_phase_number"),
    )
    op.create_index("ix_plan_phases_plan_id", "plan_phases", ["plan_id"], unique=False)

    op.create_table(
        "habits",
        _id_column(),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("goal_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("plan_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("barrier_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("category", sa.String(length=50), nullable=False),
        sa.Column("phase", sa.Integer(), nullable=False),
        sa.Column("frequency", sa.String(length=100), nullable=False, server_default=sa.text("''")),
        sa.Column("duration", sa.Integer(), nullable=True),
        sa.Column("priority", sa.Integer(), nullable=False),
        _created_at_column(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["goal_id"], ["goals.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["plan_id"], ["habit_plans.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["barrier_id"], ["barriers.id"], ondelete="SET NULL"),
        sa.CheckConstraint("phase BETWEEN 1 AND 4", name="ck_habits_phase"),
        sa.CheckConstraint("priority BETWEEN 1 AND 10", name="ck_habits_priority"),
    )
    op.create_index("ix_habits_user_id", "habits", ["user_id"], unique=False)
    op.create_index("ix_habits_plan_id", "habits", ["plan_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_habits_plan_id", table_name="habits")
    op.drop_index("ix_habits_user_id", table_name="habits")
    op.drop_table("habits")
    op.drop_index("ix_plan_phases_plan_id", table_name="plan_phases")
    op.drop_table("plan_phases")
    op.drop_index("ix_habit_plans_goal_id", table_name="habit_plans")
    op.drop_index("ix_habit_plans_user_id", table_name="habit_plans")
    op.drop_table("habit_plans")
    op.drop_index("ix_barriers_goal_id", table_name="barriers")
    op.drop_index("ix_barriers_user_id", table_name="barriers")
    op.drop_table("barriers")
    op.drop_index("ix_goals_user_id", table_name="goals")
    op.drop_table("goals")
    op.drop_table("users")
