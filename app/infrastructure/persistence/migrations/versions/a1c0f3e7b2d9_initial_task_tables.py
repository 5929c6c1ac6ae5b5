"""initial task, task_history, task_group and task_group_member tables

Revision ID: a1c0f3e7b2d9
Revises:
Create Date: 2026-10-19

Human task lifecycle with SLA/escalation state, append-only history, and
assignee groups with members.
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "a1c0f3e7b2d9"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "task",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("tenant_id", sa.String(), nullable=False),
        sa.Column("type", sa.String(length=100), nullable=False, server_default="human_task"),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("priority", sa.String(length=16), nullable=False, server_default="medium"),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="pending"),
        sa.Column("form_schema", postgresql.JSONB(), nullable=False),
        sa.Column("form_data", postgresql.JSONB(), nullable=True),
        sa.Column("context", postgresql.JSONB(), nullable=False, server_default="{}"),
        sa.Column("assigned_user_id", sa.String(), nullable=True),
        sa.Column("assigned_group_id", sa.String(), nullable=True),
        sa.Column("claimed_by", sa.String(), nullable=True),
        sa.Column("claimed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("due_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("warn_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("escalation_config", postgresql.JSONB(), nullable=True),
        sa.Column("escalation_level", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("next_escalation_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("sla_warned_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("workflow_id", sa.String(), nullable=True),
        sa.Column("workflow_run_id", sa.String(), nullable=True),
        sa.Column("completed_by", sa.String(), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("metadata", postgresql.JSONB(), nullable=False, server_default="{}"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "status IN ('pending', 'assigned', 'in_progress', 'completed', "
            "'cancelled', 'expired', 'escalated')",
            name="ck_task_status",
        ),
    )
    op.create_index("ix_task_tenant_id", "task", ["tenant_id"], unique=False)
    op.create_index("ix_task_deleted_at", "task", ["deleted_at"], unique=False)
    op.create_index("ix_task_workflow_id", "task", ["workflow_id"], unique=False)
    op.create_index("ix_task_tenant_status", "task", ["tenant_id", "status"], unique=False)
    op.create_index(
        "ix_task_tenant_assigned_user", "task", ["tenant_id", "assigned_user_id"], unique=False
    )
    op.create_index(
        "ix_task_tenant_assigned_group", "task", ["tenant_id", "assigned_group_id"], unique=False
    )
    op.create_index("ix_task_tenant_due_at", "task", ["tenant_id", "due_at"], unique=False)
    op.create_index(
        "ix_task_tenant_next_escalation_at",
        "task",
        ["tenant_id", "next_escalation_at"],
        unique=False,
    )

    op.create_table(
        "task_history",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("tenant_id", sa.String(), nullable=False),
        sa.Column("task_id", sa.String(), nullable=False),
        sa.Column("action", sa.String(length=50), nullable=False),
        sa.Column("user_id", sa.String(), nullable=True),
        sa.Column("data", postgresql.JSONB(), nullable=False, server_default="{}"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["task_id"], ["task.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_task_history_tenant_id", "task_history", ["tenant_id"], unique=False)
    op.create_index(
        "ix_task_history_task_created", "task_history", ["task_id", "created_at"], unique=False
    )

    op.create_table(
        "task_group",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("tenant_id", sa.String(), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column(
            "assignment_strategy",
            sa.String(length=32),
            nullable=False,
            server_default="round_robin",
        ),
        sa.Column("is_assignable", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "name", name="uq_task_group_tenant_name"),
    )
    op.create_index("ix_task_group_tenant_id", "task_group", ["tenant_id"], unique=False)
    op.create_index("ix_task_group_deleted_at", "task_group", ["deleted_at"], unique=False)

    op.create_table(
        "task_group_member",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("group_id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column(
            "joined_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["group_id"], ["task_group.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("group_id", "user_id", name="uq_task_group_member"),
    )
    op.create_index(
        "ix_task_group_member_group_joined",
        "task_group_member",
        ["group_id", "joined_at"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_task_group_member_group_joined", table_name="task_group_member")
    op.drop_table("task_group_member")
    op.drop_index("ix_task_group_deleted_at", table_name="task_group")
    op.drop_index("ix_task_group_tenant_id", table_name="task_group")
    op.drop_table("task_group")
    op.drop_index("ix_task_history_task_created", table_name="task_history")
    op.drop_index("ix_task_history_tenant_id", table_name="task_history")
    op.drop_table("task_history")
    op.drop_index("ix_task_tenant_next_escalation_at", table_name="task")
    op.drop_index("ix_task_tenant_due_at", table_name="task")
    op.drop_index("ix_task_tenant_assigned_group", table_name="task")
    op.drop_index("ix_task_tenant_assigned_user", table_name="task")
    op.drop_index("ix_task_tenant_status", table_name="task")
    op.drop_index("ix_task_workflow_id", table_name="task")
    op.drop_index("ix_task_deleted_at", table_name="task")
    op.drop_index("ix_task_tenant_id", table_name="task")
    op.drop_table("task")
