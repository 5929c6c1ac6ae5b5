"""Task group ORM models: assignable groups and their members."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.infrastructure.persistence.database import Base
from app.infrastructure.persistence.models.mixins import MultiTenantModel, SoftDeleteMixin
from app.shared.utils.generators import generate_cuid


class TaskGroup(MultiTenantModel, SoftDeleteMixin, Base):
    """Group a task can be assigned to. Table: task_group."""

    __tablename__ = "task_group"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=generate_cuid)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    # round_robin | load_balanced | direct (legacy: least_loaded, manual, random)
    assignment_strategy: Mapped[str] = mapped_column(
        String(32), nullable=False, default="round_robin", server_default="round_robin"
    )
    is_assignable: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default="true"
    )

    __table_args__ = (
        UniqueConstraint("tenant_id", "name", name="uq_task_group_tenant_name"),
    )


class TaskGroupMember(Base):
    """Membership of a user in a task group. Table: task_group_member."""

    __tablename__ = "task_group_member"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=generate_cuid)
    group_id: Mapped[str] = mapped_column(
        String, ForeignKey("task_group.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(String, nullable=False)
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default="true"
    )
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("group_id", "user_id", name="uq_task_group_member"),
        Index("ix_task_group_member_group_joined", "group_id", "joined_at"),
    )
