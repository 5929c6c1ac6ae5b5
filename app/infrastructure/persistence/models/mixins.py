"""Column mixins shared by the task tables.

Primary keys are prefixed CUIDs assigned by the service layer (tsk_..., th_...)
or generated on insert (groups), so each model declares its own id column.
"""

from datetime import datetime

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func


class TenantMixin:
    """tenant_id scoping column. Tenants live in the host platform, so there is no FK."""

    tenant_id: Mapped[str] = mapped_column(String, nullable=False, index=True)


class TimestampMixin:
    """created_at/updated_at, both timezone-aware.

    The repositories set updated_at explicitly on conditional UPDATEs, which
    bypass the ORM onupdate hook.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )


class SoftDeleteMixin:
    """deleted_at; NULL means visible. Soft delete never changes task status."""

    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True
    )


class MultiTenantModel(TenantMixin, TimestampMixin):
    """tenant_id plus timestamps."""

    __abstract__ = True
