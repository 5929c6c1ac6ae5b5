"""SQL task store: one AsyncSession transaction per unit of work."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from app.infrastructure.persistence.database import create_session_factory
from app.infrastructure.persistence.repositories.task_history_repo import (
    TaskHistoryRepository,
)
from app.infrastructure.persistence.repositories.task_repo import TaskRepository


class SqlTaskUnitOfWork:
    """Task and history repositories bound to one session. Implements ITaskUnitOfWork."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db
        self.tasks = TaskRepository(db)
        self.history = TaskHistoryRepository(db)


class SqlTaskStore:
    """Implements ITaskStore over an explicitly created engine.

    Commits when the transaction block exits normally, rolls back on exception.
    """

    def __init__(self, engine: AsyncEngine) -> None:
        self.engine = engine
        self.session_factory: async_sessionmaker[AsyncSession] = create_session_factory(
            engine
        )

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[SqlTaskUnitOfWork]:
        async with self.session_factory() as session:
            async with session.begin():
                yield SqlTaskUnitOfWork(session)

    async def dispose(self) -> None:
        """Close pooled connections (call on shutdown)."""
        await self.engine.dispose()
