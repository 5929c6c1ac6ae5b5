"""Pytest configuration and fixtures for taskdesk.

Unit tests run the task service against the in-memory store in tests/fakes.py.
DB-dependent fixtures use the SQL store and need DATABASE_URL (Postgres).
"""

import pytest

from app.application.services.assignment_resolver import AssignmentResolver
from app.application.services.task_service import TaskService
from app.core.config import Settings
from app.domain.exceptions import SqlNotConfiguredException
from app.infrastructure.persistence.database import create_engine_from_settings
from app.infrastructure.persistence.store import SqlTaskStore
from app.shared.context import RequestContext
from tests.fakes import (
    T0,
    FakeClock,
    InMemoryGroupLookup,
    InMemoryTaskStore,
    RecordingNotifier,
    RecordingSignaler,
)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(T0)


@pytest.fixture
def store(clock: FakeClock) -> InMemoryTaskStore:
    return InMemoryTaskStore(clock)


@pytest.fixture
def groups(store: InMemoryTaskStore) -> InMemoryGroupLookup:
    return InMemoryGroupLookup(store)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def signaler() -> RecordingSignaler:
    return RecordingSignaler()


@pytest.fixture
def service(
    store: InMemoryTaskStore,
    groups: InMemoryGroupLookup,
    notifier: RecordingNotifier,
    signaler: RecordingSignaler,
    clock: FakeClock,
) -> TaskService:
    """TaskService over the in-memory store with recording notifier and signaler."""
    return TaskService(
        store,
        AssignmentResolver(groups),
        notifier=notifier,
        signaler=signaler,
        clock=clock,
    )


@pytest.fixture
def ctx() -> RequestContext:
    return RequestContext(tenant_id="t1", user_id="alice")


@pytest.fixture
async def sql_store():
    """SqlTaskStore for repository/integration tests.

    Requires DATABASE_URL (postgresql+asyncpg) with migrations applied. Skips
    when Postgres is not configured. Use @pytest.mark.requires_db to mark
    tests that need this fixture; run without DB via: pytest -m 'not requires_db'.
    """
    try:
        engine = create_engine_from_settings(Settings())
    except SqlNotConfiguredException:
        pytest.skip(
            "Postgres not configured: set DATABASE_URL, then run: alembic upgrade head"
        )
    sql = SqlTaskStore(engine)
    yield sql
    await sql.dispose()
