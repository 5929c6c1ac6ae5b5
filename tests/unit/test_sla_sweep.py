"""Tests for the SLA sweep use case."""

from datetime import timedelta

import pytest

from app.application.dtos.task import AssignmentTarget, CreateTaskInput, SlaConfig
from app.application.use_cases.sla import RunSlaSweepUseCase, run_sla_sweep
from app.domain.exceptions import InvalidStateException
from app.shared.context import RequestContext
from tests.fakes import T0, TEXT_FORM


def _input(sla: SlaConfig | None) -> CreateTaskInput:
    return CreateTaskInput(
        title="Review claim",
        form_schema=TEXT_FORM,
        assign_to=AssignmentTarget(group_id="claims"),
        sla=sla,
    )


@pytest.fixture
def sweep(service) -> RunSlaSweepUseCase:
    return RunSlaSweepUseCase(service)


async def test_sweeps_every_tenant_with_open_tasks(service, store, notifier, sweep) -> None:
    """Warnings go to tasks inside their window, escalations to breached ones."""
    t1 = RequestContext("t1", "alice")
    t2 = RequestContext("t2", "bob")
    warned = await service.create(t1, _input(SlaConfig(deadline="30m", warn_before="10m")))
    breached = await service.create(t2, _input(SlaConfig(deadline="15m")))
    untouched = await service.create(t1, _input(None))

    result = await sweep.run(now=T0 + timedelta(minutes=25))

    assert result.tenants_processed == 2
    assert result.warnings_sent == 1
    assert result.escalations_applied == 1
    assert result.errors == []
    assert (await service.get_by_id(t1, warned.id)).sla_warned_at is not None
    assert (await service.get_by_id(t2, breached.id)).status == "escalated"
    assert (await service.get_by_id(t1, untouched.id)).status == "assigned"
    assert ("sla_warning", warned.id, 5) in notifier.calls
    assert ("sla_breach", breached.id) in notifier.calls


async def test_single_tenant(service, sweep) -> None:
    t1 = RequestContext("t1", "alice")
    await service.create(t1, _input(SlaConfig(deadline="15m")))
    other = await service.create(RequestContext("t2", "bob"), _input(SlaConfig(deadline="15m")))

    result = await sweep.run(tenant_id="t1", now=T0 + timedelta(hours=1))

    assert result.tenants_processed == 1
    assert result.escalations_applied == 1
    assert (await service.get_by_id(RequestContext("t2"), other.id)).status == "assigned"


async def test_second_pass_is_idempotent(service, sweep) -> None:
    ctx = RequestContext("t1", "alice")
    await service.create(ctx, _input(SlaConfig(deadline="30m", warn_before="10m")))
    await service.create(ctx, _input(SlaConfig(deadline="15m")))
    now = T0 + timedelta(minutes=25)

    await sweep.run(now=now)
    again = await sweep.run(now=now)

    assert again.warnings_sent == 0
    assert again.escalations_applied == 0


async def test_chain_steps_are_applied_in_later_passes(service, store, sweep) -> None:
    ctx = RequestContext("t1", "alice")
    chain = [
        {"after": "10m", "action": "notify"},
        {"after": "20m", "action": "escalate", "toGroupId": "supervisors"},
    ]
    task = await service.create(ctx, _input(SlaConfig(deadline="1h", escalation=chain)))

    first = await sweep.run(now=T0 + timedelta(minutes=12))
    second = await sweep.run(now=T0 + timedelta(minutes=21))

    assert first.escalations_applied == 1
    assert second.escalations_applied == 1
    current = await service.get_by_id(ctx, task.id)
    assert current.status == "escalated"
    assert current.assigned_group_id == "supervisors"
    assert current.escalation_level == 2
    actions = [h.action for h in store.history_for(task.id)]
    assert actions == ["created", "escalation_notified", "escalated"]


async def test_failing_task_does_not_stop_the_pass(service, sweep, monkeypatch) -> None:
    ctx = RequestContext("t1", "alice")
    bad = await service.create(ctx, _input(SlaConfig(deadline="5m")))
    good = await service.create(ctx, _input(SlaConfig(deadline="10m")))
    original = service.auto_escalate

    async def flaky(ctx, task_id, now=None):
        if task_id == bad.id:
            raise InvalidStateException("boom", operation="escalate")
        return await original(ctx, task_id, now=now)

    monkeypatch.setattr(service, "auto_escalate", flaky)

    result = await sweep.run(now=T0 + timedelta(minutes=30))

    assert result.errors == [bad.id]
    assert result.escalations_applied == 1
    assert (await service.get_by_id(ctx, good.id)).status == "escalated"


async def test_unexpected_errors_are_recorded(service, sweep, monkeypatch) -> None:
    ctx = RequestContext("t1", "alice")
    task = await service.create(ctx, _input(SlaConfig(deadline="30m", warn_before="10m")))

    async def broken(ctx, task_id, now=None):
        raise RuntimeError("database went away")

    monkeypatch.setattr(service, "send_sla_warning", broken)

    result = await sweep.run(now=T0 + timedelta(minutes=25))

    assert result.errors == [task.id]
    assert result.warnings_sent == 0


async def test_error_list_is_capped(service, sweep, monkeypatch) -> None:
    monkeypatch.setattr(run_sla_sweep, "MAX_ERROR_ENTRIES", 2)
    ctx = RequestContext("t1", "alice")
    for _ in range(3):
        await service.create(ctx, _input(SlaConfig(deadline="5m")))

    async def broken(ctx, task_id, now=None):
        raise InvalidStateException("boom")

    monkeypatch.setattr(service, "auto_escalate", broken)

    result = await sweep.run(now=T0 + timedelta(minutes=30))

    assert len(result.errors) == 2
    assert result.tasks_examined == 3


async def test_no_open_tasks(sweep) -> None:
    result = await sweep.run(now=T0)
    assert result.tenants_processed == 0
    assert result.tasks_examined == 0


async def test_chains_with_nothing_due_do_not_fill_the_batch(service) -> None:
    ctx = RequestContext("t1", "alice")
    for _ in range(2):
        await service.create(
            ctx,
            _input(SlaConfig(deadline="1w", escalation=[{"after": "1d", "action": "notify"}])),
        )
    urgent = await service.create(
        ctx,
        _input(
            SlaConfig(
                deadline="2w",
                escalation=[{"after": "5m", "action": "escalate", "toGroupId": "mgr"}],
            )
        ),
    )
    sweep = RunSlaSweepUseCase(service, batch_size=2)

    result = await sweep.run(now=T0 + timedelta(minutes=10))

    assert result.escalations_applied == 1
    current = await service.get_by_id(ctx, urgent.id)
    assert current.status == "escalated"
    assert current.assigned_group_id == "mgr"
    assert current.next_escalation_at is None


async def test_breached_task_waits_for_its_next_chain_step(service, store) -> None:
    ctx = RequestContext("t1", "alice")
    chain = [
        {"after": "10m", "action": "notify"},
        {"after": "2h", "action": "escalate", "toGroupId": "supervisors"},
    ]
    task = await service.create(ctx, _input(SlaConfig(deadline="30m", escalation=chain)))
    sweep = RunSlaSweepUseCase(service)

    await sweep.run(now=T0 + timedelta(minutes=40))
    idle = await sweep.run(now=T0 + timedelta(minutes=50))
    final = await sweep.run(now=T0 + timedelta(hours=2))

    assert idle.tasks_examined == 0
    assert final.escalations_applied == 1
    assert [h.action for h in store.history_for(task.id)] == [
        "created",
        "escalation_notified",
        "escalated",
    ]
