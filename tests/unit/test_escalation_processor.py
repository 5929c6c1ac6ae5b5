"""Tests for escalation chain parsing, step selection and escalation decisions."""

from datetime import UTC, datetime, timedelta

import pytest

from app.application.dtos.task import AssignmentTarget
from app.application.services.escalation_processor import (
    EscalationProcessor,
    build_escalation_reason,
    get_applicable_step,
    parse_escalation_config,
    should_escalate_on_breach,
)
from app.domain.enums import EscalationAction
from tests.fakes import make_task

T0 = datetime(2025, 1, 15, 12, 0, tzinfo=UTC)

CHAIN = [
    {"after": "15m", "action": "notify"},
    {"after": "30m", "action": "escalate", "target": {"groupId": "G1"}},
    {"after": "1h", "action": "escalate", "target": {"groupId": "G2"}, "message": "Escalating to G2"},
]


def _at(**kwargs) -> datetime:
    return T0 + timedelta(**kwargs)


class TestParseEscalationConfig:
    """Stored and fluent chain shapes; malformed input returns None."""

    def test_fluent_and_flat_forms(self) -> None:
        steps = parse_escalation_config(
            CHAIN + [{"after": "2h", "action": "reassign", "toUserId": "boss"}]
        )
        assert steps is not None
        assert [s.action for s in steps] == [
            EscalationAction.NOTIFY,
            EscalationAction.ESCALATE,
            EscalationAction.ESCALATE,
            EscalationAction.REASSIGN,
        ]
        assert steps[1].to_group_id == "G1"
        assert steps[3].to_user_id == "boss"
        assert steps[1].to_stored() == {
            "after": "30m",
            "action": "escalate",
            "toUserId": None,
            "toGroupId": "G1",
            "message": None,
        }

    def test_action_defaults_to_escalate(self) -> None:
        steps = parse_escalation_config([{"after": "1h", "toGroupId": "G1"}])
        assert steps[0].action == EscalationAction.ESCALATE

    def test_empty_list(self) -> None:
        assert parse_escalation_config([]) == []

    @pytest.mark.parametrize(
        "raw",
        [
            None,
            {"after": "1h"},
            ["1h"],
            [{"after": "soon", "toGroupId": "G1"}],
            [{"action": "notify"}],
            [{"after": "1h", "action": "escalate"}],
            [{"after": "1h", "action": "reassign", "target": {}}],
            [{"after": "1h", "action": "page", "toGroupId": "G1"}],
            [{"after": "1h", "target": "G1"}],
        ],
    )
    def test_malformed_returns_none(self, raw) -> None:
        assert parse_escalation_config(raw) is None


class TestGetApplicableStep:
    """Highest elapsed step wins; executed steps are never re-applied."""

    chain = parse_escalation_config(CHAIN)

    def test_picks_highest_elapsed_step(self) -> None:
        applicable = get_applicable_step(self.chain, T0, 0, _at(minutes=45))
        assert applicable.index == 1
        assert applicable.step.to_group_id == "G1"
        assert applicable.is_final_step is False

    def test_final_step(self) -> None:
        applicable = get_applicable_step(self.chain, T0, 0, _at(hours=2))
        assert applicable.index == 2
        assert applicable.is_final_step is True

    def test_nothing_due_yet(self) -> None:
        assert get_applicable_step(self.chain, T0, 0, _at(minutes=10)) is None

    def test_executed_steps_are_skipped(self) -> None:
        assert get_applicable_step(self.chain, T0, 2, _at(minutes=45)) is None
        assert get_applicable_step(self.chain, T0, 3, _at(hours=5)) is None

    def test_threshold_is_inclusive(self) -> None:
        assert get_applicable_step(self.chain, T0, 0, _at(minutes=15)).index == 0


class TestProcessAutoEscalation:
    processor = EscalationProcessor()

    def test_chain_step_with_skipped_notify(self) -> None:
        task = make_task(escalation_config=CHAIN, due_at=_at(hours=4))
        result = self.processor.process_auto_escalation(task, now=_at(minutes=45))
        assert result.escalated is True
        assert result.action == EscalationAction.ESCALATE
        assert result.target == AssignmentTarget(group_id="G1")
        assert result.step_index == 1
        assert result.next_level == 2
        assert result.skipped_notify_steps == (0,)
        assert result.is_default is False
        assert result.reason == "Automatic escalation"

    def test_executed_steps_default_to_task_level(self) -> None:
        task = make_task(escalation_config=CHAIN, escalation_level=2)
        result = self.processor.process_auto_escalation(task, now=_at(minutes=45))
        assert result.escalated is False
        assert result.is_final_step is False

    def test_notify_step_without_target(self) -> None:
        task = make_task(escalation_config=CHAIN)
        result = self.processor.process_auto_escalation(task, now=_at(minutes=20))
        assert result.action == EscalationAction.NOTIFY
        assert result.target is None
        assert result.skipped_notify_steps == ()

    def test_reason_mentions_breach_and_message(self) -> None:
        task = make_task(escalation_config=CHAIN, due_at=_at(minutes=30), escalation_level=2)
        result = self.processor.process_auto_escalation(task, now=_at(hours=1))
        assert result.step_index == 2
        assert result.is_final_step is True
        assert result.reason == "Automatic escalation due to SLA breach - Escalating to G2"

    def test_default_escalation_when_no_chain_and_breached(self) -> None:
        task = make_task(assigned_user_id="ann", due_at=_at(minutes=30))
        result = self.processor.process_auto_escalation(task, now=_at(minutes=31))
        assert result.escalated is True
        assert result.is_default is True
        assert result.action == EscalationAction.ESCALATE
        assert result.target == AssignmentTarget(user_id="ann", group_id="g1")
        assert result.step_index is None
        assert result.next_level is None

    def test_default_escalation_after_chain_exhausted(self) -> None:
        task = make_task(escalation_config=CHAIN, escalation_level=3, due_at=_at(hours=1))
        result = self.processor.process_auto_escalation(task, now=_at(hours=2))
        assert result.is_default is True

    def test_malformed_chain_falls_back_to_default(self) -> None:
        task = make_task(escalation_config=[{"after": "x"}], due_at=_at(minutes=5))
        result = self.processor.process_auto_escalation(task, now=_at(minutes=6))
        assert result.is_default is True

    def test_no_chain_not_breached(self) -> None:
        task = make_task(due_at=_at(hours=1))
        result = self.processor.process_auto_escalation(task, now=_at(minutes=59))
        assert result.escalated is False
        assert result.is_final_step is True


class TestProcessManualEscalation:
    processor = EscalationProcessor()

    def test_explicit_target_wins(self) -> None:
        task = make_task(escalation_config=CHAIN)
        result = self.processor.process_manual_escalation(
            task, AssignmentTarget(user_id="boss"), "Customer called twice"
        )
        assert result.target == AssignmentTarget(user_id="boss")
        assert result.reason == "Customer called twice"
        assert result.step_index is None

    def test_first_chain_step_with_target(self) -> None:
        chain = [{"after": "1h", "toGroupId": "G1"}, {"after": "2h", "toGroupId": "G2"}]
        task = make_task(escalation_config=chain)
        result = self.processor.process_manual_escalation(task, now=T0)
        assert result.target == AssignmentTarget(group_id="G1")
        assert result.reason == "Manual escalation"

    def test_first_step_without_target_falls_back_to_assignment(self) -> None:
        task = make_task(escalation_config=CHAIN, assigned_user_id="ann")
        result = self.processor.process_manual_escalation(task, AssignmentTarget(), now=T0)
        assert result.target == AssignmentTarget(user_id="ann", group_id="g1")

    def test_reason_mentions_breach(self) -> None:
        task = make_task(due_at=_at(minutes=5))
        result = self.processor.process_manual_escalation(task, now=_at(minutes=10))
        assert result.reason == "Manual escalation due to SLA breach"


def test_should_escalate_on_breach() -> None:
    due = _at(minutes=30)
    assert should_escalate_on_breach(make_task(due_at=due), _at(minutes=30))
    assert not should_escalate_on_breach(make_task(due_at=due), _at(minutes=29))
    assert not should_escalate_on_breach(make_task(), _at(days=3))
    assert not should_escalate_on_breach(
        make_task(due_at=due, status="completed"), _at(hours=1)
    )
    assert not should_escalate_on_breach(
        make_task(due_at=due, status="escalated"), _at(hours=1)
    )


def test_build_escalation_reason_without_deadline() -> None:
    assert build_escalation_reason(make_task(), None, True, T0) == "Automatic escalation"
