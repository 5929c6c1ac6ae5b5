"""Escalation chain step schema (stored shape of task.escalation_config)."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.domain.enums import EscalationAction


class EscalationStep(BaseModel):
    """One step of an escalation chain.

    Accepts the flat stored form {after, action, toUserId, toGroupId, message}
    and the fluent form {after, action, target: {userId|groupId}, message}.
    action defaults to escalate. reassign/escalate steps need a target; a
    notify step without one notifies the current assignee.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    after: str = Field(..., min_length=1)
    action: EscalationAction = EscalationAction.ESCALATE
    to_user_id: str | None = Field(default=None, alias="toUserId")
    to_group_id: str | None = Field(default=None, alias="toGroupId")
    message: str | None = None

    @model_validator(mode="before")
    @classmethod
    def flatten_target(cls, data: Any) -> Any:
        if not isinstance(data, dict) or "target" not in data:
            return data
        target = data.get("target")
        if not isinstance(target, dict):
            raise ValueError("target must be an object with userId or groupId")
        flat = {k: v for k, v in data.items() if k != "target"}
        flat.setdefault("toUserId", target.get("userId"))
        flat.setdefault("toGroupId", target.get("groupId"))
        return flat

    @model_validator(mode="after")
    def require_target(self) -> "EscalationStep":
        if self.action != EscalationAction.NOTIFY and not self.has_target:
            raise ValueError(
                f"{self.action.value} step needs toUserId or toGroupId"
            )
        return self

    @property
    def has_target(self) -> bool:
        return bool(self.to_user_id or self.to_group_id)

    def to_stored(self) -> dict[str, Any]:
        """Normalized JSON shape written to task.escalation_config."""
        return self.model_dump(mode="json", by_alias=True)
