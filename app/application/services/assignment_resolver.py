"""Resolves an assignment target to a concrete (user, group) pair.

Direct user targets pass through. Group targets keep the group as nominal
assignee and may pick one active member using the group's strategy.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections import OrderedDict

from app.application.dtos.task import AssignmentTarget, ResolvedAssignment
from app.application.interfaces.repositories import IGroupMemberLookup
from app.domain.enums import AssignmentStrategyType
from app.shared.context import RequestContext
from app.shared.telemetry.logging import get_logger

logger = get_logger(__name__)


class AssignmentStrategy(ABC):
    """Picks a member of a group (OCP: register new strategies on the resolver)."""

    @abstractmethod
    async def select_user(
        self, ctx: RequestContext, group_id: str, lookup: IGroupMemberLookup
    ) -> str | None:
        """Return the chosen member's user id, or None to leave the task unclaimed."""
        ...


class RoundRobinStrategy(AssignmentStrategy):
    """Rotates through active members ordered by join time.

    The rotation position is kept per (tenant, group) in this process only;
    it restarts from the first member after a restart. At most max_groups
    positions are kept; the least recently used group is forgotten first and
    starts over from its first member.
    """

    def __init__(self, max_groups: int = 10_000) -> None:
        self.max_groups = max_groups
        self._last_index: OrderedDict[tuple[str, str], int] = OrderedDict()

    async def select_user(
        self, ctx: RequestContext, group_id: str, lookup: IGroupMemberLookup
    ) -> str | None:
        members = await lookup.list_active_member_ids(ctx.tenant_id, group_id)
        if not members:
            return None
        key = (ctx.tenant_id, group_id)
        next_index = (self._last_index.get(key, -1) + 1) % len(members)
        self._last_index[key] = next_index
        self._last_index.move_to_end(key)
        while len(self._last_index) > self.max_groups:
            self._last_index.popitem(last=False)
        return members[next_index]

    def reset(self, group_id: str | None = None) -> None:
        if group_id is None:
            self._last_index.clear()
            return
        for key in [k for k in self._last_index if k[1] == group_id]:
            del self._last_index[key]


class LoadBalancedStrategy(AssignmentStrategy):
    """Picks the member with the fewest open tasks (first by join time on ties)."""

    async def select_user(
        self, ctx: RequestContext, group_id: str, lookup: IGroupMemberLookup
    ) -> str | None:
        members = await lookup.list_active_member_ids(ctx.tenant_id, group_id)
        if not members:
            return None
        counts = await lookup.count_active_tasks(ctx.tenant_id, members)
        return min(members, key=lambda user_id: counts.get(user_id, 0))


class DirectStrategy(AssignmentStrategy):
    """Never picks a member; the group claims the task manually."""

    async def select_user(
        self, ctx: RequestContext, group_id: str, lookup: IGroupMemberLookup
    ) -> str | None:
        return None


class AssignmentResolver:
    """Turns {user|group} targets into ResolvedAssignment."""

    def __init__(
        self,
        lookup: IGroupMemberLookup,
        strategies: dict[AssignmentStrategyType, AssignmentStrategy] | None = None,
        pick_group_member: bool = True,
    ) -> None:
        self.lookup = lookup
        self.pick_group_member = pick_group_member
        self._strategies: dict[AssignmentStrategyType, AssignmentStrategy] = strategies or {
            AssignmentStrategyType.ROUND_ROBIN: RoundRobinStrategy(),
            AssignmentStrategyType.LOAD_BALANCED: LoadBalancedStrategy(),
            AssignmentStrategyType.DIRECT: DirectStrategy(),
        }

    def register_strategy(
        self, strategy_type: AssignmentStrategyType, strategy: AssignmentStrategy
    ) -> None:
        self._strategies[strategy_type] = strategy

    def get_strategy(self, strategy_type: AssignmentStrategyType) -> AssignmentStrategy | None:
        return self._strategies.get(strategy_type)

    async def resolve(
        self,
        ctx: RequestContext,
        target: AssignmentTarget | None,
        strategy: AssignmentStrategyType | None = None,
    ) -> ResolvedAssignment:
        """Resolve target for ctx.tenant_id.

        Group strategy comes from the argument, else the group's setting,
        else round robin (unknown group).

        Raises:
            ValueError: no strategy is registered for the effective type.
        """
        target = target or AssignmentTarget()
        if target.user_id:
            return ResolvedAssignment(
                user_id=target.user_id,
                group_id=target.group_id,
                strategy=AssignmentStrategyType.DIRECT,
            )
        if not target.group_id:
            return ResolvedAssignment(
                user_id=None, group_id=None, strategy=AssignmentStrategyType.DIRECT
            )

        effective = strategy
        if effective is None:
            group = await self.lookup.get_group(ctx.tenant_id, target.group_id)
            effective = (
                group.assignment_strategy if group else AssignmentStrategyType.ROUND_ROBIN
            )
        selector = self._strategies.get(effective)
        if selector is None:
            raise ValueError(f"Unknown assignment strategy: {effective}")

        user_id = None
        if self.pick_group_member:
            user_id = await selector.select_user(ctx, target.group_id, self.lookup)
        logger.debug(
            "Resolved group %s with strategy %s to user %s",
            target.group_id,
            effective.value,
            user_id,
        )
        return ResolvedAssignment(user_id=user_id, group_id=target.group_id, strategy=effective)
