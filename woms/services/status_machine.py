"""
Work-order status lifecycle.

NEW -> ACCEPTED -> IN_PROGRESS <-> ON_HOLD, IN_PROGRESS -> COMPLETED,
with ACCEPTED -> NEW as the only way back. COMPLETED is terminal.
"""
from typing import Dict, FrozenSet

from ..errors import BadRequest
from ..models.enums import WorkOrderStatus


STATUS_TRANSITIONS: Dict[WorkOrderStatus, FrozenSet[WorkOrderStatus]] = {
    WorkOrderStatus.NEW: frozenset({WorkOrderStatus.ACCEPTED}),
    WorkOrderStatus.ACCEPTED: frozenset({WorkOrderStatus.IN_PROGRESS, WorkOrderStatus.NEW}),
    WorkOrderStatus.IN_PROGRESS: frozenset({WorkOrderStatus.ON_HOLD, WorkOrderStatus.COMPLETED}),
    WorkOrderStatus.ON_HOLD: frozenset({WorkOrderStatus.IN_PROGRESS}),
    WorkOrderStatus.COMPLETED: frozenset(),
}

TERMINAL_STATUSES = frozenset(s for s, targets in STATUS_TRANSITIONS.items() if not targets)


def allowed_transitions(current: WorkOrderStatus) -> FrozenSet[WorkOrderStatus]:
    return STATUS_TRANSITIONS[WorkOrderStatus(current)]


def can_transition(current: WorkOrderStatus, target: WorkOrderStatus) -> bool:
    return WorkOrderStatus(target) in allowed_transitions(current)


def ensure_transition(current: WorkOrderStatus, target: WorkOrderStatus) -> None:
    current = WorkOrderStatus(current)
    target = WorkOrderStatus(target)
    if not can_transition(current, target):
        raise BadRequest(f'Cannot change status from "{current.value}" to "{target.value}"')


def is_terminal(status: WorkOrderStatus) -> bool:
    return WorkOrderStatus(status) in TERMINAL_STATUSES
