"""
Role-based authorization policy.

Every check is a lookup in CAPABILITIES: a role either holds an action
outright, holds it only for orders it is assigned to, or not at all.
"""
from enum import Enum
from typing import Dict, FrozenSet, Iterable, Optional

from ..errors import Forbidden
from ..models.enums import Role
from ..models.models import Comment, User, WorkOrder


class Action(str, Enum):
    create = "create"
    read = "read"
    update = "update"
    change_status = "change_status"
    delete = "delete"
    view_stats = "view_stats"


class Grant(str, Enum):
    always = "always"
    assignee_only = "assignee_only"


CAPABILITIES: Dict[Role, Dict[Action, Grant]] = {
    Role.ADMINISTRATOR: {
        Action.create: Grant.always,
        Action.read: Grant.always,
        Action.update: Grant.always,
        Action.change_status: Grant.always,
        Action.delete: Grant.always,
        Action.view_stats: Grant.always,
    },
    Role.MANAGER: {
        Action.create: Grant.always,
        Action.read: Grant.always,
        Action.update: Grant.always,
        Action.change_status: Grant.always,
        Action.view_stats: Grant.always,
    },
    Role.WORKER: {
        Action.read: Grant.always,
        Action.update: Grant.assignee_only,
        Action.change_status: Grant.assignee_only,
    },
}

USER_ADMIN_ROLES: FrozenSet[Role] = frozenset({Role.ADMINISTRATOR})
USER_READ_ROLES: FrozenSet[Role] = frozenset({Role.ADMINISTRATOR, Role.MANAGER})
ANALYTICS_ROLES: FrozenSet[Role] = frozenset({Role.ADMINISTRATOR, Role.MANAGER})

_DENIED_MESSAGES = {
    Action.create: "You do not have permission to create work orders",
    Action.read: "You do not have permission to view this work order",
    Action.update: "You do not have permission to edit this work order",
    Action.change_status: "You do not have permission to change the status of this work order",
    Action.delete: "You do not have permission to delete work orders",
    Action.view_stats: "You do not have permission to view statistics",
}


def can(user: User, action: Action, order: Optional[WorkOrder] = None) -> bool:
    grant = CAPABILITIES.get(Role(user.role), {}).get(action)
    if grant is Grant.always:
        return True
    if grant is Grant.assignee_only:
        return order is not None and order.assigned_to_id is not None and order.assigned_to_id == user.id
    return False


def ensure(user: User, action: Action, order: Optional[WorkOrder] = None) -> None:
    if not can(user, action, order):
        raise Forbidden(_DENIED_MESSAGES[action])


def has_role(user: User, roles: Iterable[Role]) -> bool:
    return Role(user.role) in set(roles)


def ensure_role(user: User, roles: Iterable[Role], message: str = "You do not have permission to access this resource") -> None:
    if not has_role(user, roles):
        raise Forbidden(message)


def can_edit_comment(user: User, comment: Comment) -> bool:
    return comment.user_id == user.id


def can_delete_comment(user: User, comment: Comment) -> bool:
    return comment.user_id == user.id or Role(user.role) == Role.ADMINISTRATOR
