import uuid

import pytest

from woms.errors import Forbidden
from woms.models.enums import Role
from woms.models.models import Comment, User, WorkOrder
from woms.services import permissions
from woms.services.permissions import Action


def _user(role):
    return User(id=uuid.uuid4(), role=role, email="x@example.com", first_name="X", last_name="Y")


def _order(assignee=None):
    return WorkOrder(id=uuid.uuid4(), assigned_to_id=assignee.id if assignee else None)


@pytest.mark.parametrize("role", [Role.ADMINISTRATOR, Role.MANAGER])
@pytest.mark.parametrize("action", [Action.create, Action.read, Action.update, Action.change_status, Action.view_stats])
def test_staff_roles_hold_everything_but_delete(role, action):
    assert permissions.can(_user(role), action, _order())


def test_only_administrator_deletes():
    assert permissions.can(_user(Role.ADMINISTRATOR), Action.delete)
    assert not permissions.can(_user(Role.MANAGER), Action.delete)
    assert not permissions.can(_user(Role.WORKER), Action.delete)


def test_worker_capabilities_depend_on_assignment():
    worker = _user(Role.WORKER)
    mine = _order(assignee=worker)
    theirs = _order(assignee=_user(Role.WORKER))
    unassigned = _order()

    assert permissions.can(worker, Action.read, theirs)
    assert not permissions.can(worker, Action.create)
    for action in (Action.update, Action.change_status):
        assert permissions.can(worker, action, mine)
        assert not permissions.can(worker, action, theirs)
        assert not permissions.can(worker, action, unassigned)
        assert not permissions.can(worker, action)


def test_ensure_raises_forbidden():
    with pytest.raises(Forbidden):
        permissions.ensure(_user(Role.WORKER), Action.view_stats)


def test_comment_rules():
    author = _user(Role.WORKER)
    admin = _user(Role.ADMINISTRATOR)
    manager = _user(Role.MANAGER)
    comment = Comment(id=uuid.uuid4(), user_id=author.id)

    assert permissions.can_edit_comment(author, comment)
    assert not permissions.can_edit_comment(admin, comment)
    assert permissions.can_delete_comment(author, comment)
    assert permissions.can_delete_comment(admin, comment)
    assert not permissions.can_delete_comment(manager, comment)


def test_ensure_role():
    permissions.ensure_role(_user(Role.MANAGER), permissions.USER_READ_ROLES)
    with pytest.raises(Forbidden):
        permissions.ensure_role(_user(Role.MANAGER), permissions.USER_ADMIN_ROLES)
