import uuid
from datetime import timedelta

import pytest

from woms.errors import BadRequest, Forbidden, NotFound
from woms.models.enums import NotificationType, OutboxStatus, WorkOrderPriority, WorkOrderStatus
from woms.models.models import Notification, NotificationOutbox, StatusHistoryEntry, WorkOrder
from woms.schemas.work_orders import WorkOrderFilters, WorkOrderUpdate


def _outbox(db):
    db.expire_all()
    return db.query(NotificationOutbox).order_by(NotificationOutbox.created_at).all()


def test_create_records_single_history_entry(db, make_order, manager):
    order = make_order()

    history = db.query(StatusHistoryEntry).filter_by(work_order_id=order.id).all()
    assert order.status == WorkOrderStatus.NEW
    assert len(history) == 1
    assert history[0].old_status is None
    assert history[0].new_status == WorkOrderStatus.NEW
    assert history[0].note == "Work order created"
    assert history[0].changed_by_id == manager.id


def test_create_with_assignee_enqueues_assignment(db, make_order, worker, manager):
    order = make_order(assignee=worker)

    rows = _outbox(db)
    assert len(rows) == 1
    assert rows[0].type == NotificationType.NEW_ASSIGNMENT
    assert rows[0].user_id == worker.id
    assert rows[0].sent_by_id == manager.id
    assert rows[0].work_order_id == order.id
    assert rows[0].status == OutboxStatus.pending


def test_create_without_assignee_enqueues_nothing(db, make_order):
    make_order()
    assert _outbox(db) == []


def test_create_rejects_inactive_assignee(make_order, make_user):
    inactive = make_user(is_active=False)
    with pytest.raises(BadRequest):
        make_order(assignee=inactive)


def test_worker_cannot_create(make_order, worker):
    with pytest.raises(Forbidden):
        make_order(creator=worker)


def test_full_lifecycle_stamps_completed_at(db, container, make_order, worker, clock):
    service = container.work_order_service
    order = make_order(assignee=worker)

    for status in (WorkOrderStatus.ACCEPTED, WorkOrderStatus.IN_PROGRESS, WorkOrderStatus.ON_HOLD, WorkOrderStatus.IN_PROGRESS):
        clock.advance(minutes=10)
        service.change_status(db, order.id, status, worker)
        assert order.completed_at is None

    clock.advance(hours=2)
    service.change_status(db, order.id, WorkOrderStatus.COMPLETED, worker, note="Done")

    assert order.status == WorkOrderStatus.COMPLETED
    assert order.completed_at == clock.now
    history = (
        db.query(StatusHistoryEntry)
        .filter_by(work_order_id=order.id)
        .order_by(StatusHistoryEntry.created_at)
        .all()
    )
    assert [h.new_status for h in history] == [
        WorkOrderStatus.NEW,
        WorkOrderStatus.ACCEPTED,
        WorkOrderStatus.IN_PROGRESS,
        WorkOrderStatus.ON_HOLD,
        WorkOrderStatus.IN_PROGRESS,
        WorkOrderStatus.COMPLETED,
    ]
    assert history[-1].note == "Done"
    assert history[-1].old_status == WorkOrderStatus.IN_PROGRESS


def test_illegal_transition_changes_nothing(db, container, make_order, manager):
    order = make_order()
    with pytest.raises(BadRequest):
        container.work_order_service.change_status(db, order.id, WorkOrderStatus.COMPLETED, manager)

    db.expire_all()
    assert db.get(WorkOrder, order.id).status == WorkOrderStatus.NEW
    assert db.query(StatusHistoryEntry).filter_by(work_order_id=order.id).count() == 1


def test_completed_order_is_immutable(db, container, make_order, manager):
    service = container.work_order_service
    order = make_order()
    for status in (WorkOrderStatus.ACCEPTED, WorkOrderStatus.IN_PROGRESS, WorkOrderStatus.COMPLETED):
        service.change_status(db, order.id, status, manager)

    for target in WorkOrderStatus:
        with pytest.raises(BadRequest):
            service.change_status(db, order.id, target, manager)
    with pytest.raises(BadRequest):
        service.update(db, order.id, WorkOrderUpdate(title="New title"), manager)


def test_status_change_error_precedence(db, container, make_order, worker, other_worker):
    service = container.work_order_service
    order = make_order(assignee=worker)

    with pytest.raises(NotFound):
        service.change_status(db, uuid.uuid4(), WorkOrderStatus.ACCEPTED, worker)
    # Forbidden wins over an illegal transition for a non-assignee worker
    with pytest.raises(Forbidden):
        service.change_status(db, order.id, WorkOrderStatus.COMPLETED, other_worker)
    with pytest.raises(BadRequest):
        service.change_status(db, order.id, WorkOrderStatus.COMPLETED, worker)


def test_status_change_notifies_creator_only_when_someone_else_acts(db, container, make_order, manager, worker):
    service = container.work_order_service
    order = make_order(assignee=worker)
    _outbox(db)  # assignment notice

    service.change_status(db, order.id, WorkOrderStatus.ACCEPTED, worker)
    rows = [r for r in _outbox(db) if r.type == NotificationType.STATUS_CHANGE]
    assert len(rows) == 1
    assert rows[0].user_id == manager.id
    assert "ACCEPTED" in rows[0].message

    service.change_status(db, order.id, WorkOrderStatus.IN_PROGRESS, manager)
    rows = [r for r in _outbox(db) if r.type == NotificationType.STATUS_CHANGE]
    assert len(rows) == 1


def test_update_only_changes_present_fields(db, container, make_order, manager, worker):
    order = make_order(assignee=worker)
    container.work_order_service.update(db, order.id, WorkOrderUpdate(priority=WorkOrderPriority.URGENT), manager)

    db.expire_all()
    fresh = db.get(WorkOrder, order.id)
    assert fresh.priority == WorkOrderPriority.URGENT
    assert fresh.title == "Fix broken barrier"
    assert fresh.assigned_to_id == worker.id


def test_update_null_assignee_unassigns(db, container, make_order, manager, worker):
    order = make_order(assignee=worker)
    container.work_order_service.update(db, order.id, WorkOrderUpdate(assigned_to_id=None), manager)

    db.expire_all()
    assert db.get(WorkOrder, order.id).assigned_to_id is None


def test_reassignment_notifies_new_assignee_only(db, container, make_order, manager, worker, other_worker):
    order = make_order(assignee=worker)
    container.work_order_service.update(db, order.id, WorkOrderUpdate(assigned_to_id=other_worker.id), manager)

    assignments = [r for r in _outbox(db) if r.type == NotificationType.NEW_ASSIGNMENT]
    assert [r.user_id for r in assignments] == [worker.id, other_worker.id]


def test_update_same_assignee_does_not_notify(db, container, make_order, manager, worker):
    order = make_order(assignee=worker)
    container.work_order_service.update(db, order.id, WorkOrderUpdate(assigned_to_id=worker.id), manager)

    assert len(_outbox(db)) == 1


def test_worker_updates_only_assigned_orders(db, container, make_order, worker, other_worker):
    order = make_order(assignee=worker)
    container.work_order_service.update(db, order.id, WorkOrderUpdate(resources="Ladder"), worker)
    with pytest.raises(Forbidden):
        container.work_order_service.update(db, order.id, WorkOrderUpdate(resources="Rope"), other_worker)


def test_delete_is_admin_only_and_cascades(db, container, make_order, admin, manager, worker):
    order = make_order(assignee=worker)
    container.time_log_service.start(db, order.id, worker)

    with pytest.raises(Forbidden):
        container.work_order_service.delete(db, order.id, manager)
    container.work_order_service.delete(db, order.id, admin)

    db.expire_all()
    assert db.get(WorkOrder, order.id) is None
    assert db.query(StatusHistoryEntry).filter_by(work_order_id=order.id).count() == 0
    with pytest.raises(NotFound):
        container.work_order_service.delete(db, order.id, admin)


def test_list_orders_by_priority_then_deadline(db, container, make_order, clock):
    make_order(title="Low soon", priority=WorkOrderPriority.LOW, deadline=clock.now + timedelta(hours=1))
    make_order(title="Urgent late", priority=WorkOrderPriority.URGENT, deadline=clock.now + timedelta(days=5))
    make_order(title="Urgent early", priority=WorkOrderPriority.URGENT, deadline=clock.now + timedelta(days=1))
    make_order(title="High", priority=WorkOrderPriority.HIGH)

    result = container.work_order_service.list(db, WorkOrderFilters(), page=1, limit=10)

    assert [o.title for o in result["items"]] == ["Urgent early", "Urgent late", "High", "Low soon"]
    assert result["pagination"] == {"page": 1, "limit": 10, "total": 4, "total_pages": 1}


def test_list_pagination_and_search(db, container, make_order):
    for i in range(5):
        make_order(title=f"Order number {i}")
    make_order(title="Paint the gate")

    page = container.work_order_service.list(db, WorkOrderFilters(), page=2, limit=4)
    assert len(page["items"]) == 2
    assert page["pagination"]["total_pages"] == 2

    found = container.work_order_service.list(db, WorkOrderFilters(search="paint"), page=1, limit=10)
    assert [o.title for o in found["items"]] == ["Paint the gate"]

    with pytest.raises(BadRequest):
        container.work_order_service.list(db, WorkOrderFilters(), page=0, limit=10)
    with pytest.raises(BadRequest):
        container.work_order_service.list(db, WorkOrderFilters(), page=1, limit=101)


def test_my_orders_are_scoped_to_assignee(db, container, make_order, worker, other_worker):
    make_order(title="Mine", assignee=worker)
    make_order(title="Theirs", assignee=other_worker)

    result = container.work_order_service.list_for_assignee(db, worker, WorkOrderFilters(), page=1, limit=10)
    assert [o.title for o in result["items"]] == ["Mine"]


def test_stats_zero_fill_and_nearing_deadline(db, container, make_order, manager, worker, clock):
    make_order(title="Due soon", deadline=clock.now + timedelta(hours=5), priority=WorkOrderPriority.HIGH)
    make_order(title="Due later", deadline=clock.now + timedelta(days=4))

    stats = container.work_order_service.stats(db, manager)

    assert stats["by_status"] == {"NEW": 2, "ACCEPTED": 0, "IN_PROGRESS": 0, "ON_HOLD": 0, "COMPLETED": 0}
    assert stats["by_priority"] == {"LOW": 0, "MEDIUM": 1, "HIGH": 1, "URGENT": 0}
    assert stats["nearing_deadline"] == 1
    assert len(stats["recent_orders"]) == 2
    with pytest.raises(Forbidden):
        container.work_order_service.stats(db, worker)


def test_dispatch_turns_outbox_into_notifications(db, container, make_order, worker):
    make_order(assignee=worker)

    assert container.dispatcher.dispatch_pending() == 1

    db.expire_all()
    notifications = db.query(Notification).filter_by(user_id=worker.id).all()
    assert len(notifications) == 1
    assert notifications[0].type == NotificationType.NEW_ASSIGNMENT
    assert _outbox(db)[0].status == OutboxStatus.sent
