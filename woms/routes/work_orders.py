import uuid
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.orm import Session

from ..auth.security import get_current_user
from ..container import Container, get_container
from ..db import get_db
from ..models.enums import WorkOrderPriority, WorkOrderStatus
from ..models.models import User
from ..schemas.common import Page, dump, envelope
from ..schemas.work_orders import (
    StatusChangeRequest,
    WorkOrderCreate,
    WorkOrderDetailOut,
    WorkOrderFilters,
    WorkOrderOut,
    WorkOrderStatsOut,
    WorkOrderUpdate,
)


router = APIRouter(prefix="/api/work-orders", tags=["work-orders"])


def work_order_filters(
    status: Optional[WorkOrderStatus] = None,
    priority: Optional[WorkOrderPriority] = None,
    assigned_to_id: Optional[uuid.UUID] = Query(default=None, alias="assignedToId"),
    created_by_id: Optional[uuid.UUID] = Query(default=None, alias="createdById"),
    search: Optional[str] = None,
    deadline_before: Optional[datetime] = Query(default=None, alias="deadlineBefore"),
    deadline_after: Optional[datetime] = Query(default=None, alias="deadlineAfter"),
) -> WorkOrderFilters:
    return WorkOrderFilters(
        status=status,
        priority=priority,
        assigned_to_id=assigned_to_id,
        created_by_id=created_by_id,
        search=search,
        deadline_before=deadline_before,
        deadline_after=deadline_after,
    )


@router.get("")
def list_work_orders(
    filters: WorkOrderFilters = Depends(work_order_filters),
    page: int = 1,
    limit: int = 10,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    container: Container = Depends(get_container),
):
    result = container.work_order_service.list(db, filters, page=page, limit=limit)
    return envelope(dump(Page[WorkOrderOut], result))


@router.get("/my")
def my_work_orders(
    filters: WorkOrderFilters = Depends(work_order_filters),
    page: int = 1,
    limit: int = 10,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    container: Container = Depends(get_container),
):
    result = container.work_order_service.list_for_assignee(db, user, filters, page=page, limit=limit)
    return envelope(dump(Page[WorkOrderOut], result))


@router.get("/stats")
def work_order_stats(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    container: Container = Depends(get_container),
):
    return envelope(dump(WorkOrderStatsOut, container.work_order_service.stats(db, user)))


@router.get("/{work_order_id}")
def get_work_order(
    work_order_id: uuid.UUID,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    container: Container = Depends(get_container),
):
    order = container.work_order_service.get_detail(db, work_order_id)
    return envelope(dump(WorkOrderDetailOut, order))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_work_order(
    body: WorkOrderCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    container: Container = Depends(get_container),
):
    order = container.work_order_service.create(db, body, user)
    background_tasks.add_task(container.dispatcher.dispatch_pending)
    order = container.work_order_service.get_detail(db, order.id)
    return envelope(dump(WorkOrderDetailOut, order), message="Work order created")


@router.put("/{work_order_id}")
def update_work_order(
    work_order_id: uuid.UUID,
    body: WorkOrderUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    container: Container = Depends(get_container),
):
    container.work_order_service.update(db, work_order_id, body, user)
    background_tasks.add_task(container.dispatcher.dispatch_pending)
    order = container.work_order_service.get_detail(db, work_order_id)
    return envelope(dump(WorkOrderDetailOut, order), message="Work order updated")


@router.patch("/{work_order_id}/status")
def change_work_order_status(
    work_order_id: uuid.UUID,
    body: StatusChangeRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    container: Container = Depends(get_container),
):
    container.work_order_service.change_status(db, work_order_id, body.status, user, note=body.note)
    background_tasks.add_task(container.dispatcher.dispatch_pending)
    order = container.work_order_service.get_detail(db, work_order_id)
    return envelope(dump(WorkOrderDetailOut, order), message="Work order status changed")


@router.delete("/{work_order_id}")
def delete_work_order(
    work_order_id: uuid.UUID,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    container: Container = Depends(get_container),
):
    container.work_order_service.delete(db, work_order_id, user)
    return envelope(message="Work order deleted")
