"""
Work-order lifecycle: creation, assignment, field updates, status
transitions and the read side (listing, detail, stats).

Every mutation commits the order, its history row and any notification
intents in one transaction.
"""
import math
import uuid
from datetime import timedelta
from typing import Callable, Dict, List, Optional

import structlog
from sqlalchemy import case, func, or_
from sqlalchemy.orm import Query, Session, joinedload, selectinload

from ..errors import BadRequest, NotFound
from ..models.enums import NotificationType, WorkOrderPriority, WorkOrderStatus
from ..models.models import Comment, StatusHistoryEntry, User, WorkOrder
from ..schemas.work_orders import WorkOrderCreate, WorkOrderFilters, WorkOrderUpdate
from ..storage.provider import StorageProvider
from . import permissions
from .notifications import NotificationDispatcher
from .permissions import Action
from .status_machine import ensure_transition
from .time_rules import ensure_utc, utcnow


logger = structlog.get_logger(__name__)

CREATED_NOTE = "Work order created"
MAX_PAGE_SIZE = 100

_PRIORITY_RANK = case(
    {
        WorkOrderPriority.LOW: 0,
        WorkOrderPriority.MEDIUM: 1,
        WorkOrderPriority.HIGH: 2,
        WorkOrderPriority.URGENT: 3,
    },
    value=WorkOrder.priority,
)


class WorkOrderService:
    def __init__(self, storage: Optional[StorageProvider] = None, clock: Callable = utcnow):
        self._storage = storage
        self._clock = clock

    # ---------- lookups ----------
    def get_or_404(self, db: Session, work_order_id: uuid.UUID) -> WorkOrder:
        order = db.get(WorkOrder, work_order_id)
        if order is None:
            raise NotFound("Work order not found")
        return order

    def get_detail(self, db: Session, work_order_id: uuid.UUID) -> WorkOrder:
        order = (
            db.query(WorkOrder)
            .options(
                joinedload(WorkOrder.created_by),
                joinedload(WorkOrder.assigned_to),
                selectinload(WorkOrder.status_history),
                selectinload(WorkOrder.comments).joinedload(Comment.user),
                selectinload(WorkOrder.attachments),
            )
            .filter(WorkOrder.id == work_order_id)
            .populate_existing()
            .first()
        )
        if order is None:
            raise NotFound("Work order not found")
        return order

    @staticmethod
    def _validate_assignee(db: Session, user_id: uuid.UUID) -> User:
        assignee = db.get(User, user_id)
        if assignee is None:
            raise BadRequest("Assigned user not found")
        if not assignee.is_active:
            raise BadRequest("Assigned user is not active")
        return assignee

    # ---------- mutations ----------
    def create(self, db: Session, data: WorkOrderCreate, creator: User) -> WorkOrder:
        permissions.ensure(creator, Action.create)
        if data.assigned_to_id:
            self._validate_assignee(db, data.assigned_to_id)

        order = WorkOrder(
            title=data.title.strip(),
            description=data.description,
            location=data.location.strip(),
            latitude=data.latitude,
            longitude=data.longitude,
            priority=data.priority or WorkOrderPriority.MEDIUM,
            status=WorkOrderStatus.NEW,
            deadline=ensure_utc(data.deadline),
            resources=data.resources,
            created_by_id=creator.id,
            assigned_to_id=data.assigned_to_id,
            created_at=self._clock(),
            updated_at=self._clock(),
        )
        db.add(order)
        db.flush()
        db.add(
            StatusHistoryEntry(
                work_order_id=order.id,
                old_status=None,
                new_status=WorkOrderStatus.NEW,
                note=CREATED_NOTE,
                changed_by_id=creator.id,
                created_at=self._clock(),
            )
        )
        if order.assigned_to_id:
            self._enqueue_assignment(db, order, sent_by=creator)
        db.commit()
        logger.info("work_order_created", work_order_id=str(order.id), created_by=str(creator.id))
        return order

    def update(self, db: Session, work_order_id: uuid.UUID, data: WorkOrderUpdate, actor: User) -> WorkOrder:
        order = self.get_or_404(db, work_order_id)
        permissions.ensure(actor, Action.update, order)
        if order.status == WorkOrderStatus.COMPLETED:
            raise BadRequest("Completed work orders cannot be edited")

        changes = data.model_dump(exclude_unset=True)
        previous_assignee = order.assigned_to_id
        new_assignee = changes.get("assigned_to_id", previous_assignee)
        if "assigned_to_id" in changes and new_assignee is not None:
            self._validate_assignee(db, new_assignee)

        for field in ("title", "description", "location", "priority", "deadline"):
            # Required columns: an explicit null leaves the value untouched
            value = changes.get(field)
            if value is not None:
                setattr(order, field, ensure_utc(value) if field == "deadline" else value)
        for field in ("latitude", "longitude", "resources", "assigned_to_id"):
            if field in changes:
                setattr(order, field, changes[field])
        order.updated_at = self._clock()

        if new_assignee is not None and new_assignee != previous_assignee:
            self._enqueue_assignment(db, order, sent_by=actor)
        db.commit()
        logger.info("work_order_updated", work_order_id=str(order.id), actor=str(actor.id), fields=sorted(changes))
        return order

    def change_status(
        self,
        db: Session,
        work_order_id: uuid.UUID,
        new_status: WorkOrderStatus,
        actor: User,
        note: Optional[str] = None,
    ) -> WorkOrder:
        order = self.get_or_404(db, work_order_id)
        permissions.ensure(actor, Action.change_status, order)
        new_status = WorkOrderStatus(new_status)
        old_status = WorkOrderStatus(order.status)
        ensure_transition(old_status, new_status)

        now = self._clock()
        order.status = new_status
        if new_status == WorkOrderStatus.COMPLETED:
            order.completed_at = now
        order.updated_at = now
        db.add(
            StatusHistoryEntry(
                work_order_id=order.id,
                old_status=old_status,
                new_status=new_status,
                note=note,
                changed_by_id=actor.id,
                created_at=now,
            )
        )
        if order.created_by_id and order.created_by_id != actor.id:
            NotificationDispatcher.enqueue(
                db,
                user_id=order.created_by_id,
                type=NotificationType.STATUS_CHANGE,
                title="Status changed",
                message=f'Status of work order "{order.title}" changed to {new_status.value}.',
                work_order_id=order.id,
                sent_by_id=actor.id,
            )
        db.commit()
        logger.info(
            "work_order_status_changed",
            work_order_id=str(order.id),
            old_status=old_status.value,
            new_status=new_status.value,
            actor=str(actor.id),
        )
        return order

    def delete(self, db: Session, work_order_id: uuid.UUID, actor: User) -> None:
        permissions.ensure(actor, Action.delete)
        order = self.get_or_404(db, work_order_id)
        storage_keys = [a.storage_key for a in order.attachments]
        db.delete(order)
        db.commit()
        logger.info("work_order_deleted", work_order_id=str(work_order_id), actor=str(actor.id))
        if self._storage is not None:
            for key in storage_keys:
                self._storage.delete(key)

    @staticmethod
    def _enqueue_assignment(db: Session, order: WorkOrder, sent_by: User) -> None:
        NotificationDispatcher.enqueue(
            db,
            user_id=order.assigned_to_id,
            type=NotificationType.NEW_ASSIGNMENT,
            title="New work order",
            message=f"You have been assigned a new work order: {order.title}",
            work_order_id=order.id,
            sent_by_id=sent_by.id,
        )

    # ---------- read side ----------
    @staticmethod
    def _apply_filters(query: Query, filters: WorkOrderFilters) -> Query:
        if filters.status:
            query = query.filter(WorkOrder.status == filters.status)
        if filters.priority:
            query = query.filter(WorkOrder.priority == filters.priority)
        if filters.assigned_to_id:
            query = query.filter(WorkOrder.assigned_to_id == filters.assigned_to_id)
        if filters.created_by_id:
            query = query.filter(WorkOrder.created_by_id == filters.created_by_id)
        if filters.search:
            like = f"%{filters.search.strip()}%"
            query = query.filter(
                or_(
                    WorkOrder.title.ilike(like),
                    WorkOrder.description.ilike(like),
                    WorkOrder.location.ilike(like),
                )
            )
        if filters.deadline_before:
            query = query.filter(WorkOrder.deadline <= ensure_utc(filters.deadline_before))
        if filters.deadline_after:
            query = query.filter(WorkOrder.deadline >= ensure_utc(filters.deadline_after))
        return query

    def list(self, db: Session, filters: WorkOrderFilters, page: int = 1, limit: int = 10) -> Dict:
        if page < 1:
            raise BadRequest("Page must be a positive number")
        if limit < 1 or limit > MAX_PAGE_SIZE:
            raise BadRequest(f"Limit must be between 1 and {MAX_PAGE_SIZE}")

        base = self._apply_filters(db.query(WorkOrder), filters)
        total = base.count()
        items = (
            base.options(joinedload(WorkOrder.created_by), joinedload(WorkOrder.assigned_to))
            .order_by(_PRIORITY_RANK.desc(), WorkOrder.deadline.asc(), WorkOrder.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return {
            "items": items,
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "total_pages": math.ceil(total / limit) if total else 0,
            },
        }

    def list_for_assignee(self, db: Session, user: User, filters: WorkOrderFilters, page: int = 1, limit: int = 10) -> Dict:
        scoped = filters.model_copy(update={"assigned_to_id": user.id})
        return self.list(db, scoped, page=page, limit=limit)

    def stats(self, db: Session, actor: User) -> Dict:
        permissions.ensure(actor, Action.view_stats)
        now = self._clock()

        by_status = {s.value: 0 for s in WorkOrderStatus}
        for status, count in db.query(WorkOrder.status, func.count(WorkOrder.id)).group_by(WorkOrder.status):
            by_status[WorkOrderStatus(status).value] = count

        by_priority = {p.value: 0 for p in WorkOrderPriority}
        for priority, count in db.query(WorkOrder.priority, func.count(WorkOrder.id)).group_by(WorkOrder.priority):
            by_priority[WorkOrderPriority(priority).value] = count

        nearing_deadline = (
            db.query(func.count(WorkOrder.id))
            .filter(
                WorkOrder.deadline >= now,
                WorkOrder.deadline <= now + timedelta(hours=24),
                WorkOrder.status != WorkOrderStatus.COMPLETED,
            )
            .scalar()
        ) or 0

        recent: List[WorkOrder] = (
            db.query(WorkOrder)
            .options(joinedload(WorkOrder.assigned_to), joinedload(WorkOrder.created_by))
            .order_by(WorkOrder.created_at.desc())
            .limit(5)
            .all()
        )
        return {
            "by_status": by_status,
            "by_priority": by_priority,
            "nearing_deadline": nearing_deadline,
            "recent_orders": recent,
        }
