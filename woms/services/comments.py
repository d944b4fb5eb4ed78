import uuid
from typing import List

import structlog
from sqlalchemy.orm import Session, joinedload

from ..errors import Forbidden, NotFound
from ..models.enums import NotificationType
from ..models.models import Comment, User, WorkOrder
from ..schemas.comments import CommentCreate, CommentUpdate
from . import permissions
from .notifications import NotificationDispatcher
from .time_rules import utcnow


logger = structlog.get_logger(__name__)


class CommentService:
    def __init__(self, clock=utcnow):
        self._clock = clock

    @staticmethod
    def _order_or_404(db: Session, work_order_id: uuid.UUID) -> WorkOrder:
        order = db.get(WorkOrder, work_order_id)
        if order is None:
            raise NotFound("Work order not found")
        return order

    @staticmethod
    def _comment_or_404(db: Session, work_order_id: uuid.UUID, comment_id: uuid.UUID) -> Comment:
        comment = db.get(Comment, comment_id)
        # A comment addressed through another order's path does not exist there
        if comment is None or comment.work_order_id != work_order_id:
            raise NotFound("Comment not found")
        return comment

    def list(self, db: Session, work_order_id: uuid.UUID) -> List[Comment]:
        self._order_or_404(db, work_order_id)
        return (
            db.query(Comment)
            .options(joinedload(Comment.user))
            .filter(Comment.work_order_id == work_order_id)
            .order_by(Comment.created_at.desc())
            .all()
        )

    def create(self, db: Session, work_order_id: uuid.UUID, data: CommentCreate, author: User) -> Comment:
        order = self._order_or_404(db, work_order_id)
        now = self._clock()
        comment = Comment(
            work_order_id=order.id,
            user_id=author.id,
            content=data.content.strip(),
            is_internal=True if data.is_internal is None else data.is_internal,
            created_at=now,
            updated_at=now,
        )
        db.add(comment)

        recipients = {order.assigned_to_id, order.created_by_id} - {None, author.id}
        for user_id in sorted(recipients, key=str):
            NotificationDispatcher.enqueue(
                db,
                user_id=user_id,
                type=NotificationType.NEW_COMMENT,
                title="New comment",
                message=f'{author.full_name} commented on work order "{order.title}"',
                work_order_id=order.id,
                sent_by_id=author.id,
            )
        db.commit()
        logger.info("comment_created", comment_id=str(comment.id), work_order_id=str(order.id), notified=len(recipients))
        return comment

    def update(self, db: Session, work_order_id: uuid.UUID, comment_id: uuid.UUID, data: CommentUpdate, actor: User) -> Comment:
        comment = self._comment_or_404(db, work_order_id, comment_id)
        if not permissions.can_edit_comment(actor, comment):
            raise Forbidden("You can only edit your own comments")
        comment.content = data.content.strip()
        if data.is_internal is not None:
            comment.is_internal = data.is_internal
        comment.updated_at = self._clock()
        db.commit()
        return comment

    def delete(self, db: Session, work_order_id: uuid.UUID, comment_id: uuid.UUID, actor: User) -> None:
        comment = self._comment_or_404(db, work_order_id, comment_id)
        if not permissions.can_delete_comment(actor, comment):
            raise Forbidden("You do not have permission to delete this comment")
        db.delete(comment)
        db.commit()
        logger.info("comment_deleted", comment_id=str(comment_id), actor=str(actor.id))
