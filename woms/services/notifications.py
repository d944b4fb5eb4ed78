"""
Notification outbox and read state.

Business operations call ``enqueue`` inside their own transaction, so an
intent exists if and only if the mutation committed. ``dispatch_pending``
runs after commit and turns intents into user-visible notifications; a
delivery failure marks the intent as failed and is logged, it never
reaches the caller of the business operation.
"""
import uuid
from typing import Callable, List, Optional

import structlog
from sqlalchemy import func, update
from sqlalchemy.orm import Session, joinedload, sessionmaker

from ..errors import Forbidden, NotFound
from ..models.enums import NotificationType, OutboxStatus
from ..models.models import Notification, NotificationOutbox, User
from .time_rules import utcnow


logger = structlog.get_logger(__name__)

NotificationSink = Callable[[Session, NotificationOutbox], Notification]

NOTIFICATION_LIST_LIMIT = 50


def store_notification(db: Session, intent: NotificationOutbox) -> Notification:
    """Default sink: persist the intent as an in-app notification."""
    notification = Notification(
        user_id=intent.user_id,
        type=intent.type,
        title=intent.title,
        message=intent.message,
        work_order_id=intent.work_order_id,
        sent_by_id=intent.sent_by_id,
        is_read=False,
    )
    db.add(notification)
    return notification


class NotificationDispatcher:
    def __init__(
        self,
        session_factory: sessionmaker,
        sink: NotificationSink = store_notification,
        clock: Callable = utcnow,
    ):
        self._session_factory = session_factory
        self._sink = sink
        self._clock = clock

    @staticmethod
    def enqueue(
        db: Session,
        *,
        user_id: uuid.UUID,
        type: NotificationType,
        title: str,
        message: str,
        work_order_id: Optional[uuid.UUID] = None,
        sent_by_id: Optional[uuid.UUID] = None,
    ) -> NotificationOutbox:
        intent = NotificationOutbox(
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            work_order_id=work_order_id,
            sent_by_id=sent_by_id,
            status=OutboxStatus.pending,
            attempts=0,
        )
        db.add(intent)
        return intent

    def dispatch_pending(self, limit: int = 100) -> int:
        """
        Deliver pending intents, oldest first.

        Returns:
            Number of intents delivered successfully
        """
        delivered = 0
        db = self._session_factory()
        try:
            pending_ids = [
                row_id
                for (row_id,) in db.query(NotificationOutbox.id)
                .filter(NotificationOutbox.status == OutboxStatus.pending)
                .order_by(NotificationOutbox.created_at.asc())
                .limit(limit)
                .all()
            ]
            for intent_id in pending_ids:
                if self._deliver_one(db, intent_id):
                    delivered += 1
        finally:
            db.close()
        return delivered

    def _claim(self, db: Session, intent_id: uuid.UUID) -> bool:
        """Move one intent from pending to sending; only one sweep can win."""
        result = db.execute(
            update(NotificationOutbox)
            .where(
                NotificationOutbox.id == intent_id,
                NotificationOutbox.status == OutboxStatus.pending,
            )
            .values(status=OutboxStatus.sending)
            .execution_options(synchronize_session=False)
        )
        db.commit()
        return result.rowcount == 1

    def _deliver_one(self, db: Session, intent_id: uuid.UUID) -> bool:
        if not self._claim(db, intent_id):
            logger.debug("notification_already_claimed", outbox_id=str(intent_id))
            return False
        intent = db.get(NotificationOutbox, intent_id, populate_existing=True)
        if intent is None:
            return False
        try:
            self._sink(db, intent)
            intent.status = OutboxStatus.sent
            intent.sent_at = self._clock()
            intent.attempts = (intent.attempts or 0) + 1
            db.commit()
            return True
        except Exception as e:
            db.rollback()
            logger.error(
                "notification_dispatch_failed",
                outbox_id=str(intent_id),
                error=str(e),
                exc_info=e,
            )
            intent = db.get(NotificationOutbox, intent_id)
            if intent is not None:
                intent.status = OutboxStatus.failed
                intent.error_message = str(e)[:2000]
                intent.attempts = (intent.attempts or 0) + 1
                db.commit()
            return False


class NotificationService:
    def list_for_user(self, db: Session, user: User, unread_only: bool = False) -> List[Notification]:
        query = (
            db.query(Notification)
            .options(joinedload(Notification.sent_by))
            .filter(Notification.user_id == user.id)
        )
        if unread_only:
            query = query.filter(Notification.is_read.is_(False))
        return query.order_by(Notification.created_at.desc()).limit(NOTIFICATION_LIST_LIMIT).all()

    def unread_count(self, db: Session, user: User) -> int:
        return (
            db.query(func.count(Notification.id))
            .filter(Notification.user_id == user.id, Notification.is_read.is_(False))
            .scalar()
        ) or 0

    def mark_as_read(self, db: Session, notification_id: uuid.UUID, user: User) -> Notification:
        notification = db.get(Notification, notification_id)
        if notification is None:
            raise NotFound("Notification not found")
        if notification.user_id != user.id:
            raise Forbidden("You do not have access to this notification")
        notification.is_read = True
        db.commit()
        return notification

    def mark_all_as_read(self, db: Session, user: User) -> int:
        result = db.execute(
            update(Notification)
            .where(Notification.user_id == user.id, Notification.is_read.is_(False))
            .values(is_read=True)
            .execution_options(synchronize_session="fetch")
        )
        db.commit()
        return result.rowcount or 0
