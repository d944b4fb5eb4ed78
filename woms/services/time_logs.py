"""
Time tracking against work orders.

A user has at most one running timer. The pre-check below produces the
friendly error; the partial unique index on open timers catches the race
between two concurrent starts.
"""
import uuid
from datetime import datetime
from typing import Callable, List, Optional

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from ..errors import BadRequest, NotFound
from ..models.models import TimeLog, User, WorkOrder
from .time_rules import duration_minutes, ensure_utc, utcnow


logger = structlog.get_logger(__name__)


class TimeLogService:
    def __init__(self, clock: Callable = utcnow):
        self._clock = clock

    @staticmethod
    def _open_timer(db: Session, user_id: uuid.UUID) -> Optional[TimeLog]:
        return (
            db.query(TimeLog)
            .options(joinedload(TimeLog.work_order))
            .filter(TimeLog.user_id == user_id, TimeLog.end_time.is_(None))
            .first()
        )

    @staticmethod
    def _order_or_404(db: Session, work_order_id: uuid.UUID) -> WorkOrder:
        order = db.get(WorkOrder, work_order_id)
        if order is None:
            raise NotFound("Work order not found")
        return order

    def start(self, db: Session, work_order_id: uuid.UUID, user: User) -> TimeLog:
        running = self._open_timer(db, user.id)
        if running is not None:
            title = running.work_order.title if running.work_order else str(running.work_order_id)
            raise BadRequest(f'You already have an active timer on work order "{title}". Stop it first.')
        self._order_or_404(db, work_order_id)

        log = TimeLog(
            work_order_id=work_order_id,
            user_id=user.id,
            start_time=self._clock(),
            end_time=None,
            is_manual_entry=False,
        )
        db.add(log)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise BadRequest("You already have an active timer. Stop it first.")
        logger.info("timer_started", time_log_id=str(log.id), user_id=str(user.id), work_order_id=str(work_order_id))
        return log

    def stop(self, db: Session, user: User, note: Optional[str] = None) -> TimeLog:
        log = self._open_timer(db, user.id)
        if log is None:
            raise NotFound("You have no active timer")
        now = self._clock()
        log.end_time = now
        log.duration = duration_minutes(log.start_time, now)
        if note is not None:
            log.note = note
        db.commit()
        logger.info("timer_stopped", time_log_id=str(log.id), user_id=str(user.id), duration=log.duration)
        return log

    def log_manual(
        self,
        db: Session,
        work_order_id: uuid.UUID,
        user: User,
        start_time: datetime,
        end_time: datetime,
        note: Optional[str] = None,
    ) -> TimeLog:
        start_time, end_time = ensure_utc(start_time), ensure_utc(end_time)
        if end_time <= start_time:
            raise BadRequest("End time must be after start time")
        self._order_or_404(db, work_order_id)

        log = TimeLog(
            work_order_id=work_order_id,
            user_id=user.id,
            start_time=start_time,
            end_time=end_time,
            duration=duration_minutes(start_time, end_time),
            note=note,
            is_manual_entry=True,
        )
        db.add(log)
        db.commit()
        logger.info("time_logged_manually", time_log_id=str(log.id), user_id=str(user.id), duration=log.duration)
        return log

    def active(self, db: Session, user: User) -> Optional[TimeLog]:
        return self._open_timer(db, user.id)

    def for_work_order(self, db: Session, work_order_id: uuid.UUID) -> List[TimeLog]:
        self._order_or_404(db, work_order_id)
        return (
            db.query(TimeLog)
            .options(joinedload(TimeLog.user))
            .filter(TimeLog.work_order_id == work_order_id)
            .order_by(TimeLog.start_time.desc())
            .all()
        )
