"""
Aggregate reporting over work orders and time logs.

Period boundaries (week, month) are resolved in the configured local
timezone; everything else is compared in UTC.
"""
import csv
import io
import math
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple

import pytz
from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from ..errors import BadRequest
from ..models.enums import Role, WorkOrderPriority, WorkOrderStatus
from ..models.models import TimeLog, User, WorkOrder
from .time_rules import ensure_utc, iter_months, period_range, subtract_months, utcnow


PERIODS = ("week", "month", "last30")
ACTIVE_STATUSES = (
    WorkOrderStatus.NEW,
    WorkOrderStatus.ACCEPTED,
    WorkOrderStatus.IN_PROGRESS,
    WorkOrderStatus.ON_HOLD,
)
MONTH_ABBR = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

WORK_ORDER_CSV_HEADER = ["ID", "Title", "Status", "Priority", "Created by", "Assigned to", "Created at", "Deadline"]
WORKER_CSV_HEADER = ["ID", "Name", "Total assigned", "Completed", "Avg time (h)", "On time (%)", "Hours logged"]


def round_half_up(value: float, digits: int = 0) -> float:
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


class AnalyticsService:
    def __init__(self, timezone_str: str = "UTC", clock: Callable = utcnow):
        self._tz = timezone_str
        self._clock = clock

    def resolve_period(self, period: Optional[str]) -> Optional[Tuple[datetime, datetime]]:
        if period and period not in PERIODS:
            raise BadRequest(f"Unknown period \"{period}\"; expected one of {', '.join(PERIODS)}")
        return period_range(period, self._tz, now=self._clock())

    def dashboard(self, db: Session, period: Optional[str] = None) -> Dict:
        window = self.resolve_period(period)

        def scoped(query):
            if window:
                query = query.filter(WorkOrder.created_at >= window[0], WorkOrder.created_at <= window[1])
            return query

        by_status = {s.value: 0 for s in WorkOrderStatus}
        for status, count in scoped(db.query(WorkOrder.status, func.count(WorkOrder.id))).group_by(WorkOrder.status):
            by_status[WorkOrderStatus(status).value] = count
        by_priority = {p.value: 0 for p in WorkOrderPriority}
        for priority, count in scoped(db.query(WorkOrder.priority, func.count(WorkOrder.id))).group_by(WorkOrder.priority):
            by_priority[WorkOrderPriority(priority).value] = count

        total = sum(by_status.values())
        completed = by_status[WorkOrderStatus.COMPLETED.value]
        active = sum(by_status[s.value] for s in ACTIVE_STATUSES)
        return {
            "total_orders": total,
            "active_orders": active,
            "completed_orders": completed,
            "completion_rate": (completed / total) * 100 if total else 0,
            "by_status": by_status,
            "by_priority": by_priority,
        }

    def workers(self, db: Session, period: Optional[str] = None) -> List[Dict]:
        window = self.resolve_period(period)
        workers = (
            db.query(User)
            .filter(User.role == Role.WORKER, User.is_active.is_(True))
            .all()
        )

        order_query = db.query(WorkOrder).filter(WorkOrder.assigned_to_id.in_([w.id for w in workers]))
        log_query = db.query(TimeLog.user_id, func.coalesce(func.sum(TimeLog.duration), 0)).filter(
            TimeLog.user_id.in_([w.id for w in workers])
        )
        if window:
            order_query = order_query.filter(WorkOrder.created_at >= window[0], WorkOrder.created_at <= window[1])
            log_query = log_query.filter(TimeLog.start_time >= window[0], TimeLog.start_time <= window[1])

        orders_by_worker: Dict = {w.id: [] for w in workers}
        for order in order_query.all():
            orders_by_worker[order.assigned_to_id].append(order)
        minutes_by_worker = dict(log_query.group_by(TimeLog.user_id).all())

        rows = []
        for worker in workers:
            assigned = orders_by_worker[worker.id]
            completed = [o for o in assigned if o.status == WorkOrderStatus.COMPLETED]
            hours = [
                (ensure_utc(o.completed_at) - ensure_utc(o.created_at)).total_seconds() / 3600
                for o in completed
                if o.completed_at
            ]
            on_time = [o for o in completed if o.completed_at and ensure_utc(o.completed_at) <= ensure_utc(o.deadline)]
            minutes = minutes_by_worker.get(worker.id, 0) or 0
            rows.append(
                {
                    "id": worker.id,
                    "name": worker.full_name,
                    "total_assigned": len(assigned),
                    "completed_count": len(completed),
                    "avg_completion_time": round_half_up(sum(hours) / len(hours), 1) if hours else 0,
                    "on_time_rate": int(round_half_up(len(on_time) / len(completed) * 100)) if completed else 0,
                    "total_hours_logged": round_half_up(minutes / 60, 1),
                }
            )
        # Stable sort keeps query order among equal counts
        rows.sort(key=lambda r: r["completed_count"], reverse=True)
        return rows

    def trends(self, db: Session, months: int = 6) -> List[Dict]:
        if months < 1 or months > 36:
            raise BadRequest("Months must be between 1 and 36")
        tz = pytz.timezone(self._tz)
        end_local = ensure_utc(self._clock()).astimezone(tz)
        start_local = subtract_months(end_local, months)

        counts: Dict[Tuple[int, int], Dict[str, int]] = {}
        rows = (
            db.query(WorkOrder.created_at, WorkOrder.status)
            .filter(WorkOrder.created_at >= start_local.astimezone(pytz.utc))
            .all()
        )
        for created_at, status in rows:
            local = ensure_utc(created_at).astimezone(tz)
            bucket = counts.setdefault((local.year, local.month), {"total": 0, "completed": 0})
            bucket["total"] += 1
            if status == WorkOrderStatus.COMPLETED:
                bucket["completed"] += 1

        result = []
        for year, month in iter_months(start_local, end_local):
            bucket = counts.get((year, month), {"total": 0, "completed": 0})
            result.append({"month": f"{MONTH_ABBR[month - 1]} {year}", **bucket})
        return result

    # ---------- CSV export ----------
    def export_work_orders_csv(self, db: Session) -> str:
        orders = (
            db.query(WorkOrder)
            .options(joinedload(WorkOrder.created_by), joinedload(WorkOrder.assigned_to))
            .order_by(WorkOrder.created_at.desc())
            .all()
        )
        out = io.StringIO()
        writer = csv.writer(out)
        writer.writerow(WORK_ORDER_CSV_HEADER)
        for order in orders:
            writer.writerow(
                [
                    str(order.id),
                    order.title,
                    WorkOrderStatus(order.status).value,
                    WorkOrderPriority(order.priority).value,
                    order.created_by.full_name if order.created_by else "N/A",
                    order.assigned_to.full_name if order.assigned_to else "N/A",
                    ensure_utc(order.created_at).isoformat(),
                    ensure_utc(order.deadline).isoformat(),
                ]
            )
        return out.getvalue()

    def export_workers_csv(self, db: Session) -> str:
        out = io.StringIO()
        writer = csv.writer(out)
        writer.writerow(WORKER_CSV_HEADER)
        for row in self.workers(db):
            writer.writerow(
                [
                    str(row["id"]),
                    row["name"],
                    row["total_assigned"],
                    row["completed_count"],
                    row["avg_completion_time"],
                    row["on_time_rate"],
                    row["total_hours_logged"],
                ]
            )
        return out.getvalue()
