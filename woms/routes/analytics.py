from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sqlalchemy.orm import Session

from ..auth.security import require_roles
from ..container import Container, get_container
from ..db import get_db
from ..models.models import User
from ..schemas.analytics import DashboardOut, TrendPointOut, WorkerPerformanceOut
from ..schemas.common import dump, envelope
from ..services.permissions import ANALYTICS_ROLES


router = APIRouter(prefix="/api/analytics", tags=["analytics"])

require_analytics = require_roles(*ANALYTICS_ROLES, message="You do not have permission to view analytics")


@router.get("/dashboard")
def dashboard(
    period: Optional[str] = None,
    db: Session = Depends(get_db),
    user: User = Depends(require_analytics),
    container: Container = Depends(get_container),
):
    return envelope(dump(DashboardOut, container.analytics_service.dashboard(db, period)))


@router.get("/workers")
def worker_performance(
    period: Optional[str] = None,
    db: Session = Depends(get_db),
    user: User = Depends(require_analytics),
    container: Container = Depends(get_container),
):
    return envelope(dump(WorkerPerformanceOut, container.analytics_service.workers(db, period)))


@router.get("/trends")
def trends(
    months: int = 6,
    db: Session = Depends(get_db),
    user: User = Depends(require_analytics),
    container: Container = Depends(get_container),
):
    return envelope(dump(TrendPointOut, container.analytics_service.trends(db, months)))


@router.get("/export")
def export(
    type: Optional[str] = None,
    db: Session = Depends(get_db),
    user: User = Depends(require_analytics),
    container: Container = Depends(get_container),
):
    if type == "workers":
        content, filename = container.analytics_service.export_workers_csv(db), "worker_performance.csv"
    else:
        content, filename = container.analytics_service.export_work_orders_csv(db), "work_orders.csv"
    return Response(
        content=content.encode("utf-8-sig"),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
