import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..auth.security import get_current_user
from ..container import Container, get_container
from ..db import get_db
from ..models.models import User
from ..schemas.common import dump, envelope
from ..schemas.time_logs import ManualLogRequest, TimeLogOut, TimerStartRequest, TimerStopRequest


router = APIRouter(prefix="/api/time-logs", tags=["time-logs"])


@router.post("/start", status_code=status.HTTP_201_CREATED)
def start_timer(
    body: TimerStartRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    container: Container = Depends(get_container),
):
    log = container.time_log_service.start(db, body.work_order_id, user)
    return envelope(dump(TimeLogOut, log), message="Timer started")


@router.post("/stop")
def stop_timer(
    body: TimerStopRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    container: Container = Depends(get_container),
):
    log = container.time_log_service.stop(db, user, note=body.note)
    return envelope(dump(TimeLogOut, log), message="Timer stopped")


@router.post("/manual", status_code=status.HTTP_201_CREATED)
def log_manual(
    body: ManualLogRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    container: Container = Depends(get_container),
):
    log = container.time_log_service.log_manual(
        db, body.work_order_id, user, body.start_time, body.end_time, note=body.note
    )
    return envelope(dump(TimeLogOut, log), message="Time logged")


@router.get("/active")
def active_timer(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    container: Container = Depends(get_container),
):
    log = container.time_log_service.active(db, user)
    # No running timer is a normal state, reported as data: null
    return {"success": True, "data": dump(TimeLogOut, log) if log else None}


@router.get("/work-order/{work_order_id}")
def logs_for_work_order(
    work_order_id: uuid.UUID,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    container: Container = Depends(get_container),
):
    return envelope(dump(TimeLogOut, container.time_log_service.for_work_order(db, work_order_id)))
