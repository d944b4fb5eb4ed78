import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth.security import get_current_user
from ..container import Container, get_container
from ..db import get_db
from ..models.models import User
from ..schemas.common import dump, envelope
from ..schemas.notifications import NotificationOut


router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.get("")
def list_notifications(
    unread_only: bool = Query(default=False, alias="unreadOnly"),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    container: Container = Depends(get_container),
):
    items = container.notification_service.list_for_user(db, user, unread_only=unread_only)
    return envelope(dump(NotificationOut, items))


@router.get("/unread-count")
def unread_count(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    container: Container = Depends(get_container),
):
    return envelope({"count": container.notification_service.unread_count(db, user)})


@router.patch("/read-all")
def mark_all_as_read(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    container: Container = Depends(get_container),
):
    updated = container.notification_service.mark_all_as_read(db, user)
    return envelope({"count": updated}, message="All notifications marked as read")


@router.patch("/{notification_id}/read")
def mark_as_read(
    notification_id: uuid.UUID,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    container: Container = Depends(get_container),
):
    notification = container.notification_service.mark_as_read(db, notification_id, user)
    return envelope(dump(NotificationOut, notification), message="Notification marked as read")
