import uuid

from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.orm import Session

from ..auth.security import get_current_user
from ..container import Container, get_container
from ..db import get_db
from ..models.models import User
from ..schemas.comments import CommentCreate, CommentOut, CommentUpdate
from ..schemas.common import dump, envelope


router = APIRouter(prefix="/api/work-orders/{work_order_id}/comments", tags=["comments"])


@router.get("")
def list_comments(
    work_order_id: uuid.UUID,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    container: Container = Depends(get_container),
):
    return envelope(dump(CommentOut, container.comment_service.list(db, work_order_id)))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_comment(
    work_order_id: uuid.UUID,
    body: CommentCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    container: Container = Depends(get_container),
):
    comment = container.comment_service.create(db, work_order_id, body, user)
    background_tasks.add_task(container.dispatcher.dispatch_pending)
    return envelope(dump(CommentOut, comment), message="Comment added")


@router.put("/{comment_id}")
def update_comment(
    work_order_id: uuid.UUID,
    comment_id: uuid.UUID,
    body: CommentUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    container: Container = Depends(get_container),
):
    comment = container.comment_service.update(db, work_order_id, comment_id, body, user)
    return envelope(dump(CommentOut, comment), message="Comment updated")


@router.delete("/{comment_id}")
def delete_comment(
    work_order_id: uuid.UUID,
    comment_id: uuid.UUID,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    container: Container = Depends(get_container),
):
    container.comment_service.delete(db, work_order_id, comment_id, user)
    return envelope(message="Comment deleted")
