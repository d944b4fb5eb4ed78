import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..auth.security import require_roles
from ..container import Container, get_container
from ..db import get_db
from ..models.enums import Role
from ..models.models import User
from ..schemas.common import dump, envelope
from ..schemas.users import UserCreate, UserOut, UserStatusUpdate, UserUpdate, WorkerOut, WorkerStatsOut
from ..services.permissions import USER_ADMIN_ROLES, USER_READ_ROLES


router = APIRouter(prefix="/api/users", tags=["users"])

require_user_admin = require_roles(*USER_ADMIN_ROLES, message="Only administrators can manage users")
require_user_reader = require_roles(*USER_READ_ROLES, message="You do not have permission to view users")


@router.get("")
def list_users(
    role: Optional[Role] = None,
    is_active: Optional[bool] = Query(default=None, alias="isActive"),
    search: Optional[str] = None,
    db: Session = Depends(get_db),
    user: User = Depends(require_user_reader),
    container: Container = Depends(get_container),
):
    users = container.user_service.list(db, role=role, is_active=is_active, search=search)
    return envelope(dump(UserOut, users))


@router.get("/workers")
def list_workers(
    db: Session = Depends(get_db),
    user: User = Depends(require_user_reader),
    container: Container = Depends(get_container),
):
    return envelope(dump(WorkerOut, container.user_service.workers(db)))


@router.get("/workers/stats")
def list_workers_with_stats(
    db: Session = Depends(get_db),
    user: User = Depends(require_user_reader),
    container: Container = Depends(get_container),
):
    rows = container.user_service.workers_with_counts(db)
    data = [
        WorkerStatsOut(
            id=worker.id,
            first_name=worker.first_name,
            last_name=worker.last_name,
            email=worker.email,
            assigned_orders_count=count,
        ).model_dump(by_alias=True, mode="json")
        for worker, count in rows
    ]
    return envelope(data)


@router.get("/{user_id}")
def get_user(
    user_id: uuid.UUID,
    db: Session = Depends(get_db),
    user: User = Depends(require_user_reader),
    container: Container = Depends(get_container),
):
    return envelope(dump(UserOut, container.user_service.get_or_404(db, user_id)))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_user(
    body: UserCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_user_admin),
    container: Container = Depends(get_container),
):
    created = container.user_service.create(db, body)
    return envelope(dump(UserOut, created), message="User created")


@router.put("/{user_id}")
def update_user(
    user_id: uuid.UUID,
    body: UserUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_user_admin),
    container: Container = Depends(get_container),
):
    updated = container.user_service.update(db, user_id, body)
    return envelope(dump(UserOut, updated), message="User updated")


@router.patch("/{user_id}/status")
def set_user_status(
    user_id: uuid.UUID,
    body: UserStatusUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_user_admin),
    container: Container = Depends(get_container),
):
    updated = container.user_service.set_active(db, user_id, body.is_active)
    message = "User activated" if body.is_active else "User deactivated"
    return envelope(dump(UserOut, updated), message=message)


@router.delete("/{user_id}")
def delete_user(
    user_id: uuid.UUID,
    hard: bool = False,
    db: Session = Depends(get_db),
    user: User = Depends(require_user_admin),
    container: Container = Depends(get_container),
):
    container.user_service.delete(db, user_id, hard=hard)
    return envelope(message="User deleted" if hard else "User deactivated")
