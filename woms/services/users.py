"""
User administration: CRUD for administrators, read-only worker lists for
managers. Deletion is soft (deactivation) unless a hard delete is asked for.
"""
import uuid
from typing import List, Optional, Tuple

import structlog
from sqlalchemy import case, func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..auth.security import get_password_hash
from ..errors import BadRequest, NotFound
from ..models.enums import Role
from ..models.models import User, WorkOrder
from ..schemas.users import UserCreate, UserUpdate
from .auth import find_user_by_email, normalize_email


logger = structlog.get_logger(__name__)

_ROLE_RANK = case(
    {Role.ADMINISTRATOR: 0, Role.MANAGER: 1, Role.WORKER: 2},
    value=User.role,
)


class UserService:
    def get_or_404(self, db: Session, user_id: uuid.UUID) -> User:
        user = db.get(User, user_id)
        if user is None:
            raise NotFound("User not found")
        return user

    def list(
        self,
        db: Session,
        role: Optional[Role] = None,
        is_active: Optional[bool] = None,
        search: Optional[str] = None,
    ) -> List[User]:
        query = db.query(User)
        if role:
            query = query.filter(User.role == role)
        if is_active is not None:
            query = query.filter(User.is_active.is_(is_active))
        if search:
            like = f"%{search.strip()}%"
            query = query.filter(
                or_(User.first_name.ilike(like), User.last_name.ilike(like), User.email.ilike(like))
            )
        return query.order_by(_ROLE_RANK.asc(), User.first_name.asc()).all()

    def create(self, db: Session, data: UserCreate) -> User:
        if find_user_by_email(db, data.email):
            raise BadRequest("A user with this email already exists")
        user = User(
            email=normalize_email(data.email),
            password_hash=get_password_hash(data.password),
            first_name=data.first_name.strip(),
            last_name=data.last_name.strip(),
            role=data.role,
            phone=data.phone,
            is_active=True,
        )
        db.add(user)
        db.commit()
        logger.info("user_created", user_id=str(user.id), role=Role(user.role).value)
        return user

    def update(self, db: Session, user_id: uuid.UUID, data: UserUpdate) -> User:
        user = self.get_or_404(db, user_id)
        changes = data.model_dump(exclude_unset=True)
        password = changes.pop("password", None)
        for field in ("first_name", "last_name", "role"):
            if changes.get(field) is not None:
                setattr(user, field, changes[field])
        if "phone" in changes:
            user.phone = changes["phone"]
        if password:
            user.password_hash = get_password_hash(password)
        db.commit()
        logger.info("user_updated", user_id=str(user.id), fields=sorted(changes), password_reset=bool(password))
        return user

    def set_active(self, db: Session, user_id: uuid.UUID, is_active: bool) -> User:
        user = self.get_or_404(db, user_id)
        user.is_active = is_active
        db.commit()
        logger.info("user_status_changed", user_id=str(user.id), is_active=is_active)
        return user

    def delete(self, db: Session, user_id: uuid.UUID, hard: bool = False) -> None:
        user = self.get_or_404(db, user_id)
        if not hard:
            user.is_active = False
            db.commit()
            logger.info("user_deactivated", user_id=str(user_id))
            return
        db.delete(user)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise BadRequest("User still owns work orders and cannot be deleted; deactivate instead")
        logger.info("user_deleted", user_id=str(user_id))

    def workers(self, db: Session) -> List[User]:
        return (
            db.query(User)
            .filter(User.role == Role.WORKER, User.is_active.is_(True))
            .order_by(User.first_name.asc(), User.last_name.asc())
            .all()
        )

    def workers_with_counts(self, db: Session) -> List[Tuple[User, int]]:
        return (
            db.query(User, func.count(WorkOrder.id))
            .outerjoin(WorkOrder, WorkOrder.assigned_to_id == User.id)
            .filter(User.role == Role.WORKER, User.is_active.is_(True))
            .group_by(User.id)
            .order_by(User.first_name.asc(), User.last_name.asc())
            .all()
        )
