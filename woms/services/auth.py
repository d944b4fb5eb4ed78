from typing import Tuple

import structlog
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..auth.security import REFRESH, TokenService, get_password_hash, verify_password
from ..errors import BadRequest, Forbidden, Unauthorized
from ..models.enums import Role
from ..models.models import User
from ..schemas.auth import LoginRequest, RegisterRequest


logger = structlog.get_logger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def find_user_by_email(db: Session, email: str):
    return db.query(User).filter(func.lower(User.email) == normalize_email(email)).first()


class AuthService:
    def __init__(self, tokens: TokenService):
        self._tokens = tokens

    def register(self, db: Session, data: RegisterRequest) -> Tuple[User, dict]:
        if find_user_by_email(db, data.email):
            raise BadRequest("A user with this email already exists")
        # Self-registration never grants elevated roles
        user = User(
            email=normalize_email(data.email),
            password_hash=get_password_hash(data.password),
            first_name=data.first_name.strip(),
            last_name=data.last_name.strip(),
            phone=data.phone,
            role=Role.WORKER,
            is_active=True,
        )
        db.add(user)
        db.commit()
        logger.info("user_registered", user_id=str(user.id))
        return user, self._tokens.issue_pair(user)

    def login(self, db: Session, data: LoginRequest) -> Tuple[User, dict]:
        user = find_user_by_email(db, data.email)
        if user is None or not verify_password(data.password, user.password_hash):
            logger.info("login_failed", email=normalize_email(data.email))
            raise Unauthorized("Invalid email or password")
        if not user.is_active:
            raise Forbidden("Account is deactivated")
        logger.info("login_succeeded", user_id=str(user.id))
        return user, self._tokens.issue_pair(user)

    def refresh(self, db: Session, refresh_token: str) -> Tuple[User, dict]:
        payload = self._tokens.decode(refresh_token, token_type=REFRESH)
        user = db.get(User, self._tokens.subject(payload))
        if user is None or not user.is_active:
            raise Unauthorized("User not found or inactive")
        return user, self._tokens.issue_pair(user)
