import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from ..config import Settings
from ..db import get_db
from ..errors import Unauthorized
from ..models.enums import Role
from ..models.models import User
from ..services import permissions


pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
http_bearer = HTTPBearer(auto_error=False)

ACCESS = "access"
REFRESH = "refresh"


def get_password_hash(password: str) -> str:
    # pbkdf2_sha256 avoids native bcrypt backend issues
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    try:
        return pwd_context.verify(plain, hashed)
    except (ValueError, TypeError):
        return False


class TokenService:
    """Issues and verifies HS256 access/refresh tokens; refresh tokens use their own secret."""

    def __init__(
        self,
        secret: str,
        refresh_secret: str,
        algorithm: str = "HS256",
        access_ttl_seconds: int = 60 * 60 * 24 * 7,
        refresh_ttl_seconds: int = 60 * 60 * 24 * 30,
    ):
        self._secrets = {ACCESS: secret, REFRESH: refresh_secret}
        self._ttls = {ACCESS: access_ttl_seconds, REFRESH: refresh_ttl_seconds}
        self._algorithm = algorithm

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenService":
        return cls(
            secret=settings.jwt_secret,
            refresh_secret=settings.jwt_refresh_secret,
            algorithm=settings.jwt_algorithm,
            access_ttl_seconds=settings.jwt_ttl_seconds,
            refresh_ttl_seconds=settings.refresh_ttl_seconds,
        )

    def _create_token(self, user: User, token_type: str) -> str:
        now = datetime.now(tz=timezone.utc)
        payload = {
            "sub": str(user.id),
            "email": user.email,
            "role": Role(user.role).value,
            "type": token_type,
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(seconds=self._ttls[token_type])).timestamp()),
            "jti": str(uuid.uuid4()),
        }
        return jwt.encode(payload, self._secrets[token_type], algorithm=self._algorithm)

    def create_access_token(self, user: User) -> str:
        return self._create_token(user, ACCESS)

    def create_refresh_token(self, user: User) -> str:
        return self._create_token(user, REFRESH)

    def issue_pair(self, user: User) -> dict:
        return {
            "access_token": self.create_access_token(user),
            "refresh_token": self.create_refresh_token(user),
            "token_type": "bearer",
        }

    def decode(self, token: str, token_type: str = ACCESS) -> dict:
        try:
            payload = jwt.decode(token, self._secrets[token_type], algorithms=[self._algorithm])
        except jwt.ExpiredSignatureError:
            raise Unauthorized("Token expired")
        except jwt.InvalidTokenError:
            raise Unauthorized("Invalid token")
        if payload.get("type") != token_type:
            raise Unauthorized("Invalid token")
        return payload

    def subject(self, payload: dict) -> uuid.UUID:
        try:
            return uuid.UUID(str(payload.get("sub")))
        except ValueError:
            raise Unauthorized("Invalid token")


def get_current_user(
    request: Request,
    creds: Optional[HTTPAuthorizationCredentials] = Depends(http_bearer),
    db: Session = Depends(get_db),
) -> User:
    if creds is None:
        raise Unauthorized("Not authenticated")
    tokens: TokenService = request.app.state.container.tokens
    user_id = tokens.subject(tokens.decode(creds.credentials))
    # Reload on every request so deactivation and role changes apply immediately
    user = db.get(User, user_id)
    if user is None or not user.is_active:
        raise Unauthorized("User not found or inactive")
    return user


def require_roles(*roles: Role, message: str = "You do not have permission to access this resource"):
    def _dep(user: User = Depends(get_current_user)) -> User:
        permissions.ensure_role(user, roles, message)
        return user

    return _dep
