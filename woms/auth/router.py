from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..container import Container, get_container
from ..db import get_db
from ..models.models import User
from ..schemas.auth import AuthResult, LoginRequest, RefreshRequest, RegisterRequest
from ..schemas.common import dump, envelope
from ..schemas.users import UserOut
from .security import get_current_user


router = APIRouter(prefix="/api/auth", tags=["auth"])


def _auth_result(user: User, tokens: dict) -> dict:
    return AuthResult(user=UserOut.model_validate(user), tokens=tokens).model_dump(by_alias=True, mode="json")


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(
    body: RegisterRequest,
    db: Session = Depends(get_db),
    container: Container = Depends(get_container),
):
    user, tokens = container.auth_service.register(db, body)
    return envelope(_auth_result(user, tokens), message="Registration successful")


@router.post("/login")
def login(
    body: LoginRequest,
    db: Session = Depends(get_db),
    container: Container = Depends(get_container),
):
    user, tokens = container.auth_service.login(db, body)
    return envelope(_auth_result(user, tokens), message="Login successful")


@router.post("/refresh")
def refresh(
    body: RefreshRequest,
    db: Session = Depends(get_db),
    container: Container = Depends(get_container),
):
    user, tokens = container.auth_service.refresh(db, body.refresh_token)
    return envelope(_auth_result(user, tokens))


@router.get("/profile")
def profile(user: User = Depends(get_current_user)):
    return envelope(dump(UserOut, user))
