import uuid
from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field

from ..models.enums import Role
from .common import CamelModel


class UserCreate(CamelModel):
    email: EmailStr
    password: str = Field(min_length=6)
    first_name: str = Field(min_length=1, max_length=50)
    last_name: str = Field(min_length=1, max_length=50)
    role: Role
    phone: Optional[str] = Field(default=None, max_length=50)


class UserUpdate(CamelModel):
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    role: Optional[Role] = None
    phone: Optional[str] = Field(default=None, max_length=50)
    password: Optional[str] = Field(default=None, min_length=6)


class UserStatusUpdate(CamelModel):
    is_active: bool


class UserOut(CamelModel):
    id: uuid.UUID
    email: str
    first_name: str
    last_name: str
    role: Role
    phone: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: Optional[datetime] = None


class WorkerOut(CamelModel):
    id: uuid.UUID
    first_name: str
    last_name: str
    email: str


class WorkerStatsOut(WorkerOut):
    assigned_orders_count: int
