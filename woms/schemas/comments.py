import uuid
from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from ..models.enums import Role
from .common import CamelModel


class CommentCreate(CamelModel):
    content: str = Field(min_length=1)
    is_internal: Optional[bool] = None

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Comment content must not be empty")
        return v


class CommentUpdate(CommentCreate):
    is_internal: Optional[bool] = None


class CommentAuthor(CamelModel):
    id: uuid.UUID
    first_name: str
    last_name: str
    email: str
    role: Role


class CommentOut(CamelModel):
    id: uuid.UUID
    work_order_id: uuid.UUID
    user_id: uuid.UUID
    content: str
    is_internal: bool
    created_at: datetime
    updated_at: Optional[datetime] = None
    user: Optional[CommentAuthor] = None
