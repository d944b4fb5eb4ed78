import uuid
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import Field, field_validator

from ..models.enums import WorkOrderPriority, WorkOrderStatus
from .attachments import AttachmentOut
from .comments import CommentOut
from .common import CamelModel, UserRef


class WorkOrderCreate(CamelModel):
    title: str = Field(min_length=3, max_length=200)
    description: str = Field(min_length=10)
    location: str = Field(min_length=1, max_length=255)
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    priority: WorkOrderPriority = WorkOrderPriority.MEDIUM
    deadline: datetime
    resources: Optional[str] = None
    assigned_to_id: Optional[uuid.UUID] = None

    @field_validator("location")
    @classmethod
    def location_not_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("Location must not be empty")
        return v


class WorkOrderUpdate(CamelModel):
    title: Optional[str] = Field(default=None, min_length=3, max_length=200)
    description: Optional[str] = Field(default=None, min_length=10)
    location: Optional[str] = Field(default=None, max_length=255)
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    priority: Optional[WorkOrderPriority] = None
    deadline: Optional[datetime] = None
    resources: Optional[str] = None
    assigned_to_id: Optional[uuid.UUID] = None

    @field_validator("location")
    @classmethod
    def location_not_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("Location must not be empty")
        return v


class StatusChangeRequest(CamelModel):
    status: WorkOrderStatus
    note: Optional[str] = Field(default=None, max_length=500)


class WorkOrderFilters(CamelModel):
    status: Optional[WorkOrderStatus] = None
    priority: Optional[WorkOrderPriority] = None
    assigned_to_id: Optional[uuid.UUID] = None
    created_by_id: Optional[uuid.UUID] = None
    search: Optional[str] = None
    deadline_before: Optional[datetime] = None
    deadline_after: Optional[datetime] = None


class StatusHistoryOut(CamelModel):
    id: uuid.UUID
    old_status: Optional[WorkOrderStatus] = None
    new_status: WorkOrderStatus
    note: Optional[str] = None
    changed_by_id: Optional[uuid.UUID] = None
    created_at: datetime


class WorkOrderOut(CamelModel):
    id: uuid.UUID
    title: str
    description: str
    location: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    priority: WorkOrderPriority
    status: WorkOrderStatus
    deadline: datetime
    resources: Optional[str] = None
    created_by_id: uuid.UUID
    assigned_to_id: Optional[uuid.UUID] = None
    completed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    created_by: Optional[UserRef] = None
    assigned_to: Optional[UserRef] = None


class WorkOrderDetailOut(WorkOrderOut):
    status_history: List[StatusHistoryOut] = []
    comments: List[CommentOut] = []
    attachments: List[AttachmentOut] = []


class WorkOrderStatsOut(CamelModel):
    by_status: Dict[str, int]
    by_priority: Dict[str, int]
    nearing_deadline: int
    recent_orders: List[WorkOrderOut]
