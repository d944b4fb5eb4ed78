import uuid
from datetime import datetime
from typing import Optional

from pydantic import Field

from ..models.enums import WorkOrderStatus
from .common import CamelModel


class TimerStartRequest(CamelModel):
    work_order_id: uuid.UUID


class TimerStopRequest(CamelModel):
    note: Optional[str] = None


class ManualLogRequest(CamelModel):
    work_order_id: uuid.UUID
    start_time: datetime
    end_time: datetime
    note: Optional[str] = None


class TimeLogWorkOrder(CamelModel):
    id: uuid.UUID
    title: str
    status: WorkOrderStatus


class TimeLogUser(CamelModel):
    first_name: str
    last_name: str


class TimeLogOut(CamelModel):
    id: uuid.UUID
    work_order_id: uuid.UUID
    user_id: uuid.UUID
    start_time: datetime
    end_time: Optional[datetime] = None
    duration: Optional[int] = Field(default=None, description="minutes")
    note: Optional[str] = None
    is_manual_entry: bool
    work_order: Optional[TimeLogWorkOrder] = None
    user: Optional[TimeLogUser] = None
