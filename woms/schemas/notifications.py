import uuid
from datetime import datetime
from typing import Optional

from ..models.enums import NotificationType
from .common import CamelModel


class NotificationSender(CamelModel):
    first_name: str
    last_name: str


class NotificationOut(CamelModel):
    id: uuid.UUID
    user_id: uuid.UUID
    type: NotificationType
    title: str
    message: str
    work_order_id: Optional[uuid.UUID] = None
    sent_by_id: Optional[uuid.UUID] = None
    sent_by: Optional[NotificationSender] = None
    is_read: bool
    created_at: datetime
