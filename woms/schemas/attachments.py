import uuid
from datetime import datetime
from typing import Optional

from .common import CamelModel


class AttachmentOut(CamelModel):
    id: uuid.UUID
    work_order_id: uuid.UUID
    file_name: str
    file_url: str
    file_type: str
    file_size: int
    uploaded_by_id: Optional[uuid.UUID] = None
    uploaded_at: datetime
