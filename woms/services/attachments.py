import os
import uuid
from typing import List, Optional

import structlog
from slugify import slugify
from sqlalchemy.orm import Session

from ..errors import BadRequest, NotFound
from ..models.models import Attachment, User, WorkOrder
from ..storage.provider import StorageProvider


logger = structlog.get_logger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"


def build_storage_key(work_order_id: uuid.UUID, file_name: str) -> str:
    """work-orders/<orderId>/<uuid><ext>, extension kept only if it slugifies cleanly."""
    _, ext = os.path.splitext(file_name or "")
    ext = slugify(ext, lowercase=True, separator="")
    suffix = f".{ext}" if ext else ""
    return f"work-orders/{work_order_id}/{uuid.uuid4()}{suffix}"


class AttachmentService:
    def __init__(self, storage: StorageProvider, max_upload_bytes: int = 5 * 1024 * 1024):
        self._storage = storage
        self._max_upload_bytes = max_upload_bytes

    def upload(
        self,
        db: Session,
        work_order_id: uuid.UUID,
        file_name: Optional[str],
        content_type: Optional[str],
        data: Optional[bytes],
        uploader: User,
    ) -> Attachment:
        if db.get(WorkOrder, work_order_id) is None:
            raise NotFound("Work order not found")
        if not file_name or data is None:
            raise BadRequest("No file selected")
        if len(data) > self._max_upload_bytes:
            limit_mb = self._max_upload_bytes // (1024 * 1024)
            raise BadRequest(f"File is too large (maximum {limit_mb} MB)")

        key = build_storage_key(work_order_id, file_name)
        url = self._storage.upload(key, data, content_type)
        attachment = Attachment(
            work_order_id=work_order_id,
            file_name=file_name,
            file_url=url,
            storage_key=key,
            file_type=content_type or DEFAULT_CONTENT_TYPE,
            file_size=len(data),
            uploaded_by_id=uploader.id,
        )
        db.add(attachment)
        db.commit()
        logger.info("attachment_uploaded", attachment_id=str(attachment.id), work_order_id=str(work_order_id), size=len(data))
        return attachment

    def list(self, db: Session, work_order_id: uuid.UUID) -> List[Attachment]:
        if db.get(WorkOrder, work_order_id) is None:
            raise NotFound("Work order not found")
        return (
            db.query(Attachment)
            .filter(Attachment.work_order_id == work_order_id)
            .order_by(Attachment.uploaded_at.desc())
            .all()
        )

    def delete(self, db: Session, attachment_id: uuid.UUID, actor: User) -> None:
        attachment = db.get(Attachment, attachment_id)
        if attachment is None:
            raise NotFound("Attachment not found")
        key = attachment.storage_key
        db.delete(attachment)
        db.commit()
        self._storage.delete(key)
        logger.info("attachment_deleted", attachment_id=str(attachment_id), actor=str(actor.id))
