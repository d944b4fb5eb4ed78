import uuid
from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile, status
from sqlalchemy.orm import Session

from ..auth.security import get_current_user
from ..container import Container, get_container
from ..db import get_db
from ..models.models import User
from ..schemas.attachments import AttachmentOut
from ..schemas.common import dump, envelope


router = APIRouter(prefix="/api/attachments", tags=["attachments"])


@router.post("/upload/{work_order_id}", status_code=status.HTTP_201_CREATED)
def upload_attachment(
    work_order_id: uuid.UUID,
    file: Optional[UploadFile] = File(default=None),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    container: Container = Depends(get_container),
):
    data = file.file.read() if file is not None else None
    attachment = container.attachment_service.upload(
        db,
        work_order_id,
        file_name=file.filename if file is not None else None,
        content_type=file.content_type if file is not None else None,
        data=data,
        uploader=user,
    )
    return envelope(dump(AttachmentOut, attachment), message="File uploaded")


@router.get("/work-order/{work_order_id}")
def list_attachments(
    work_order_id: uuid.UUID,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    container: Container = Depends(get_container),
):
    return envelope(dump(AttachmentOut, container.attachment_service.list(db, work_order_id)))


@router.delete("/{attachment_id}")
def delete_attachment(
    attachment_id: uuid.UUID,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    container: Container = Depends(get_container),
):
    container.attachment_service.delete(db, attachment_id, user)
    return envelope(message="Attachment deleted")
