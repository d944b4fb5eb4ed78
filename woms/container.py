from dataclasses import dataclass
from typing import Callable, Optional

from fastapi import Request
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from .auth.security import TokenService
from .config import Settings
from .db import build_engine, build_session_factory
from .services.analytics import AnalyticsService
from .services.attachments import AttachmentService
from .services.auth import AuthService
from .services.comments import CommentService
from .services.notifications import NotificationDispatcher, NotificationService, NotificationSink, store_notification
from .services.time_logs import TimeLogService
from .services.time_rules import utcnow
from .services.users import UserService
from .services.work_orders import WorkOrderService
from .storage.provider import StorageProvider


@dataclass(frozen=True)
class Container:
    settings: Settings
    engine: Engine
    session_factory: sessionmaker

    tokens: TokenService
    storage: StorageProvider
    dispatcher: NotificationDispatcher

    auth_service: AuthService
    user_service: UserService
    work_order_service: WorkOrderService
    comment_service: CommentService
    time_log_service: TimeLogService
    notification_service: NotificationService
    attachment_service: AttachmentService
    analytics_service: AnalyticsService


def build_storage(settings: Settings) -> StorageProvider:
    if settings.storage_provider == "blob":
        from .storage.blob_provider import BlobStorageProvider

        return BlobStorageProvider(settings.azure_blob_connection, settings.azure_blob_container)
    from .storage.local_provider import LocalStorageProvider

    return LocalStorageProvider(settings.local_storage_dir, settings.public_base_url)


def build_container(
    settings: Settings,
    *,
    storage: Optional[StorageProvider] = None,
    notification_sink: NotificationSink = store_notification,
    clock: Callable = utcnow,
) -> Container:
    engine = build_engine(settings.database_url)
    session_factory = build_session_factory(engine)
    tokens = TokenService.from_settings(settings)
    storage = storage or build_storage(settings)
    dispatcher = NotificationDispatcher(session_factory, sink=notification_sink, clock=clock)

    return Container(
        settings=settings,
        engine=engine,
        session_factory=session_factory,
        tokens=tokens,
        storage=storage,
        dispatcher=dispatcher,
        auth_service=AuthService(tokens),
        user_service=UserService(),
        work_order_service=WorkOrderService(storage=storage, clock=clock),
        comment_service=CommentService(clock=clock),
        time_log_service=TimeLogService(clock=clock),
        notification_service=NotificationService(),
        attachment_service=AttachmentService(storage, max_upload_bytes=settings.max_upload_bytes),
        analytics_service=AnalyticsService(settings.tz_default, clock=clock),
    )


def get_container(request: Request) -> Container:
    return request.app.state.container
