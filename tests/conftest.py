import itertools
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from woms.auth.security import get_password_hash
from woms.config import Settings
from woms.container import build_container
from woms.db import Base
from woms.main import create_app
from woms.models.enums import Role, WorkOrderPriority
from woms.models.models import User
from woms.schemas.work_orders import WorkOrderCreate


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock(datetime(2025, 3, 12, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'woms.db'}",
        storage_provider="local",
        local_storage_dir=str(tmp_path / "storage"),
        public_base_url="http://testserver",
        jwt_secret="test-access-secret",
        jwt_refresh_secret="test-refresh-secret",
        tz_default="UTC",
        enable_metrics=False,
        rate_limit_enabled=False,
        auto_create_db=True,
    )


@pytest.fixture
def container(settings, clock):
    c = build_container(settings, clock=clock)
    Base.metadata.create_all(bind=c.engine)
    yield c
    c.engine.dispose()


@pytest.fixture
def db(container):
    session = container.session_factory()
    yield session
    session.close()


@pytest.fixture
def client(settings, container):
    app = create_app(settings, container)
    with TestClient(app) as c:
        yield c


_emails = itertools.count(1)


@pytest.fixture
def make_user(db):
    def _make(role: Role = Role.WORKER, *, email=None, password="secret123", first_name="Test", last_name=None, is_active=True):
        n = next(_emails)
        user = User(
            email=email or f"user{n}@example.com",
            password_hash=get_password_hash(password),
            first_name=first_name,
            last_name=last_name or f"User{n}",
            role=role,
            is_active=is_active,
        )
        db.add(user)
        db.commit()
        return user

    return _make


@pytest.fixture
def admin(make_user):
    return make_user(Role.ADMINISTRATOR, first_name="Ada")


@pytest.fixture
def manager(make_user):
    return make_user(Role.MANAGER, first_name="Marko")


@pytest.fixture
def worker(make_user):
    return make_user(Role.WORKER, first_name="Nikola")


@pytest.fixture
def other_worker(make_user):
    return make_user(Role.WORKER, first_name="Dejan")


@pytest.fixture
def auth_headers(container):
    def _headers(user: User) -> dict:
        return {"Authorization": f"Bearer {container.tokens.create_access_token(user)}"}

    return _headers


@pytest.fixture
def make_order(db, container, clock, manager):
    def _make(*, creator=None, assignee=None, title="Fix broken barrier", priority=WorkOrderPriority.MEDIUM, deadline=None):
        data = WorkOrderCreate(
            title=title,
            description="Barrier arm does not lift on exit lane.",
            location="Parking lot A",
            priority=priority,
            deadline=deadline or clock.now + timedelta(days=3),
            assigned_to_id=assignee.id if assignee else None,
        )
        return container.work_order_service.create(db, data, creator or manager)

    return _make
