"""
Seed the local database with sample users and work orders.

Usage:
  python scripts/seed_test_data.py

This script is idempotent: users are upserted by email and sample work
orders by title, so running it multiple times leaves one copy of each.
"""
from datetime import timedelta

from woms.auth.security import get_password_hash
from woms.config import settings
from woms.db import Base, build_engine, build_session_factory
from woms.models.enums import Role, WorkOrderPriority, WorkOrderStatus
from woms.models.models import StatusHistoryEntry, User, WorkOrder
from woms.services.time_rules import utcnow


def ensure_user(session, email: str, password: str, first_name: str, last_name: str, role: Role, phone: str) -> User:
    user = session.query(User).filter(User.email == email).first()
    if user:
        user.first_name = first_name
        user.last_name = last_name
        user.role = role
        user.phone = phone
        # Keep an existing password; only fill it in if missing
        if not user.password_hash:
            user.password_hash = get_password_hash(password)
        session.flush()
        return user
    user = User(
        email=email,
        password_hash=get_password_hash(password),
        first_name=first_name,
        last_name=last_name,
        role=role,
        phone=phone,
        is_active=True,
    )
    session.add(user)
    session.flush()
    return user


def ensure_work_order(session, title: str, creator: User, assignee: User | None, **kwargs) -> WorkOrder:
    order = session.query(WorkOrder).filter(WorkOrder.title == title).first()
    if order:
        return order
    order = WorkOrder(
        title=title,
        created_by_id=creator.id,
        assigned_to_id=assignee.id if assignee else None,
        status=WorkOrderStatus.NEW,
        **kwargs,
    )
    session.add(order)
    session.flush()
    session.add(
        StatusHistoryEntry(
            work_order_id=order.id,
            old_status=None,
            new_status=WorkOrderStatus.NEW,
            note="Work order created",
            changed_by_id=creator.id,
        )
    )
    session.flush()
    return order


def main() -> None:
    engine = build_engine(settings.database_url)
    # Ensure tables exist (safe for SQLite dev)
    Base.metadata.create_all(bind=engine)

    session = build_session_factory(engine)()
    try:
        admin = ensure_user(session, "admin@woms.example.com", "admin123", "Admin", "User", Role.ADMINISTRATOR, "+382 67 123 456")
        manager = ensure_user(session, "manager@woms.example.com", "manager123", "Marko", "Petrovic", Role.MANAGER, "+382 67 234 567")
        worker1 = ensure_user(session, "worker1@woms.example.com", "worker123", "Nikola", "Jovanovic", Role.WORKER, "+382 67 345 678")
        worker2 = ensure_user(session, "worker2@woms.example.com", "worker123", "Dejan", "Nikolic", Role.WORKER, "+382 67 456 789")

        now = utcnow()
        ensure_work_order(
            session,
            "Replace barrier arm at north entrance",
            manager,
            worker1,
            description="The barrier arm at the north entrance is cracked and must be replaced.",
            location="Parking lot A, north entrance",
            latitude=42.4411,
            longitude=19.2636,
            priority=WorkOrderPriority.HIGH,
            deadline=now + timedelta(days=1),
            resources="Spare barrier arm, toolkit",
        )
        ensure_work_order(
            session,
            "Repaint parking lines",
            manager,
            worker2,
            description="Lines in sector B have faded and need a fresh coat of paint.",
            location="Parking lot B",
            priority=WorkOrderPriority.MEDIUM,
            deadline=now + timedelta(days=7),
        )
        ensure_work_order(
            session,
            "Inspect payment kiosk",
            admin,
            None,
            description="Kiosk 3 intermittently rejects card payments; inspect the reader.",
            location="Garage C, level 1",
            priority=WorkOrderPriority.URGENT,
            deadline=now + timedelta(hours=12),
        )

        session.commit()
        print("Seed completed: users and work orders upserted.")
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


if __name__ == "__main__":
    main()
