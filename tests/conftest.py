import os
import sys
import uuid
from datetime import datetime
from decimal import Decimal
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.ext.compiler import compiles

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))


@compiles(PG_UUID, "sqlite")
def _compile_uuid_sqlite(type_, compiler, **kwargs):
    return "CHAR(36)"


from main import app
from core.database import Base, get_db
from core.security import get_current_user
from models.customer import Customer
from models.damage_report import DamageCause, DamageReport, DamageStatus, StatusHistory
from models.product import Product
from models.user import Role, User
from services.auth_service import AuthService


@pytest.fixture(autouse=True)
def _no_smtp(monkeypatch):
    for name in ("SMTP_HOST", "SMTP_USER", "SMTP_PASS"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(scope="function")
def db_session():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


def make_user(db, role: Role = Role.WAREHOUSE_USER, username: str = "clerk") -> User:
    user = User(
        username=username,
        email=f"{username}@example.com",
        first_name=username.title(),
        last_name="Tester",
        hashed_password=AuthService.get_password_hash("Password123"),
        role=role.value,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def admin_user(db_session):
    return make_user(db_session, Role.ADMIN, "admin")


@pytest.fixture
def warehouse_user(db_session):
    return make_user(db_session, Role.WAREHOUSE_USER, "clerk")


@pytest.fixture
def current_user(admin_user):
    """The user every request is made as; tests override it to change roles."""
    return admin_user


@pytest.fixture(scope="function")
def client(db_session, current_user):
    def _override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_current_user] = lambda: current_user

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def customer(db_session):
    record = Customer(name="Acme Foods", code="ACME", email="claims@acme.example")
    db_session.add(record)
    db_session.commit()
    db_session.refresh(record)
    return record


@pytest.fixture
def product(db_session, customer):
    record = Product(sku="SKU-1", name="Canned Beans", customer_id=customer.id, unit_value=Decimal("12.50"))
    db_session.add(record)
    db_session.commit()
    db_session.refresh(record)
    return record


@pytest.fixture
def make_report(db_session, customer, product, admin_user):
    """Insert a report directly in the given status, bypassing the transition engine."""
    counter = {"n": 0}

    def _make(status: DamageStatus = DamageStatus.OPEN, archived: bool = False) -> DamageReport:
        counter["n"] += 1
        now = datetime.utcnow()
        report = DamageReport(
            reference_number=f"DMG-TEST-{counter['n']:04d}",
            customer_id=customer.id,
            product_id=product.id,
            quantity=3,
            cause=DamageCause.FORKLIFT_IMPACT,
            description="Pallet pierced by forklift tines",
            status=status,
            date_of_damage=now,
            date_reported=now,
            reported_by=admin_user.id,
            is_archived=archived,
            archived_at=now if archived else None,
            updated_at=now,
        )
        report.status_history.append(StatusHistory(
            from_status=None,
            to_status=DamageStatus.OPEN,
            changed_by=admin_user.id,
            note="Damage report created",
        ))
        db_session.add(report)
        db_session.commit()
        db_session.refresh(report)
        return report

    return _make


def report_payload(customer, product, **overrides) -> dict:
    payload = {
        "customer_id": str(customer.id),
        "product_id": str(product.id),
        "quantity": 4,
        "severity": "MAJOR",
        "cause": "DROPPED_DURING_HANDLING",
        "description": "Carton dropped from top rack and split open",
        "date_of_damage": "2026-03-02T08:30:00",
    }
    payload.update(overrides)
    return payload


def new_id() -> str:
    return str(uuid.uuid4())
