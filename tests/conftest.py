"""
Shared test fixtures.

Sets up an isolated test database so tests never touch
the real database. Every table is created before each test
and dropped after it, so no test data persists.
"""

import os

# Settings are read once, at import time. Point them at the test
# database before anything from branch_finance is imported.
os.environ["DATABASE_URL"] = "sqlite:///./test.db"
os.environ["JWT_SECRET"] = "test-secret-key-with-enough-length-for-hs256"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["TIMEZONE"] = "UTC"
os.environ["SMTP_HOST"] = ""

from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from branch_finance.config import get_settings
from branch_finance.init_db import seed_system_roles
from branch_finance.main import app
from branch_finance.models import Base
from branch_finance.models.base import get_db
from branch_finance.models.member import Member, Project, MemberProject
from branch_finance.models.reference import (
    Branch,
    Currency,
    PaymentMethod,
    RevenueHead,
    ExpenditureHead,
)
from branch_finance.models.user import User
from branch_finance.rate_limit import limiter
from branch_finance.services.permissions import Actor
from branch_finance.services.security import hash_password

TEST_DATABASE_URL = "sqlite:///./test.db"

TEST_PASSWORD = "Passw0rd!"

engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
)

TestSessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
)


@pytest.fixture(autouse=True)
def setup_database():
    """
    Create all tables before each test, drop them after.

    autouse=True means every test gets this automatically.
    """
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def reset_rate_limits():
    """Every test starts with a fresh login allowance."""
    limiter.reset()
    yield


@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
def db_session():
    """Provide a database session for direct service testing."""
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def client(db_session):
    """
    Provide a test client with the test database.

    get_db is overridden so the app uses the test session.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


# --- Seed helpers ---

def make_user(db, username, role, branch_code="01", password=TEST_PASSWORD, **extra):
    user = User(
        username=username,
        password_hash=hash_password(password, 4),
        first_name=username.title(),
        last_name="Tester",
        role_id=role.id,
        branch_code=branch_code,
        is_active=True,
        created_by="tests",
        **extra,
    )
    db.add(user)
    db.flush()
    return user


@pytest.fixture
def world(db_session):
    """
    Two branches, the system roles, reference data and one user per
    role. Branch 01 holds the cashier and supervisor; the admin sits
    in branch 00.
    """
    db = db_session
    db.add_all([
        Branch(code="00", name="Head Office"),
        Branch(code="01", name="North"),
        Branch(code="02", name="South"),
        Currency(code="USD", name="US Dollar", symbol="$"),
        Currency(code="ZIG", name="Zimbabwe Gold", symbol="ZIG", is_base_currency=True),
    ])
    db.flush()
    cash = PaymentMethod(name="Cash", description="Physical cash payment")
    db.add(cash)
    db.add_all([
        RevenueHead(code="01R001", name="Tithes", branch_code="01"),
        RevenueHead(code="02R001", name="Tithes", branch_code="02"),
        ExpenditureHead(code="01E001", name="Utilities", branch_code="01"),
    ])
    roles = seed_system_roles(db)

    users = {
        "admin": make_user(db, "admin", roles["admin"], branch_code="00"),
        "supervisor": make_user(db, "supervisor1", roles["supervisor"]),
        "cashier": make_user(db, "cashier1", roles["cashier"]),
        "cashier2": make_user(db, "cashier2", roles["cashier"], branch_code="02"),
    }
    db.commit()

    return {
        "roles": roles,
        "users": users,
        "payment_method": cash,
    }


def actor_for(user) -> Actor:
    return Actor.from_user(user)


def make_member(db, branch_code="01", number="M0001", **extra):
    member = Member(
        member_number=number,
        first_name="Tendai",
        last_name="Moyo",
        branch_code=branch_code,
        **extra,
    )
    db.add(member)
    db.flush()
    return member


def make_project(db, branch_code="01", name="Building Fund", **extra):
    project = Project(
        name=name,
        target_amount=Decimal("1000.00"),
        currency_code="USD",
        branch_code=branch_code,
        start_date=date(2025, 1, 1),
        **extra,
    )
    db.add(project)
    db.flush()
    return project


def enroll(db, member, project):
    link = MemberProject(
        member_id=member.id,
        project_id=project.id,
        required_amount=Decimal("100.00"),
        currency_code="USD",
    )
    db.add(link)
    db.flush()
    return link


def login(client, username, password=TEST_PASSWORD):
    response = client.post(
        "/api/login", json={"username": username, "password": password}
    )
    return response


def auth_headers(client, username, password=TEST_PASSWORD):
    token = login(client, username, password).json()["access_token"]
    return {"Authorization": f"Bearer {token}"}
