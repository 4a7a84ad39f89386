"""Pytest configuration and shared fixtures."""

import os

# Must be set before any waitlist module reads settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENV"] = "test"
os.environ["JWT_SECRET"] = "test-secret"

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from waitlist.db.base import Base
from waitlist.db.engine import engine
from waitlist.db.session import SessionLocal, get_db
from waitlist.events import EventType, get_event_bus, reset_event_bus
from waitlist.main import app
from waitlist.models.account import Account, StaffRole
from tests.helpers.seed import auth_headers, create_account


@pytest.fixture(autouse=True)
def _create_tables() -> Generator[None, None, None]:
    """Create all tables before each test and drop after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def _fresh_event_bus() -> None:
    reset_event_bus()


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Database session bound to the in-memory test engine."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def events() -> list:
    """Collects every event published during the test."""
    received: list = []
    bus = get_event_bus()
    for event_type in EventType:
        bus.subscribe(event_type, received.append)
    return received


@pytest.fixture
def client(db: Session) -> Generator[TestClient, None, None]:
    """Test client sharing the test's database session."""

    def _get_db() -> Generator[Session, None, None]:
        yield db

    app.dependency_overrides[get_db] = _get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def admin(db: Session) -> Account:
    return create_account(db, 1000001, "Ada", "Admin", staff_role=StaffRole.ADMIN)


@pytest.fixture
def manager(db: Session) -> Account:
    return create_account(db, 1000002, "Max", "Manager", staff_role=StaffRole.TRAINING_MANAGER)


@pytest.fixture
def mentor(db: Session) -> Account:
    return create_account(db, 1000003, "Mia", "Mentor", staff_role=StaffRole.MENTOR)


@pytest.fixture
def admin_headers(admin: Account) -> dict[str, str]:
    return auth_headers(admin)
