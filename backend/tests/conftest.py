"""Pytest configuration and fixtures."""

import os

# Keep the app lifespan away from the on-disk database and background sweep
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("ARCHIVE_SWEEP_ENABLED", "false")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

import pytest
from decimal import Decimal
from typing import Callable, Generator

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from cafestock.core.rbac import Actor, UserRole
from cafestock.core.security import create_access_token, get_password_hash
from cafestock.db.base import Base
from cafestock.db.session import enable_sqlite_foreign_keys, get_db
from cafestock.main import app
# Import all models to ensure they're registered with Base.metadata
from cafestock.models import *
from cafestock.models.item import Item
from cafestock.models.reference import Category, Unit
from cafestock.models.user import User
from cafestock.services.stock_ledger import StockLedger

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite:///:memory:"

MANAGER_PASSWORD = "Manager!Pass123"
BARISTA_PASSWORD = "Barista!Pass123"


@pytest.fixture(scope="function")
def db_engine():
    """Create a test database engine with foreign keys enforced."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """Create a test database session."""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """Create a test client with database override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    # Disable rate limiting during tests to avoid flaky failures
    from cafestock.core.rate_limit import limiter
    limiter.enabled = False
    # Don't raise server exceptions so we can test error status codes
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _make_user(db_session: Session, username: str, password: str, role: UserRole) -> User:
    user = User(username=username, password_hash=get_password_hash(password), role=role)
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def manager_user(db_session: Session) -> User:
    return _make_user(db_session, "manager", MANAGER_PASSWORD, UserRole.MANAGER)


@pytest.fixture
def barista_user(db_session: Session) -> User:
    return _make_user(db_session, "barista", BARISTA_PASSWORD, UserRole.BARISTA)


@pytest.fixture
def manager(manager_user: User) -> Actor:
    """Acting manager passed into service calls."""
    return Actor(user_id=manager_user.id, username=manager_user.username, role=UserRole.MANAGER)


@pytest.fixture
def barista(barista_user: User) -> Actor:
    return Actor(user_id=barista_user.id, username=barista_user.username, role=UserRole.BARISTA)


def _headers(user: User) -> dict:
    token = create_access_token(
        data={"sub": str(user.id), "username": user.username, "role": user.role.value}
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def manager_headers(manager_user: User) -> dict:
    return _headers(manager_user)


@pytest.fixture
def barista_headers(barista_user: User) -> dict:
    return _headers(barista_user)


@pytest.fixture
def category(db_session: Session) -> Category:
    category = Category(name="Coffee")
    db_session.add(category)
    db_session.commit()
    db_session.refresh(category)
    return category


@pytest.fixture
def unit(db_session: Session) -> Unit:
    unit = Unit(name="kg")
    db_session.add(unit)
    db_session.commit()
    db_session.refresh(unit)
    return unit


@pytest.fixture
def make_item(db_session: Session, manager: Actor, category: Category, unit: Unit) -> Callable[..., Item]:
    """Factory creating items through the ledger."""
    def _make(name="Espresso Beans", current="10", minimum="2", maximum="20", **extra) -> Item:
        return StockLedger(db_session).create_item(
            manager,
            name=name,
            category_id=category.id,
            unit_id=unit.id,
            current_stock=Decimal(current),
            minimum_stock=Decimal(minimum),
            maximum_stock=Decimal(maximum),
            **extra,
        )
    return _make


@pytest.fixture
def item(make_item) -> Item:
    return make_item()
