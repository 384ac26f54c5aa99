"""Pytest fixtures and configuration for blockplanner tests."""

import pytest
import uuid
from datetime import datetime, timedelta, timezone
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient
from apscheduler.schedulers.background import BackgroundScheduler

from blockplanner.database.database import Base
from blockplanner.database import models  # noqa: F401
from blockplanner.database.block_repository import BlockInstanceRepository
from blockplanner.database.block_type_repository import BlockTypeRepository
from blockplanner.models.block import BlockInstance, BlockStatus, BlockTypeCreate


# Use in-memory SQLite database for tests
TEST_DATABASE_URL = "sqlite:///:memory:"

# Monday 2026-03-02 09:00 UTC
NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def test_user_id():
    """Test user ID for multi-user testing."""
    return "test-user-123"


@pytest.fixture
def now():
    return NOW


@pytest.fixture(scope="function")
def engine():
    """Fresh in-memory SQLite engine with the full schema."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine, test_user_id):
    """Sessionmaker bound to the test engine, with the test user already created."""
    from blockplanner.database.models import UserDB

    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = factory()
    created = datetime.utcnow()
    session.add(UserDB(id=test_user_id, email="test@example.com", name="Test User", created_at=created, updated_at=created))
    session.add(UserDB(id="other-user", email="other@example.com", name="Other User", created_at=created, updated_at=created))
    session.commit()
    session.close()
    return factory


@pytest.fixture(scope="function")
def db_session(session_factory):
    """Create a database session for testing."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_block_type(db_session: Session, test_user_id):
    """Factory creating block types for the test user."""

    def _make(name="Deep Work", color="#3366FF", user_id=None, **fields):
        data = BlockTypeCreate(name=name, color=color, **fields)
        return BlockTypeRepository(db_session).create(user_id or test_user_id, data)

    return _make


@pytest.fixture
def block_type(make_block_type):
    return make_block_type()


@pytest.fixture
def make_block(db_session: Session, test_user_id, block_type):
    """Factory persisting block instances (defaults to a 60 minute scheduled block)."""

    def _make(start, end=None, status=BlockStatus.SCHEDULED, block_type_id=None, user_id=None, **fields):
        block = BlockInstance(
            id=str(uuid.uuid4()),
            user_id=user_id or test_user_id,
            block_type_id=block_type_id or block_type.id,
            planned_start=start,
            planned_end=end or start + timedelta(minutes=60),
            status=status,
            **fields,
        )
        return BlockInstanceRepository(db_session).create(block)

    return _make


@pytest.fixture
def paused_scheduler():
    """BackgroundScheduler that accepts jobs but never runs them."""
    scheduler = BackgroundScheduler(timezone="UTC")
    scheduler.start(paused=True)
    try:
        yield scheduler
    finally:
        if scheduler.running:
            scheduler.shutdown(wait=False)


@pytest.fixture
def test_user(test_user_id):
    """Create a test user object."""
    from blockplanner.models.user import User
    created = datetime.utcnow()
    return User(
        id=test_user_id,
        email="test@example.com",
        name="Test User",
        created_at=created,
        updated_at=created,
    )


@pytest.fixture
def test_client(db_session: Session, session_factory, test_user):
    """FastAPI test client with overridden database, session factory and authentication."""
    from blockplanner.api.app import app
    from blockplanner.database.database import get_db, get_session_factory
    from blockplanner.auth.dependencies import get_current_user

    def override_get_db():
        try:
            yield db_session
        finally:
            pass  # Don't close the session here, let the fixture handle it

    def override_get_current_user():
        return test_user

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_current_user] = override_get_current_user

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()
