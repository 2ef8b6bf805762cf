"""
Shared fixtures.

Every test gets its own SQLite file under tmp_path, so tests are isolated
and thread-level races hit a real database lock.
"""
from datetime import datetime, time, timezone
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from slotbook.api.app import app
from slotbook.api.dependencies import get_clock, get_db
from slotbook.lib.db import create_db_engine, create_session_factory, drop_db, init_db
from slotbook.lib.metrics import reset_metrics
from slotbook.models import Client, Provider, Service

# Monday, 08:00 UTC
FIXED_NOW = datetime(2025, 6, 2, 8, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def clear_metrics():
    """Clear metrics before and after each test."""
    reset_metrics()
    yield
    reset_metrics()


@pytest.fixture
def engine(tmp_path):
    engine = create_db_engine(f"sqlite:///{tmp_path / 'slotbook_test.db'}")
    init_db(engine)
    yield engine
    drop_db(engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def now():
    """Pinned clock value used by services and the API."""
    return FIXED_NOW


@pytest.fixture
def seed(db):
    """
    One provider working Monday-Saturday 09:00-18:00 on a 30 minute grid,
    two services and one client.
    """
    provider = Provider(
        name="Carlos",
        working_days=[0, 1, 2, 3, 4, 5],
        start_time=time(9, 0),
        end_time=time(18, 0),
        break_minutes=0,
        slot_interval_minutes=30,
    )
    haircut = Service(name="Haircut", duration_minutes=30, price=1500)
    beard = Service(name="Beard trim", duration_minutes=30, price=800)
    client = Client(name="Ana", email="ana@example.com")
    db.add_all([provider, haircut, beard, client])
    db.commit()
    return SimpleNamespace(
        provider_id=provider.id,
        service_id=haircut.id,
        extra_service_id=beard.id,
        client_id=client.id,
    )


@pytest.fixture
def client(session_factory, now):
    """Test client for the FastAPI app bound to the per-test database."""

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: (lambda: now)
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
