"""
Pytest fixtures for roomkeeper backend tests.

Provides the app with an in-memory database, a per-test table wipe,
catalog/layout fixtures, an admin token and the test client.
"""

from datetime import datetime

import pytest
from roomkeeper import create_app
from roomkeeper.extensions import db
from roomkeeper.models import Product, Resource
from roomkeeper.models.resources import KIND_LOCKER, KIND_SEAT
from roomkeeper.services import auth_service


T0 = datetime(2026, 1, 15, 9, 0, 0)


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_ENGINE_OPTIONS': {},
        'LOCK_RETRY_BACKOFF_SECONDS': 0,
        'RATE_LIMIT_ENABLED': False,
        'DEFAULT_ADMIN_PASSCODE': '4321',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()
        app.extensions["rate_limiter"].reset()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def products(db_session):
    """One-hour and two-hour packages plus an inactive one."""
    hour = Product(code="1H", name="1 hour", duration_minutes=60, price=2000, is_default=True, sort_order=1)
    two = Product(code="2H", name="2 hours", duration_minutes=120, price=3500, sort_order=2)
    retired = Product(code="OLD", name="Retired", duration_minutes=30, price=1000, is_active=False, sort_order=9)
    db_session.add_all([hour, two, retired])
    db_session.commit()
    return {"1h": hour.id, "2h": two.id, "retired": retired.id}


@pytest.fixture(scope='function')
def layout(db_session):
    """Seats A1, A2, B1 and lockers 001-003."""
    db_session.add_all([
        Resource(kind=KIND_SEAT, code="A1", name="Seat A1", row_label="A", col_number=1),
        Resource(kind=KIND_SEAT, code="A2", name="Seat A2", row_label="A", col_number=2),
        Resource(kind=KIND_SEAT, code="B1", name="Seat B1", row_label="B", col_number=1),
        Resource(kind=KIND_LOCKER, code="001", name="Locker 1"),
        Resource(kind=KIND_LOCKER, code="002", name="Locker 2"),
        Resource(kind=KIND_LOCKER, code="003", name="Locker 3"),
    ])
    db_session.commit()


@pytest.fixture(scope='function')
def admin_token(db_session):
    _, token = auth_service.login('4321')
    return token


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}
