"""
Pytest fixtures for stock ledger backend tests.

Provides the test app (in-memory SQLite), a wiped database per test,
one user per role, a stocked product and the X-User-Id header helper.
"""

import pytest

from stockledger import create_app
from stockledger.extensions import db
from stockledger.services import products_service, user_service
from stockledger.services.permission_service import Actor


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'STOCK_RETRY_BACKOFF_SECONDS': 0.0,
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
        # Clear all data but keep schema (Core deletes bypass the ORM delete guard)
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def admin_user(db_session):
    return user_service.create_user(username="admin", role="admin", full_name="Admin User")


@pytest.fixture(scope='function')
def manager_user(db_session):
    return user_service.create_user(username="manager", role="manager", full_name="John Manager")


@pytest.fixture(scope='function')
def staff_user(db_session):
    return user_service.create_user(username="staff", role="staff", full_name="Sam Staff")


@pytest.fixture(scope='function')
def admin(admin_user):
    return Actor.from_user(admin_user)


@pytest.fixture(scope='function')
def manager(manager_user):
    return Actor.from_user(manager_user)


@pytest.fixture(scope='function')
def staff(staff_user):
    return Actor.from_user(staff_user)


@pytest.fixture(scope='function')
def product(db_session):
    """Active product with 10 units on hand."""
    return products_service.create_product(patch={
        "sku": "WID-001",
        "name": "Widget",
        "stock_quantity": 10,
        "min_stock_level": 2,
        "max_stock_level": 50,
    })


def auth_headers(user) -> dict:
    """Helper to create the actor header for a user."""
    return {'X-User-Id': str(user.id)}


@pytest.fixture(scope='function')
def admin_headers(admin_user):
    return auth_headers(admin_user)


@pytest.fixture(scope='function')
def manager_headers(manager_user):
    return auth_headers(manager_user)


@pytest.fixture(scope='function')
def staff_headers(staff_user):
    return auth_headers(staff_user)
