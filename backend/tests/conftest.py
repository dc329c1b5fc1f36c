"""
Pytest fixtures for TechSheet backend tests.

Provides an in-memory database, approved accounts for each role, a pending
registration, groups and a product factory.
"""

import pytest

from techsheet import create_app
from techsheet.config import TestConfig
from techsheet.extensions import db
from techsheet.permissions import Role
from techsheet.services import auth_service, group_service, products_service

PASSWORD = "secret123"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestConfig)

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app, db_session):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Empty every table before each test."""
    db.session.remove()
    for table in reversed(db.metadata.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()

    yield db.session

    db.session.rollback()
    db.session.remove()


def _create_user(username, role, approved, allowed_groups=None):
    user = auth_service.create_user(
        username=username,
        email=f"{username}@example.com",
        password=PASSWORD,
        name=username.title(),
        role=role,
        approved=approved,
    )
    if allowed_groups is not None:
        user.allowed_groups = [str(g) for g in allowed_groups]
        db.session.commit()
    return user


@pytest.fixture(scope='function')
def admin_user(db_session):
    return _create_user("admin", Role.ADMINISTRATOR, approved=True)


@pytest.fixture(scope='function')
def compiler_user(db_session):
    return _create_user("compiler", Role.COMPILER, approved=True)


@pytest.fixture(scope='function')
def viewer_user(db_session):
    """Approved viewer with no allowed groups yet."""
    return _create_user("viewer", Role.VIEWER, approved=True, allowed_groups=[])


@pytest.fixture(scope='function')
def pending_user(db_session):
    """Self-registered account awaiting approval."""
    return auth_service.register_user(
        username="alice",
        email="alice@example.com",
        password=PASSWORD,
        name="Alice",
    )


@pytest.fixture(scope='function')
def group_a(db_session):
    return group_service.create_group({"name": "Linea Viso"})


@pytest.fixture(scope='function')
def group_b(db_session):
    return group_service.create_group({"name": "Linea Corpo"})


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory: make_product(name, type="cosmetic", group=None, **fields)."""
    def _make(name, product_type="cosmetic", group=None, details=None, **fields):
        payload = {"name": name, "type": product_type, **fields}
        if group is not None:
            payload["group_id"] = group.id
        return products_service.create_product(product=payload, details=details)
    return _make


def get_auth_token(client, username: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_headers(client, admin_user):
    return auth_headers(get_auth_token(client, admin_user.username))


@pytest.fixture(scope='function')
def compiler_headers(client, compiler_user):
    return auth_headers(get_auth_token(client, compiler_user.username))


@pytest.fixture(scope='function')
def viewer_headers(client, viewer_user):
    return auth_headers(get_auth_token(client, viewer_user.username))
