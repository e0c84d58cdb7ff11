"""
Pytest fixtures for SiliconPOS backend tests.

Provides the test app (in-memory SQLite), a fresh database per test, staff
accounts for every role, sample catalog rows and bearer-token helpers.
"""

import pytest

from siliconpos import create_app
from siliconpos.extensions import db
from siliconpos.models import User, Product, Service
from siliconpos.models.auth import ROLE_ADMIN, ROLE_MANAGER, ROLE_SALES
from siliconpos.services.auth_service import hash_password
from siliconpos.services.authorization import Identity


PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='session')
def password_hash():
    """bcrypt is slow on purpose; hash the shared test password once."""
    return hash_password(PASSWORD)


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

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def make_user(db_session, password_hash):
    def _make_user(username: str, role: str, is_active: bool = True) -> User:
        user = User(
            username=username,
            name=username.title(),
            password_hash=password_hash,
            role=role,
            is_active=is_active,
        )
        db_session.add(user)
        db_session.commit()
        return user

    return _make_user


@pytest.fixture(scope='function')
def admin_user(make_user):
    return make_user("admin", ROLE_ADMIN)


@pytest.fixture(scope='function')
def manager_user(make_user):
    return make_user("manager", ROLE_MANAGER)


@pytest.fixture(scope='function')
def sales_user(make_user):
    return make_user("sales", ROLE_SALES)


@pytest.fixture(scope='function')
def inactive_user(make_user):
    return make_user("former", ROLE_SALES, is_active=False)


@pytest.fixture(scope='function')
def admin(admin_user):
    return Identity.from_user(admin_user)


@pytest.fixture(scope='function')
def manager(manager_user):
    return Identity.from_user(manager_user)


@pytest.fixture(scope='function')
def cashier(sales_user):
    return Identity.from_user(sales_user)


@pytest.fixture(scope='function')
def make_product(db_session):
    def _make_product(name: str, price_cents: int, stock_quantity: int, **kwargs) -> Product:
        kwargs.setdefault("category", "networking")
        product = Product(
            name=name,
            price_cents=price_cents,
            stock_quantity=stock_quantity,
            **kwargs,
        )
        db_session.add(product)
        db_session.commit()
        return product

    return _make_product


@pytest.fixture(scope='function')
def cable(make_product):
    """Cat6 cable, 15.99, 100 in stock."""
    return make_product("Cat6 Ethernet Cable 10m", 1599, 100, sku="NET-CAT6-10M")


@pytest.fixture(scope='function')
def switch(make_product):
    """8-port switch, 45.99, 5 in stock."""
    return make_product("TP-Link 8-Port Gigabit Switch", 4599, 5, sku="NET-SW-8P")


@pytest.fixture(scope='function')
def installation(db_session):
    service = Service(
        name="Network Installation - Basic",
        price_cents=29999,
        duration="4-6 hours",
    )
    db_session.add(service)
    db_session.commit()
    return service


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
def manager_headers(client, manager_user):
    return auth_headers(get_auth_token(client, manager_user.username))


@pytest.fixture(scope='function')
def cashier_headers(client, sales_user):
    return auth_headers(get_auth_token(client, sales_user.username))
