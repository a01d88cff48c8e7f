"""
Pytest fixtures for tireplan backend tests.

Provides test database setup, two tenants with branches, a catalog with
per-branch stock, and helpers for walking a session through login,
branch selection and admin unlock.
"""

import pytest
from tireplan import create_app
from tireplan.extensions import db
from tireplan.models import (
    User, Store, Product, ProductStock,
    ROLE_STORE_ADMIN, ROLE_SUPER_ADMIN,
)
from tireplan.services.auth_service import hash_password
from tireplan.services.inventory_service import ensure_placeholder_product


OWNER_PASSWORD = "1234"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'SEED_DEMO_DATA': False,
        'BCRYPT_ROUNDS': 4,
        'INVOICE_TRANSMIT_DELAY_SECONDS': 0,
        'DEFAULT_OWNER_PASSWORD': OWNER_PASSWORD,
        'BUSINESS_TIMEZONE': 'Asia/Seoul',
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

        yield db.session

        # Cleanup after test
        db.session.rollback()


def _make_owner(db_session, user_id: str, name: str) -> User:
    user = User(
        id=user_id,
        name=name,
        role=ROLE_STORE_ADMIN,
        password_hash=hash_password(OWNER_PASSWORD),
        is_active=True,
    )
    db_session.add(user)
    db_session.commit()
    return user


def _make_store(db_session, owner: User, name: str, region: str = "01") -> Store:
    store = Store(owner_id=owner.id, name=name, region=region, region_name="서울", is_active=True)
    db_session.add(store)
    db_session.commit()
    if owner.home_store_id is None:
        owner.home_store_id = store.id
        db_session.commit()
    return store


@pytest.fixture(scope='function')
def owner_a(db_session):
    """Owner A (first tenant)."""
    return _make_owner(db_session, "250001", "김대표")


@pytest.fixture(scope='function')
def owner_b(db_session):
    """Owner B (second tenant)."""
    return _make_owner(db_session, "250002", "박사장")


@pytest.fixture(scope='function')
def super_admin(db_session):
    user = User(
        id="999999",
        name="Master",
        role=ROLE_SUPER_ADMIN,
        password_hash=hash_password(OWNER_PASSWORD),
        is_active=True,
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def store_a1(db_session, owner_a):
    return _make_store(db_session, owner_a, "강남 본점")


@pytest.fixture(scope='function')
def store_a2(db_session, owner_a):
    return _make_store(db_session, owner_a, "수원점", region="02")


@pytest.fixture(scope='function')
def store_b1(db_session, owner_b):
    return _make_store(db_session, owner_b, "부산점", region="07")


@pytest.fixture(scope='function')
def placeholder(db_session):
    product = ensure_placeholder_product()
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory: make_product(name, {store_id: qty}, price=..., specification=...)."""
    def _make(name, stock=None, price=100000, specification="245/45R18", brand="한국", category="타이어"):
        product = Product(name=name, brand=brand, category=category, price=price, specification=specification)
        for store_id, qty in (stock or {}).items():
            product.stocks.append(ProductStock(store_id=store_id, quantity=qty))
        db_session.add(product)
        db_session.commit()
        return product
    return _make


@pytest.fixture(scope='function')
def tire(make_product, store_a1, store_a2):
    """A tire with 10 at branch A1 and 5 at branch A2."""
    return make_product("벤투스 S1 에보3", {store_a1.id: 10, store_a2.id: 5})


def login(client, user_id: str, password: str = OWNER_PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'user_id': user_id,
        'password': password,
    })
    assert response.status_code == 200, response.get_json()
    return response.get_json()['token']


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


def app_headers(client, user_id: str, store_id="ALL", admin: bool = False) -> dict:
    """Log in, enter the app at store_id and optionally unlock admin mode."""
    headers = auth_headers(login(client, user_id))
    response = client.post('/api/auth/select-store', json={'store_id': store_id}, headers=headers)
    assert response.status_code == 200, response.get_json()
    if admin:
        response = client.post('/api/auth/unlock', json={'password': OWNER_PASSWORD}, headers=headers)
        assert response.status_code == 200, response.get_json()
    return headers


@pytest.fixture(scope='function')
def enter_app(client):
    """Factory fixture around app_headers for tests that need several sessions."""
    def _enter(user_id, store_id="ALL", admin=False):
        return app_headers(client, user_id, store_id, admin)
    return _enter


@pytest.fixture(scope='function')
def staff_headers(client, owner_a, store_a1, store_a2):
    """Owner A working at branch A1 without admin mode."""
    return app_headers(client, owner_a.id, store_a1.id)


@pytest.fixture(scope='function')
def admin_headers(client, owner_a, store_a1, store_a2):
    """Owner A at branch A1 with admin mode unlocked."""
    return app_headers(client, owner_a.id, store_a1.id, admin=True)


@pytest.fixture(scope='function')
def other_admin_headers(client, owner_b, store_b1):
    """Owner B at branch B1 with admin mode unlocked."""
    return app_headers(client, owner_b.id, store_b1.id, admin=True)


@pytest.fixture(scope='function')
def super_headers(client, super_admin):
    return auth_headers(login(client, super_admin.id))
