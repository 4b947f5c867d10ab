"""
Pytest fixtures for stockdesk backend tests.

Provides an in-memory application, per-test table cleanup, seeded roles
and users, and small factories for catalog rows.
"""

import pytest
from stockdesk import create_app
from stockdesk.extensions import db
from stockdesk.models import Category, Product, Warehouse
from stockdesk.services.auth_service import create_user, create_default_roles
from stockdesk.services import permission_service, stock_ledger_service


PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'LOW_STOCK_DEFAULT_THRESHOLD': 10,
        'EXPIRY_WARNING_DAYS': 30,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Fresh data for each test; schema is kept."""
    meta = db.metadata
    for table in reversed(meta.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()
    app.extensions.pop("notification_feed", None)

    yield db.session

    db.session.rollback()


@pytest.fixture(scope='function')
def setup_roles(db_session):
    """Default roles and permissions."""
    create_default_roles()
    permission_service.initialize_permissions()
    permission_service.assign_default_role_permissions()
    db_session.commit()


@pytest.fixture(scope='function')
def admin_user(setup_roles):
    return create_user("admin", "admin@stockdesk.test", PASSWORD, roles=["admin"])


@pytest.fixture(scope='function')
def cashier_user(setup_roles):
    return create_user("cashier", "cashier@stockdesk.test", PASSWORD, roles=["cashier"])


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
    return auth_headers(get_auth_token(client, "admin"))


@pytest.fixture(scope='function')
def cashier_headers(client, cashier_user):
    return auth_headers(get_auth_token(client, "cashier"))


@pytest.fixture(scope='function')
def warehouse(db_session):
    w = Warehouse(name="Main", location="Front store", is_active=True)
    db_session.add(w)
    db_session.commit()
    return w


@pytest.fixture(scope='function')
def second_warehouse(db_session):
    w = Warehouse(name="Backroom", is_active=True)
    db_session.add(w)
    db_session.commit()
    return w


@pytest.fixture(scope='function')
def category(db_session):
    c = Category(name="Beverages")
    db_session.add(c)
    db_session.commit()
    return c


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory: make_product(name, sku=..., price=..., min_stock=..., expiry=...)."""
    counter = {"n": 0}

    def _make(name="Widget", *, sku=None, barcode=None, price_cents=1000, min_stock_level=0,
              expiry_date=None, category_id=None, is_active=True):
        counter["n"] += 1
        p = Product(
            name=name,
            sku=sku if sku is not None else f"SKU-{counter['n']:03d}",
            barcode=barcode,
            selling_price_cents=price_cents,
            purchase_price_cents=price_cents // 2,
            min_stock_level=min_stock_level,
            expiry_date=expiry_date,
            category_id=category_id,
            is_active=is_active,
        )
        db_session.add(p)
        db_session.commit()
        return p

    return _make


@pytest.fixture(scope='function')
def stock_in():
    """stock_in(product, warehouse, qty) records an inbound movement."""
    def _stock(product, warehouse, quantity):
        return stock_ledger_service.record_movement(product.id, warehouse.id, "in", quantity)

    return _stock


@pytest.fixture(scope='function')
def login(client):
    """login(identifier, password) -> bearer headers, or None on failure."""
    def _login(identifier, password=PASSWORD):
        token = get_auth_token(client, identifier, password)
        return auth_headers(token) if token else None

    return _login
