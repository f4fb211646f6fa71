"""
Pytest fixtures for the laundry POS order core.

Provides the test app on in-memory SQLite, per-test table wiping, two-tenant
fixtures (shop A and shop B), principals, and HTTP header helpers.
"""

import pytest
from laundrypos import create_app
from laundrypos.extensions import db
from laundrypos.models import Shop, Customer, Payment
from laundrypos.models.tenancy import SUBSCRIPTION_ACTIVE
from laundrypos.services import order_service
from laundrypos.services.tenant_service import Principal, ROLE_ADMIN, ROLE_EMPLOYEE, ROLE_OWNER


TEST_CONFIG = {
    'TESTING': True,
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    # bcrypt's minimum cost keeps the suite fast
    'PICKUP_PIN_BCRYPT_ROUNDS': 4,
    'STORE_RETRY_BACKOFF': 0,
}


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TEST_CONFIG)

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


@pytest.fixture(scope='function')
def shop_a(db_session):
    """Create Shop A (first tenant)."""
    shop = Shop(name="Sparkle Laundry", phone="+254700000001", subscription_status=SUBSCRIPTION_ACTIVE)
    db_session.add(shop)
    db_session.commit()
    return shop


@pytest.fixture(scope='function')
def shop_b(db_session):
    """Create Shop B (second tenant)."""
    shop = Shop(name="Fresh Fold", phone="+254700000002", subscription_status=SUBSCRIPTION_ACTIVE)
    db_session.add(shop)
    db_session.commit()
    return shop


@pytest.fixture(scope='function')
def customer_a(db_session, shop_a):
    """Create a customer in Shop A."""
    customer = Customer(shop_id=shop_a.id, name="Jane Wanjiru", phone_number="+254711000001")
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def customer_b(db_session, shop_b):
    """Create a customer in Shop B."""
    customer = Customer(shop_id=shop_b.id, name="Otieno Okoth", phone_number="+254711000002")
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def owner_a(shop_a):
    return Principal(actor_id="owner-a", role=ROLE_OWNER, shop_id=shop_a.id)


@pytest.fixture(scope='function')
def employee_a(shop_a):
    return Principal(actor_id="employee-a", role=ROLE_EMPLOYEE, shop_id=shop_a.id)


@pytest.fixture(scope='function')
def owner_b(shop_b):
    return Principal(actor_id="owner-b", role=ROLE_OWNER, shop_id=shop_b.id)


@pytest.fixture(scope='function')
def admin_a(shop_a):
    return Principal(actor_id="admin-1", role=ROLE_ADMIN, shop_id=shop_a.id)


def sample_items(total_cents: int = 15000) -> list[dict]:
    """Single line whose total equals total_cents."""
    return [{"name": "Duvet", "size": "KING", "unit_price_cents": total_cents, "quantity": 1}]


@pytest.fixture(scope='function')
def make_order(db_session):
    """Factory: create an order through the service layer."""
    def _make(principal, customer, total_cents=15000, initial_cents=0, **kwargs):
        return order_service.create_order(
            principal,
            customer_id=customer.id,
            items=sample_items(total_cents),
            total_amount_cents=total_cents,
            initial_payment_cents=initial_cents,
            **kwargs,
        ).order
    return _make


@pytest.fixture(scope='function')
def ready_order(make_order, owner_a, customer_a):
    """A fully paid READY order in Shop A and its plaintext pickup PIN."""
    order = make_order(owner_a, customer_a, total_cents=10000, initial_cents=10000)
    result = order_service.mark_ready(owner_a, order.id)
    return result.order, result.pickup_pin


def set_subscription(shop: Shop, status: str) -> None:
    shop.subscription_status = status
    db.session.commit()


def total_payments(order_id: int) -> int:
    return sum(p.amount_cents for p in db.session.query(Payment).filter_by(order_id=order_id))


def auth_headers(principal: Principal) -> dict:
    """Helper to create the identity headers the auth gateway would forward."""
    return {
        'X-Actor-Id': principal.actor_id,
        'X-Actor-Role': principal.role,
        'X-Shop-Id': str(principal.shop_id),
    }
