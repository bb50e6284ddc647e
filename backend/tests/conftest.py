"""
Pytest fixtures for invoicing backend tests.

Provides test database setup, branch/worker/catalog fixtures, a recording
notification sink, and test client.
"""

import pytest

from invoicing import create_app
from invoicing.errors import DeliveryError
from invoicing.extensions import db
from invoicing.models.catalog import ITEM_TYPE_EXPENSE, ITEM_TYPE_PRODUCT
from invoicing.models.workers import ROLE_ADMIN, ROLE_MANAGER, ROLE_STAFF
from invoicing.services import branch_service, catalog_service, notification_service, worker_service


class RecordingSink(notification_service.NotificationSink):
    """Captures deliveries; set fail=True to simulate an outage."""

    def __init__(self):
        self.sent = []
        self.fail = False

    def send_invoice_notice(self, recipient, payload):
        if self.fail:
            raise DeliveryError("Simulated mail outage")
        self.sent.append((recipient, payload))


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'INVOICE_LIST_PAGE_CAP': 10,
        'NOTIFICATIONS_ENABLED': True,
        'NOTIFICATION_DISPATCH_MODE': 'inline',
        'NOTIFICATION_MAX_ATTEMPTS': 3,
        'MAIL_SERVER': None,
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


@pytest.fixture(scope='function')
def notice_sink(app):
    """Install a recording sink for the duration of one test."""
    previous = app.extensions.get(notification_service.SINK_EXTENSION_KEY)
    sink = RecordingSink()
    notification_service.set_sink(app, sink)
    yield sink
    notification_service.set_sink(app, previous)


@pytest.fixture(scope='function')
def branch_x(db_session):
    return branch_service.create_branch(
        "Branch X - Downtown",
        branch_phone_number="555-0100",
        address="1 Main St",
    )


@pytest.fixture(scope='function')
def branch_y(db_session):
    return branch_service.create_branch(
        "Branch Y - Harbour",
        branch_phone_number="555-0200",
        address="9 Dock Rd",
    )


@pytest.fixture(scope='function')
def admin(db_session, branch_x):
    return worker_service.create_worker(
        full_name="Alice Admin",
        email="alice@shop.test",
        role=ROLE_ADMIN,
    )


@pytest.fixture(scope='function')
def manager_x(db_session, branch_x):
    return worker_service.create_worker(
        full_name="Mark Manager",
        email="mark@shop.test",
        role=ROLE_MANAGER,
        branch_id=branch_x.id,
    )


@pytest.fixture(scope='function')
def manager_y(db_session, branch_y):
    return worker_service.create_worker(
        full_name="Yara Manager",
        email="yara@shop.test",
        role=ROLE_MANAGER,
        branch_id=branch_y.id,
    )


@pytest.fixture(scope='function')
def staff_x(db_session, branch_x):
    return worker_service.create_worker(
        full_name="Sam Staff",
        email="sam@shop.test",
        role=ROLE_STAFF,
        branch_id=branch_x.id,
    )


@pytest.fixture(scope='function')
def product_a(db_session):
    """Product priced 50.00."""
    return catalog_service.create_item(name="Desk Lamp", price_cents=5000, item_type=ITEM_TYPE_PRODUCT)


@pytest.fixture(scope='function')
def product_b(db_session):
    """Product priced 20.00."""
    return catalog_service.create_item(name="Light Bulb", price_cents=2000, item_type=ITEM_TYPE_PRODUCT)


@pytest.fixture(scope='function')
def product_c(db_session):
    """Product priced 100.00."""
    return catalog_service.create_item(name="Office Chair", price_cents=10000, item_type=ITEM_TYPE_PRODUCT)


@pytest.fixture(scope='function')
def expense_item(db_session):
    """Expense item priced 250.00."""
    return catalog_service.create_item(
        name="Monthly Rent Share",
        price_cents=25000,
        item_type=ITEM_TYPE_EXPENSE,
        category="Facilities",
    )


def sales_receipt_payload(product, sr_number="SR-0001", quantity=3, discount_cents=0, tax=8, **extra):
    """Minimal valid sales receipt body for one product line."""
    payload = {
        "sr_number": sr_number,
        "customer_name": "Carol Customer",
        "customer_email": "carol@example.test",
        "payment_method": "card",
        "invoice_date": "2026-10-01",
        "products": [
            {"product_id": product.id, "quantity": quantity, "discount_cents": discount_cents},
        ],
        "tax": tax,
    }
    payload.update(extra)
    return payload


def expense_payload(item, ref_number="EX-0001", quantity=1, tax=0, **extra):
    payload = {
        "ref_number": ref_number,
        "payer_name": "Branch X",
        "recipient_name": "Landlord Ltd",
        "recipient_email": "billing@landlord.test",
        "type_of_expense": "Rent",
        "expense_items": [
            {"item_id": item.id, "quantity": quantity, "item_description": "October"},
        ],
        "tax": tax,
    }
    payload.update(extra)
    return payload


def actor_headers(worker) -> dict:
    """Helper to create the upstream identity header."""
    return {'X-Worker-Id': worker.id}
