"""
Pytest fixtures for the auto parts backend tests.

Every test gets a fresh in-memory database, its own held-orders file and a
pushed app context. Users are created with a cheap bcrypt cost so the suite
stays fast; login itself is exercised in test_api_auth.py.
"""

import bcrypt
import pytest

from autoparts import create_app
from autoparts.extensions import db
from autoparts.models import Customer, Discount, InventoryItem, Supplier, User
from autoparts.models.auth import ROLE_ADMIN, ROLE_STAFF
from autoparts.services.session_service import create_session

PASSWORD = "Password123!"


@pytest.fixture()
def app(tmp_path):
    """Create application for testing."""
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
        "SQLALCHEMY_TRACK_MODIFICATIONS": False,
        "HELD_ORDERS_PATH": str(tmp_path / "held_orders.json"),
        "RESEND_API_KEY": "re_test_key",
        "RESEND_API_URL": "https://api.resend.test/emails",
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


def _make_user(email: str, role: str, full_name: str) -> User:
    user = User(
        email=email,
        full_name=full_name,
        role=role,
        password_hash=bcrypt.hashpw(PASSWORD.encode("utf-8"), bcrypt.gensalt(rounds=4)).decode("utf-8"),
        is_active=True,
    )
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture()
def admin(app):
    return _make_user("admin@test.local", ROLE_ADMIN, "Ada Admin")


@pytest.fixture()
def staff(app):
    return _make_user("staff@test.local", ROLE_STAFF, "Sam Staff")


def auth_headers(user: User) -> dict:
    """Helper to create Authorization headers for a fresh session."""
    _, token = create_session(user)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def admin_headers(admin):
    return auth_headers(admin)


@pytest.fixture()
def staff_headers(staff):
    return auth_headers(staff)


@pytest.fixture()
def make_item(app):
    """Factory for inventory rows; defaults to a $10.00 part with 5 in stock."""
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        values = {
            "part_name": f"Part {counter['n']}",
            "part_number": f"PN-{counter['n']:04d}",
            "category": "Brakes",
            "brand": "Bosch",
            "quantity": 5,
            "cost_price_cents": 600,
            "selling_price_cents": 1000,
            "reorder_level": 2,
        }
        values.update(overrides)
        item = InventoryItem(**values)
        db.session.add(item)
        db.session.commit()
        return item

    return _make


@pytest.fixture()
def make_discount(app):
    def _make(code="SAVE10", discount_type="percentage", discount_value=1000, **overrides):
        discount = Discount(
            code=code,
            discount_type=discount_type,
            discount_value=discount_value,
            used_count=overrides.pop("used_count", 0),
            is_active=overrides.pop("is_active", True),
            **overrides,
        )
        db.session.add(discount)
        db.session.commit()
        return discount

    return _make


@pytest.fixture()
def supplier(app):
    supplier = Supplier(name="Parts Depot", email="orders@partsdepot.example")
    db.session.add(supplier)
    db.session.commit()
    return supplier


@pytest.fixture()
def customer(app):
    customer = Customer(name="Jane Driver", phone="555-0101")
    db.session.add(customer)
    db.session.commit()
    return customer
