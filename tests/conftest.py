"""Shared fixtures: in-memory database, API client, users and a fake Stripe gateway."""

import json
import os
from types import SimpleNamespace

# Configuration is read at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_dummy"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_dummy"
os.environ["RESEND_API_KEY"] = ""
os.environ["DB_LOG_SLOW_QUERIES"] = "false"

import pytest  # noqa: E402
import stripe  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from marine_service.database import Base, SessionLocal, engine  # noqa: E402
from marine_service.domain.payments.stripe_service import stripe_service  # noqa: E402
from marine_service.main import app  # noqa: E402
from marine_service.models import Product, User  # noqa: E402
from marine_service.security_utils import create_access_token_for_user, hash_password  # noqa: E402

VALID_SIGNATURE = "t=1,v1=valid"


@pytest.fixture(autouse=True)
def tables():
    """Fresh schema for every test."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def client():
    return TestClient(app)


def _make_user(db, name, email, role, position=None, is_active=True):
    user = User(
        name=name,
        email=email,
        phone="+94 77 123 4567",
        password_hash=hash_password("password123"),
        role=role,
        position=position,
        is_active=is_active,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token_for_user(user)}"}


@pytest.fixture
def customer(db):
    return _make_user(db, "Nimal Perera", "nimal@mail.com", "customer")


@pytest.fixture
def other_customer(db):
    return _make_user(db, "Kamala Silva", "kamala@mail.com", "customer")


@pytest.fixture
def employee(db):
    return _make_user(db, "Ruwan Fernando", "ruwan@mail.com", "employee", "Marine Technician")


@pytest.fixture
def admin(db):
    return _make_user(db, "Admin User", "admin@mail.com", "admin")


@pytest.fixture
def customer_headers(customer):
    return auth_headers(customer)


@pytest.fixture
def other_customer_headers(other_customer):
    return auth_headers(other_customer)


@pytest.fixture
def employee_headers(employee):
    return auth_headers(employee)


@pytest.fixture
def admin_headers(admin):
    return auth_headers(admin)


@pytest.fixture
def product(db):
    item = Product(
        name="Impeller Kit",
        price=2500.0,
        part_number="IMP-100",
        company="Yamaha",
        category="Engine",
        quantity=10,
    )
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


class FakeStripe:
    """Stands in for the Stripe API; tests set intent statuses directly."""

    def __init__(self):
        self.intents = {}
        self.refunds = []
        self.created_intents = []

    def create_customer(self, email, name, phone=None, metadata=None):
        return SimpleNamespace(id=f"cus_{len(self.created_intents) + 1}", email=email)

    def create_payment_intent(
        self, amount_in_cents, currency, description, metadata, customer_id=None, receipt_email=None
    ):
        intent_id = f"pi_test_{len(self.created_intents) + 1}"
        intent = SimpleNamespace(
            id=intent_id,
            client_secret=f"{intent_id}_secret",
            status="requires_payment_method",
            amount=amount_in_cents,
            currency=currency,
            metadata=metadata,
            latest_charge=None,
        )
        self.intents[intent_id] = intent
        self.created_intents.append(intent)
        return intent

    def set_status(self, intent_id, status, charge_id="ch_test_1"):
        intent = self.intents[intent_id]
        intent.status = status
        if status == "succeeded":
            intent.latest_charge = SimpleNamespace(
                id=charge_id, receipt_url=f"https://pay.stripe.com/receipts/{charge_id}"
            )

    def retrieve_payment_intent(self, payment_intent_id):
        return self.intents[payment_intent_id]

    def create_refund(self, payment_intent_id, amount_in_cents, reason=None, metadata=None):
        refund = SimpleNamespace(
            id=f"re_test_{len(self.refunds) + 1}", amount=amount_in_cents, reason=reason
        )
        self.refunds.append(refund)
        return refund

    def construct_event(self, payload, signature):
        if signature != VALID_SIGNATURE:
            raise stripe.SignatureVerificationError("No signatures found matching the expected signature", signature)
        body = json.loads(payload)
        intent = SimpleNamespace(id=body["data"]["object"]["id"], latest_charge=None)
        return SimpleNamespace(type=body["type"], data=SimpleNamespace(object=intent))


@pytest.fixture
def fake_stripe(monkeypatch):
    fake = FakeStripe()
    for name in (
        "create_customer",
        "create_payment_intent",
        "retrieve_payment_intent",
        "create_refund",
        "construct_event",
    ):
        monkeypatch.setattr(stripe_service, name, getattr(fake, name))
    return fake


def webhook_body(event_type, intent_id):
    return json.dumps({"type": event_type, "data": {"object": {"id": intent_id}}})
