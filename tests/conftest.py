"""
Pytest configuration and fixtures for the advertising panel API tests.
"""
import os
import tempfile
import uuid
from decimal import Decimal

# Must be set before the app (and its cached settings) is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="adpanel-uploads-")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import pytest
from fastapi.testclient import TestClient

from adpanel.database import Base, SessionLocal, engine, get_db
from adpanel.limiter import limiter
from adpanel.main import app
from adpanel.models import Group, Package, User
from adpanel.auth import get_password_hash, create_access_token, token_claims
from adpanel.routes.events import event_manager
from adpanel.services.gateway import credential_store, get_gateway_factory

# Disable rate limiting for tests
limiter.enabled = False

# Global session for sharing across requests
_test_session = None


def get_test_db():
    """Get the shared test database session."""
    yield _test_session


class FakeGateway:
    """Stands in for RazorpayClient; records every order it mints."""

    orders = []

    def __init__(self, credentials):
        self.credentials = credentials

    def create_order(self, amount, currency, receipt, notes=None):
        order = {
            "id": f"order_{uuid.uuid4().hex[:14]}",
            "entity": "order",
            "amount": amount,
            "currency": currency,
            "receipt": receipt,
            "status": "created",
            "notes": notes or {},
        }
        FakeGateway.orders.append((self.credentials, order))
        return order


@pytest.fixture(scope="function")
def db():
    """Create a fresh database for each test."""
    global _test_session

    Base.metadata.create_all(bind=engine)
    _test_session = SessionLocal()

    app.dependency_overrides[get_db] = get_test_db
    app.dependency_overrides[get_gateway_factory] = lambda: FakeGateway
    FakeGateway.orders = []
    credential_store.clear()

    yield _test_session

    app.dependency_overrides.clear()
    credential_store.clear()
    _test_session.close()
    _test_session = None

    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db):
    """Create a test client."""
    with TestClient(app) as c:
        yield c


@pytest.fixture
def fake_gateway():
    return FakeGateway


@pytest.fixture
def events():
    return event_manager


def make_user(db, email, password="testpassword123", name="Test User", is_admin=False):
    user = User(
        name=name,
        email=email,
        password_hash=get_password_hash(password),
        is_admin=is_admin,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def headers_for(user):
    return {"Authorization": f"Bearer {create_access_token(token_claims(user))}"}


@pytest.fixture(scope="function")
def test_user(db):
    """Create a test user."""
    return make_user(db, "test@example.com")


@pytest.fixture(scope="function")
def other_user(db):
    return make_user(db, "other@example.com", name="Other User")


@pytest.fixture(scope="function")
def admin_user(db):
    return make_user(db, "admin@example.com", password="adminpassword123", name="Admin", is_admin=True)


@pytest.fixture(scope="function")
def auth_headers(test_user):
    """Get auth headers for the test user."""
    return headers_for(test_user)


@pytest.fixture(scope="function")
def admin_headers(admin_user):
    return headers_for(admin_user)


@pytest.fixture(scope="function")
def group(db, test_user):
    group = Group(user_id=test_user.id, name="Lobby screen")
    db.add(group)
    db.commit()
    db.refresh(group)
    return group


@pytest.fixture(scope="function")
def package(db):
    package = Package(
        name="Business",
        features={"max_groups": 5},
        price=Decimal("1999.50"),
        duration_days=30,
    )
    db.add(package)
    db.commit()
    db.refresh(package)
    return package


@pytest.fixture(scope="function")
def gateway_keys(db):
    """Configure live gateway credentials."""
    return credential_store.rotate(db, "rzp_test_key_one", "secret_one")
