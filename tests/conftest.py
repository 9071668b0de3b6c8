"""
Shared fixtures: an app on in-memory SQLite with the test secrets, a client,
and helpers to register / log in parents through the HTTP surface.
"""

import pytest

from app import create_app
from config import TestConfig
from models import db
from models.parent import Parent
from security.encryption import FieldKind
from security.extensions import encryption
from security.password import hash_password

DEFAULT_PASSWORD = "longenough1"
DEFAULT_PHONE = "+254700000000"


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_parent(app):
    """Insert a parent row directly, bypassing the HTTP layer."""
    def _make(email="parent@example.com", password=DEFAULT_PASSWORD, phone=DEFAULT_PHONE):
        parent = Parent(
            email=email,
            full_name="Charity Muigai",
            phone_number=encryption().encrypt(phone, FieldKind.PHONE),
            password_hash=hash_password(password),
        )
        db.session.add(parent)
        db.session.commit()
        return parent
    return _make


@pytest.fixture
def register(client):
    def _register(email="a@b.com", password=DEFAULT_PASSWORD, phone=DEFAULT_PHONE,
                  full_name="Charity Muigai"):
        return client.post("/api/auth/register", json={
            "fullName": full_name,
            "email": email,
            "password": password,
            "phoneNumber": phone,
        })
    return _register


@pytest.fixture
def login(client):
    def _login(email="a@b.com", password=DEFAULT_PASSWORD, origin="10.0.0.1"):
        return client.post(
            "/api/auth/login",
            json={"email": email, "password": password},
            environ_base={"REMOTE_ADDR": origin},
        )
    return _login
