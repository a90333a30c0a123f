"""Shared pytest fixtures for the storefront tests."""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from jose import jwt

import auth
from database import InMemoryKeyValueStore, get_store
from main import app
from repositories import ProductRepository
from schemas import Actor, Product, Role


def make_token(user_id, role="user", email=None, expires_in=timedelta(hours=1)):
    claims = {
        "sub": user_id,
        "email": email or f"{user_id}@example.com",
        "user_metadata": {"name": user_id.title(), "role": role},
        "exp": datetime.now(timezone.utc) + expires_in,
    }
    return jwt.encode(claims, auth.JWT_SECRET, algorithm=auth.JWT_ALGORITHM)


def auth_header(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def store():
    return InMemoryKeyValueStore()


@pytest.fixture
def client(store):
    app.dependency_overrides[get_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def alice():
    return Actor(id="alice", email="alice@example.com", role=Role.USER)


@pytest.fixture
def bob():
    return Actor(id="bob", email="bob@example.com", role=Role.USER)


@pytest.fixture
def admin():
    return Actor(id="admin", email="admin@example.com", role=Role.ADMIN)


@pytest.fixture
def user_headers():
    return auth_header(make_token("alice"))


@pytest.fixture
def other_headers():
    return auth_header(make_token("bob"))


@pytest.fixture
def admin_headers():
    return auth_header(make_token("admin", role="admin"))


@pytest.fixture
def add_product(store):
    """Factory that stores a product and returns it."""
    products = ProductRepository(store)

    def _add(product_id, price=10.0, name=None, stock=10):
        return products.put(Product(id=product_id, name=name or product_id, price=price, stock=stock))

    return _add
