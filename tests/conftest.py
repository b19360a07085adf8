from dataclasses import replace

import pytest
from fastapi.testclient import TestClient

from marketplace.config import Settings
from marketplace.main import create_app
from marketplace.middleware.rbac import Identity
from marketplace.models.product import Product
from marketplace.models.user import User
from marketplace.utils.enums import ApprovalStatus, UserRole
from marketplace.utils.security import hash_password

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


@pytest.fixture
def settings(tmp_path):
    return Settings(
        env="test",
        database_url=f"sqlite:///{tmp_path / 'test.db'}",
        jwt_secret="test-secret",
        upload_dir=tmp_path / "uploads",
        log_level="DEBUG",
    )


@pytest.fixture
def make_client(settings):
    """Build a client against a fresh app; keyword args override settings."""
    def _make(**overrides):
        return TestClient(create_app(replace(settings, **overrides)))
    return _make


@pytest.fixture
def client(make_client):
    return make_client()


@pytest.fixture
def db(client):
    session = client.app.state.session_factory()
    yield session
    session.close()


def app_settings(client) -> Settings:
    return client.app.state.settings


def create_user(client, username, role=UserRole.SELLER.value, password="pass123", phone=None, banned=False):
    session = client.app.state.session_factory()
    try:
        user = User(
            username=username,
            email=f"{username}@test.local",
            phone=phone or "+77001234567",
            password_hash=hash_password(password),
            role=role,
            is_banned=banned,
        )
        session.add(user)
        session.commit()
        return user.id
    finally:
        session.close()


def login(client, username, password="pass123"):
    resp = client.post("/auth/login", json={"email": f"{username}@test.local", "password": password})
    assert resp.status_code == 200, resp.text
    return resp.json()


def token_for(client, username, password="pass123"):
    return login(client, username, password)["access_token"]


def auth_header(token):
    return {"Authorization": f"Bearer {token}"}


def upload_product(client, token, name="Chair", price="50", description="Wooden chair",
                   filename="chair.png", content=PNG_BYTES, content_type="image/png"):
    data = {"name": name, "price": price, "description": description}
    files = {"image": (filename, content, content_type)} if filename else None
    return client.post("/products", data=data, files=files, headers=auth_header(token))


def make_product(session, seller_id, name="Lamp", status=ApprovalStatus.PENDING.value, price=10):
    product = Product(
        name=name,
        price=price,
        description=f"{name} description",
        image=f"{name.lower()}.png",
        seller_id=seller_id,
        approval_status=status,
    )
    session.add(product)
    session.commit()
    session.refresh(product)
    return product


def seller_identity(user_id):
    return Identity(user_id=user_id, role=UserRole.SELLER.value)


def admin_identity(user_id):
    return Identity(user_id=user_id, role=UserRole.ADMIN.value)
