from __future__ import annotations

import pytest

from candleshop.data import catalog_repository, database, user_repository
from candleshop.models.shop_models import Product, User

_ENV_KEYS = (
    "CANDLESHOP_ENV",
    "CANDLESHOP_ALLOW_MOCK_PAYMENTS",
    "PAYPAL_CLIENT_ID",
    "PAYPAL_CLIENT_SECRET",
    "PAYPAL_API_BASE",
    "SENDGRID_API_KEY",
    "CANDLESHOP_ADMIN_EMAIL",
    "CANDLESHOP_ADMIN_PHONE",
    "CANDLESHOP_PUBLIC_URL",
)


@pytest.fixture
def db(tmp_path, monkeypatch):
    monkeypatch.setenv("CANDLESHOP_DATA_DIR", str(tmp_path))
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    database.initialize()
    return tmp_path


@pytest.fixture
def customer(db) -> User:
    return user_repository.create_user(
        User(
            id=0,
            username="ana",
            email="ana@example.com",
            first_name="Ana",
            last_name="Horvat",
            address="Ilica 1",
            city="Zagreb",
            postal_code="10000",
            country="Hrvatska",
            phone="+385 91 000 0000",
        )
    )


@pytest.fixture
def admin(db) -> User:
    return user_repository.create_user(User(id=0, username="dani", email="dani@example.com", is_admin=True))


@pytest.fixture
def candle(db) -> Product:
    return catalog_repository.create_product(
        Product(id=0, name="Vanilla Candle", price=10.0, has_color_options=True, allow_multiple_colors=True)
    )


@pytest.fixture
def colors(db):
    return [
        catalog_repository.create_color("Red", "#ff0000"),
        catalog_repository.create_color("Blue", "#0000ff"),
        catalog_repository.create_color("Green", "#00ff00"),
    ]


@pytest.fixture
def lavender(db):
    return catalog_repository.create_scent("Lavender")
