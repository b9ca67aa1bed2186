from __future__ import annotations

from candleshop.data import database, user_repository
from candleshop.models.shop_models import User


def test_initialize_is_repeatable(db):
    database.initialize()

    with database.create_connection() as connection:
        columns = {row["name"] for row in connection.execute("PRAGMA table_info(users)").fetchall()}

    assert "preferred_language" in columns


def test_preferred_language_is_stored(db):
    created = user_repository.create_user(
        User(id=0, username="luka", email="luka@example.com", preferred_language="EN")
    )

    assert created.preferred_language == "en"
    assert user_repository.get_user(created.id).preferred_language == "en"
