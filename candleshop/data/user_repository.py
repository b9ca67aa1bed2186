from __future__ import annotations

import sqlite3
from datetime import datetime
from typing import List, Optional

from ..errors import ConflictError, InternalError
from ..models.shop_models import User
from .database import create_connection, format_timestamp, parse_timestamp


_USER_COLUMNS = """
    id,
    username,
    email,
    first_name,
    last_name,
    address,
    city,
    postal_code,
    country,
    phone,
    is_admin,
    discount_amount,
    discount_minimum_order,
    discount_expiry_date,
    preferred_language,
    created_at
"""


def create_user(user: User) -> User:
    username = user.username.strip()
    email = user.email.strip().lower()
    with create_connection() as connection:
        existing = connection.execute(
            "SELECT username, email FROM users WHERE username = ? OR email = ?",
            (username, email),
        ).fetchone()
        if existing is not None:
            if existing["username"] == username:
                raise ConflictError("Username already exists", {"username": "Username already exists"})
            raise ConflictError("Email already exists", {"email": "Email already exists"})

        try:
            cursor = connection.execute(
                """
                INSERT INTO users (
                    username,
                    email,
                    first_name,
                    last_name,
                    address,
                    city,
                    postal_code,
                    country,
                    phone,
                    is_admin,
                    discount_amount,
                    discount_minimum_order,
                    discount_expiry_date,
                    preferred_language,
                    created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    username,
                    email,
                    user.first_name.strip(),
                    user.last_name.strip(),
                    user.address.strip(),
                    user.city.strip(),
                    user.postal_code.strip(),
                    user.country.strip(),
                    user.phone.strip(),
                    1 if user.is_admin else 0,
                    float(user.discount_amount or 0.0),
                    float(user.discount_minimum_order or 0.0),
                    format_timestamp(user.discount_expiry_date),
                    (user.preferred_language or "de").strip().lower(),
                    format_timestamp(user.created_at or datetime.now()),
                ),
            )
            connection.commit()
        except sqlite3.IntegrityError as exc:
            connection.rollback()
            raise ConflictError("Username or email already exists") from exc
        user_id = int(cursor.lastrowid)

    created = get_user(user_id)
    if created is None:
        raise InternalError("Stored user could not be read back")
    return created


def get_user(user_id: int) -> Optional[User]:
    with create_connection() as connection:
        row = connection.execute(
            f"SELECT {_USER_COLUMNS} FROM users WHERE id = ?",
            (int(user_id),),
        ).fetchone()

    if row is None:
        return None
    return _row_to_user(row)


def set_discount(
    user_id: int,
    amount: float,
    minimum_order: float = 0.0,
    expiry: Optional[datetime] = None,
) -> Optional[User]:
    with create_connection() as connection:
        cursor = connection.execute(
            """
            UPDATE users
            SET discount_amount = ?, discount_minimum_order = ?, discount_expiry_date = ?
            WHERE id = ?
            """,
            (
                max(0.0, float(amount)),
                max(0.0, float(minimum_order)),
                format_timestamp(expiry),
                int(user_id),
            ),
        )
        connection.commit()
        if cursor.rowcount == 0:
            return None
    return get_user(user_id)


def _row_to_user(row: sqlite3.Row) -> User:
    return User(
        id=int(row["id"]),
        username=row["username"],
        email=row["email"],
        first_name=row["first_name"] or "",
        last_name=row["last_name"] or "",
        address=row["address"] or "",
        city=row["city"] or "",
        postal_code=row["postal_code"] or "",
        country=row["country"] or "",
        phone=row["phone"] or "",
        is_admin=bool(row["is_admin"]),
        discount_amount=float(row["discount_amount"] or 0.0),
        discount_minimum_order=float(row["discount_minimum_order"] or 0.0),
        discount_expiry_date=parse_timestamp(row["discount_expiry_date"]),
        preferred_language=row["preferred_language"] or "de",
        created_at=parse_timestamp(row["created_at"]),
    )
