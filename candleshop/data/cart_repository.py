from __future__ import annotations

import sqlite3
from typing import List, Optional

from ..errors import InternalError
from ..models.shop_models import CartLine
from .database import create_connection


_CART_COLUMNS = """
    id,
    user_id,
    product_id,
    quantity,
    scent_id,
    color_id,
    color_ids,
    color_name,
    has_multiple_colors
"""


def list_lines(user_id: int) -> List[CartLine]:
    with create_connection() as connection:
        rows = connection.execute(
            f"SELECT {_CART_COLUMNS} FROM cart_items WHERE user_id = ? ORDER BY id ASC",
            (int(user_id),),
        ).fetchall()
    return [_row_to_line(row) for row in rows]


def get_line(line_id: int) -> Optional[CartLine]:
    with create_connection() as connection:
        row = connection.execute(
            f"SELECT {_CART_COLUMNS} FROM cart_items WHERE id = ?",
            (int(line_id),),
        ).fetchone()
    if row is None:
        return None
    return _row_to_line(row)


def find_candidate_lines(
    user_id: int,
    product_id: int,
    scent_id: Optional[int],
    has_multiple_colors: bool,
) -> List[CartLine]:
    """Lines for the same product, scent and color mode; color ids are compared by the caller."""
    with create_connection() as connection:
        rows = connection.execute(
            f"""
            SELECT {_CART_COLUMNS}
            FROM cart_items
            WHERE user_id = ?
              AND product_id = ?
              AND scent_id IS ?
              AND has_multiple_colors = ?
            ORDER BY id ASC
            """,
            (int(user_id), int(product_id), scent_id, 1 if has_multiple_colors else 0),
        ).fetchall()
    return [_row_to_line(row) for row in rows]


def insert_line(line: CartLine) -> CartLine:
    with create_connection() as connection:
        cursor = connection.execute(
            """
            INSERT INTO cart_items (
                user_id,
                product_id,
                quantity,
                scent_id,
                color_id,
                color_ids,
                color_name,
                has_multiple_colors
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                int(line.user_id),
                int(line.product_id),
                int(line.quantity),
                line.scent_id,
                line.color_id,
                line.color_ids,
                line.color_name,
                1 if line.has_multiple_colors else 0,
            ),
        )
        connection.commit()
        line_id = int(cursor.lastrowid)

    created = get_line(line_id)
    if created is None:
        raise InternalError("Stored cart item could not be read back")
    return created


def increment_quantity(line_id: int, amount: int) -> Optional[CartLine]:
    with create_connection() as connection:
        connection.execute(
            "UPDATE cart_items SET quantity = quantity + ? WHERE id = ?",
            (int(amount), int(line_id)),
        )
        connection.commit()
    return get_line(line_id)


def update_quantity(line_id: int, user_id: int, quantity: int) -> Optional[CartLine]:
    with create_connection() as connection:
        cursor = connection.execute(
            "UPDATE cart_items SET quantity = ? WHERE id = ? AND user_id = ?",
            (int(quantity), int(line_id), int(user_id)),
        )
        connection.commit()
        if cursor.rowcount == 0:
            return None
    return get_line(line_id)


def delete_line(line_id: int, user_id: int) -> bool:
    with create_connection() as connection:
        cursor = connection.execute(
            "DELETE FROM cart_items WHERE id = ? AND user_id = ?",
            (int(line_id), int(user_id)),
        )
        connection.commit()
        return cursor.rowcount > 0


def clear(user_id: int) -> int:
    with create_connection() as connection:
        cursor = connection.execute("DELETE FROM cart_items WHERE user_id = ?", (int(user_id),))
        connection.commit()
        return cursor.rowcount


def _row_to_line(row: sqlite3.Row) -> CartLine:
    return CartLine(
        id=int(row["id"]),
        user_id=int(row["user_id"]),
        product_id=int(row["product_id"]),
        quantity=int(row["quantity"]),
        scent_id=row["scent_id"],
        color_id=row["color_id"],
        color_ids=row["color_ids"],
        color_name=row["color_name"],
        has_multiple_colors=bool(row["has_multiple_colors"]),
    )
