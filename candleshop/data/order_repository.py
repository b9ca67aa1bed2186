from __future__ import annotations

import sqlite3
from datetime import datetime
from typing import List, Optional

from ..errors import PaymentIncompleteError
from ..models.shop_models import Order, OrderLine
from .database import create_connection, format_timestamp, parse_timestamp


_ORDER_COLUMNS = """
    id,
    user_id,
    status,
    payment_method,
    payment_status,
    payment_reference,
    subtotal,
    discount_amount,
    shipping_cost,
    total,
    customer_note,
    shipping_address,
    shipping_city,
    shipping_postal_code,
    shipping_country,
    created_at
"""


def insert_order(order: Order) -> int:
    """Persist the order and its lines in one transaction.

    When the order carries a payment reference, the matching completed capture is
    claimed in the same transaction so a capture can only ever pay for one order.
    """
    with create_connection() as connection:
        cursor = connection.cursor()
        try:
            cursor.execute(
                """
                INSERT INTO orders (
                    user_id,
                    status,
                    payment_method,
                    payment_status,
                    payment_reference,
                    subtotal,
                    discount_amount,
                    shipping_cost,
                    total,
                    customer_note,
                    shipping_address,
                    shipping_city,
                    shipping_postal_code,
                    shipping_country,
                    created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    int(order.user_id),
                    order.status.strip(),
                    order.payment_method.strip(),
                    order.payment_status.strip(),
                    order.payment_reference,
                    order.subtotal,
                    order.discount_amount,
                    order.shipping_cost,
                    order.total,
                    order.customer_note.strip(),
                    order.shipping_address.strip(),
                    order.shipping_city.strip(),
                    order.shipping_postal_code.strip(),
                    order.shipping_country.strip(),
                    format_timestamp(order.created_at or datetime.now()),
                ),
            )
            order_id = int(cursor.lastrowid)

            if order.payment_reference:
                cursor.execute(
                    """
                    UPDATE payment_captures
                    SET order_id = ?
                    WHERE reference = ? AND status = 'COMPLETED' AND order_id IS NULL
                    """,
                    (order_id, order.payment_reference),
                )
                if cursor.rowcount == 0:
                    connection.rollback()
                    raise PaymentIncompleteError(
                        "Payment has not been completed",
                        {"paymentReference": "No completed payment found for this reference"},
                    )

            cursor.executemany(
                """
                INSERT INTO order_items (
                    order_id,
                    product_id,
                    product_name,
                    quantity,
                    price,
                    scent_id,
                    scent_name,
                    color_id,
                    color_name,
                    color_ids,
                    has_multiple_colors
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        order_id,
                        line.product_id,
                        line.product_name.strip(),
                        int(line.quantity),
                        float(line.price),
                        line.scent_id,
                        line.scent_name,
                        line.color_id,
                        line.color_name,
                        line.color_ids,
                        1 if line.has_multiple_colors else 0,
                    )
                    for line in order.lines
                ],
            )

            connection.commit()
            return order_id
        except sqlite3.IntegrityError as exc:
            connection.rollback()
            raise exc
        finally:
            cursor.close()


def fetch_order(order_id: int) -> Optional[Order]:
    with create_connection() as connection:
        row = connection.execute(
            f"SELECT {_ORDER_COLUMNS} FROM orders WHERE id = ?",
            (int(order_id),),
        ).fetchone()
    if row is None:
        return None
    order = _row_to_order(row)
    order.lines = fetch_order_lines(order.id)
    return order


def fetch_user_orders(user_id: int) -> List[Order]:
    with create_connection() as connection:
        rows = connection.execute(
            f"SELECT {_ORDER_COLUMNS} FROM orders WHERE user_id = ? ORDER BY created_at DESC, id DESC",
            (int(user_id),),
        ).fetchall()
    return [_row_to_order(row) for row in rows]


def fetch_orders(limit: Optional[int] = None, offset: int = 0) -> List[Order]:
    sql = [f"SELECT {_ORDER_COLUMNS} FROM orders ORDER BY created_at DESC, id DESC"]
    params: List[object] = []
    if limit is not None or offset:
        sql.append("LIMIT ? OFFSET ?")
        params.extend([-1 if limit is None else int(limit), int(offset)])
    with create_connection() as connection:
        rows = connection.execute(" ".join(sql), params).fetchall()
    return [_row_to_order(row) for row in rows]


def fetch_order_lines(order_id: int) -> List[OrderLine]:
    with create_connection() as connection:
        rows = connection.execute(
            """
            SELECT
                id,
                order_id,
                product_id,
                product_name,
                quantity,
                price,
                scent_id,
                scent_name,
                color_id,
                color_name,
                color_ids,
                has_multiple_colors
            FROM order_items
            WHERE order_id = ?
            ORDER BY id ASC
            """,
            (int(order_id),),
        ).fetchall()

    return [
        OrderLine(
            id=int(row["id"]),
            order_id=int(row["order_id"]),
            product_id=row["product_id"],
            product_name=row["product_name"],
            quantity=int(row["quantity"]),
            price=float(row["price"]),
            scent_id=row["scent_id"],
            scent_name=row["scent_name"],
            color_id=row["color_id"],
            color_name=row["color_name"],
            color_ids=row["color_ids"],
            has_multiple_colors=bool(row["has_multiple_colors"]),
        )
        for row in rows
    ]


def update_status(order_id: int, status: str) -> bool:
    with create_connection() as connection:
        cursor = connection.execute(
            "UPDATE orders SET status = ? WHERE id = ?",
            (status, int(order_id)),
        )
        connection.commit()
        return cursor.rowcount > 0


def update_payment_status(order_id: int, payment_status: str) -> bool:
    with create_connection() as connection:
        cursor = connection.execute(
            "UPDATE orders SET payment_status = ? WHERE id = ?",
            (payment_status, int(order_id)),
        )
        connection.commit()
        return cursor.rowcount > 0


def _row_to_order(row: sqlite3.Row) -> Order:
    return Order(
        id=int(row["id"]),
        user_id=int(row["user_id"]),
        status=row["status"],
        payment_method=row["payment_method"],
        payment_status=row["payment_status"] or "pending",
        payment_reference=row["payment_reference"],
        subtotal=float(row["subtotal"] or 0.0),
        discount_amount=float(row["discount_amount"] or 0.0),
        shipping_cost=float(row["shipping_cost"] or 0.0),
        total=float(row["total"] or 0.0),
        customer_note=row["customer_note"] or "",
        shipping_address=row["shipping_address"] or "",
        shipping_city=row["shipping_city"] or "",
        shipping_postal_code=row["shipping_postal_code"] or "",
        shipping_country=row["shipping_country"] or "",
        created_at=parse_timestamp(row["created_at"]),
    )
