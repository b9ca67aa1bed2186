from __future__ import annotations

import re
import sqlite3
from datetime import datetime
from typing import List, Optional, Tuple

from ..models.shop_models import Invoice, InvoiceLine
from .database import create_connection, format_timestamp, parse_timestamp


INVOICE_PREFIX = "i"
FIRST_INVOICE_NUMBER = 450
_SEQUENCE_NAME = "invoice_number"
_NUMBER_PATTERN = re.compile(r"(\d+)(?!.*\d)")

_INVOICE_COLUMNS = """
    id,
    invoice_number,
    order_id,
    user_id,
    customer_name,
    customer_email,
    customer_address,
    customer_city,
    customer_postal_code,
    customer_country,
    customer_phone,
    customer_note,
    payment_method,
    subtotal,
    shipping_cost,
    discount_amount,
    tax,
    total,
    language,
    created_at
"""


def format_invoice_number(value: int) -> str:
    return f"{INVOICE_PREFIX}{int(value)}"


def parse_invoice_number(invoice_number: Optional[str]) -> int:
    if not invoice_number:
        return 0
    match = _NUMBER_PATTERN.search(invoice_number)
    if match is None:
        return 0
    return int(match.group(1))


def next_invoice_number(last_number: int, order_id: Optional[int] = None) -> int:
    return max(int(last_number) + 1, FIRST_INVOICE_NUMBER, int(order_id or 0))


def insert_invoice(invoice: Invoice) -> Tuple[int, bool]:
    """Allocate the next invoice number and store the invoice with its lines.

    Runs in a single write transaction, so the counter read, the counter update and
    the insert cannot interleave with another writer. When the invoice belongs to an
    order that already has one, nothing is written and ``(existing_id, False)`` is
    returned.
    """
    connection = create_connection()
    try:
        connection.execute("BEGIN IMMEDIATE")

        if invoice.order_id is not None:
            existing = connection.execute(
                "SELECT id FROM invoices WHERE order_id = ?",
                (int(invoice.order_id),),
            ).fetchone()
            if existing is not None:
                connection.rollback()
                return int(existing["id"]), False

        number = next_invoice_number(_read_last_number(connection), invoice.order_id)
        connection.execute(
            """
            INSERT INTO sequences (name, value) VALUES (?, ?)
            ON CONFLICT(name) DO UPDATE SET value = excluded.value
            """,
            (_SEQUENCE_NAME, number),
        )

        cursor = connection.execute(
            """
            INSERT INTO invoices (
                invoice_number,
                order_id,
                user_id,
                customer_name,
                customer_email,
                customer_address,
                customer_city,
                customer_postal_code,
                customer_country,
                customer_phone,
                customer_note,
                payment_method,
                subtotal,
                shipping_cost,
                discount_amount,
                tax,
                total,
                language,
                created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                format_invoice_number(number),
                invoice.order_id,
                int(invoice.user_id),
                invoice.customer_name.strip(),
                invoice.customer_email.strip(),
                invoice.customer_address.strip(),
                invoice.customer_city.strip(),
                invoice.customer_postal_code.strip(),
                invoice.customer_country.strip(),
                invoice.customer_phone.strip(),
                invoice.customer_note.strip(),
                invoice.payment_method.strip(),
                invoice.subtotal,
                invoice.shipping_cost,
                invoice.discount_amount,
                invoice.tax,
                invoice.total,
                invoice.language,
                format_timestamp(invoice.created_at or datetime.now()),
            ),
        )
        invoice_id = int(cursor.lastrowid)

        connection.executemany(
            """
            INSERT INTO invoice_items (
                invoice_id,
                product_id,
                product_name,
                quantity,
                price,
                selected_scent,
                selected_color,
                has_multiple_colors
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [
                (
                    invoice_id,
                    line.product_id,
                    line.product_name,
                    int(line.quantity),
                    float(line.price),
                    line.selected_scent,
                    line.selected_color,
                    1 if line.has_multiple_colors else 0,
                )
                for line in invoice.lines
            ],
        )

        connection.commit()
        return invoice_id, True
    except Exception:
        connection.rollback()
        raise
    finally:
        connection.close()


def _read_last_number(connection: sqlite3.Connection) -> int:
    row = connection.execute(
        "SELECT value FROM sequences WHERE name = ?",
        (_SEQUENCE_NAME,),
    ).fetchone()
    if row is not None:
        return int(row["value"])

    # No counter yet: continue from the most recently created invoice.
    last = connection.execute(
        "SELECT invoice_number FROM invoices ORDER BY id DESC LIMIT 1"
    ).fetchone()
    if last is None:
        return 0
    return parse_invoice_number(last["invoice_number"])


def peek_last_number() -> int:
    with create_connection() as connection:
        return _read_last_number(connection)


def fetch_invoice(invoice_id: int) -> Optional[Invoice]:
    with create_connection() as connection:
        row = connection.execute(
            f"SELECT {_INVOICE_COLUMNS} FROM invoices WHERE id = ?",
            (int(invoice_id),),
        ).fetchone()
    if row is None:
        return None
    invoice = _row_to_invoice(row)
    invoice.lines = fetch_invoice_lines(invoice.id)
    return invoice


def fetch_invoice_for_order(order_id: int) -> Optional[Invoice]:
    with create_connection() as connection:
        row = connection.execute(
            "SELECT id FROM invoices WHERE order_id = ?",
            (int(order_id),),
        ).fetchone()
    if row is None:
        return None
    return fetch_invoice(int(row["id"]))


def fetch_last_invoice() -> Optional[Invoice]:
    with create_connection() as connection:
        row = connection.execute(
            f"SELECT {_INVOICE_COLUMNS} FROM invoices ORDER BY id DESC LIMIT 1"
        ).fetchone()
    if row is None:
        return None
    return _row_to_invoice(row)


def fetch_invoices() -> List[Invoice]:
    with create_connection() as connection:
        rows = connection.execute(
            f"SELECT {_INVOICE_COLUMNS} FROM invoices ORDER BY id DESC"
        ).fetchall()
    return [_row_to_invoice(row) for row in rows]


def fetch_user_invoices(user_id: int) -> List[Invoice]:
    with create_connection() as connection:
        rows = connection.execute(
            f"SELECT {_INVOICE_COLUMNS} FROM invoices WHERE user_id = ? ORDER BY id DESC",
            (int(user_id),),
        ).fetchall()
    return [_row_to_invoice(row) for row in rows]


def fetch_invoice_lines(invoice_id: int) -> List[InvoiceLine]:
    with create_connection() as connection:
        rows = connection.execute(
            """
            SELECT
                id,
                invoice_id,
                product_id,
                product_name,
                quantity,
                price,
                selected_scent,
                selected_color,
                has_multiple_colors
            FROM invoice_items
            WHERE invoice_id = ?
            ORDER BY id ASC
            """,
            (int(invoice_id),),
        ).fetchall()

    return [
        InvoiceLine(
            id=int(row["id"]),
            invoice_id=int(row["invoice_id"]),
            product_id=row["product_id"],
            product_name=row["product_name"],
            quantity=int(row["quantity"]),
            price=float(row["price"]),
            selected_scent=row["selected_scent"],
            selected_color=row["selected_color"],
            has_multiple_colors=bool(row["has_multiple_colors"]),
        )
        for row in rows
    ]


def delete_invoice(invoice_id: int) -> bool:
    with create_connection() as connection:
        cursor = connection.execute("DELETE FROM invoices WHERE id = ?", (int(invoice_id),))
        connection.commit()
        return cursor.rowcount > 0


def _row_to_invoice(row: sqlite3.Row) -> Invoice:
    return Invoice(
        id=int(row["id"]),
        invoice_number=row["invoice_number"],
        order_id=row["order_id"],
        user_id=int(row["user_id"]),
        customer_name=row["customer_name"],
        customer_email=row["customer_email"] or "",
        customer_address=row["customer_address"] or "",
        customer_city=row["customer_city"] or "",
        customer_postal_code=row["customer_postal_code"] or "",
        customer_country=row["customer_country"] or "",
        customer_phone=row["customer_phone"] or "",
        customer_note=row["customer_note"] or "",
        payment_method=row["payment_method"],
        subtotal=float(row["subtotal"] or 0.0),
        shipping_cost=float(row["shipping_cost"] or 0.0),
        discount_amount=float(row["discount_amount"] or 0.0),
        tax=float(row["tax"] or 0.0),
        total=float(row["total"] or 0.0),
        language=row["language"] or "hr",
        created_at=parse_timestamp(row["created_at"]),
    )
