from __future__ import annotations

import sqlite3
from datetime import datetime
from typing import Optional

from ..errors import InternalError
from ..models.shop_models import PaymentCapture
from .database import create_connection, format_timestamp, parse_timestamp


def record_capture(capture: PaymentCapture) -> PaymentCapture:
    with create_connection() as connection:
        connection.execute(
            """
            INSERT INTO payment_captures (reference, capture_id, status, amount, currency, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(reference) DO UPDATE SET
                capture_id = excluded.capture_id,
                status = excluded.status,
                amount = excluded.amount,
                currency = excluded.currency
            """,
            (
                capture.reference.strip(),
                capture.capture_id.strip(),
                capture.status.strip().upper(),
                float(capture.amount),
                capture.currency.strip().upper() or "EUR",
                format_timestamp(capture.created_at or datetime.now()),
            ),
        )
        connection.commit()

    stored = get_capture(capture.reference)
    if stored is None:
        raise InternalError("Stored payment capture could not be read back")
    return stored


def get_capture(reference: str) -> Optional[PaymentCapture]:
    with create_connection() as connection:
        row = connection.execute(
            """
            SELECT id, reference, capture_id, status, amount, currency, order_id, created_at
            FROM payment_captures
            WHERE reference = ?
            """,
            (reference.strip(),),
        ).fetchone()
    if row is None:
        return None
    return _row_to_capture(row)


def _row_to_capture(row: sqlite3.Row) -> PaymentCapture:
    return PaymentCapture(
        id=int(row["id"]),
        reference=row["reference"],
        capture_id=row["capture_id"] or "",
        status=row["status"],
        amount=float(row["amount"] or 0.0),
        currency=row["currency"] or "EUR",
        order_id=row["order_id"],
        created_at=parse_timestamp(row["created_at"]),
    )
