from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from ..models.shop_models import SettingEntry, ShopSettings
from .database import create_connection, format_timestamp, parse_timestamp

_DEFAULTS: Dict[str, str] = {
    "freeShippingThreshold": "50",
    "standardShippingRate": "5",
    "storeName": "Kerzenwelt by Dani",
    "storeAddress": "",
    "storeCity": "",
    "storeEmail": "info@kerzenweltbydani.com",
    "storePhone": "",
    "storeWebsite": "",
    "invoiceLogoPath": "",
}


def get_default(key: str) -> Optional[str]:
    return _DEFAULTS.get(key.strip())


def get_setting(key: str) -> Optional[str]:
    """Return the stored value, or None when the key was never written."""
    key = key.strip()
    with create_connection() as connection:
        row = connection.execute(
            "SELECT value FROM settings WHERE key = ?",
            (key,),
        ).fetchone()

    if row is None:
        return None
    return row["value"]


def get_setting_entry(key: str) -> Optional[SettingEntry]:
    key = key.strip()
    with create_connection() as connection:
        row = connection.execute(
            "SELECT key, value, updated_at FROM settings WHERE key = ?",
            (key,),
        ).fetchone()

    if row is None:
        return None
    return SettingEntry(key=row["key"], value=row["value"], updated_at=parse_timestamp(row["updated_at"]))


def set_setting(key: str, value: str) -> SettingEntry:
    key = key.strip()
    if not key:
        raise ValueError("Setting key cannot be empty")
    now = datetime.now()
    with create_connection() as connection:
        connection.execute(
            """
            INSERT INTO settings (key, value, updated_at)
            VALUES (?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
            """,
            (key, str(value), format_timestamp(now)),
        )
        connection.commit()
    return SettingEntry(key=key, value=str(value), updated_at=now.replace(microsecond=0))


def delete_setting(key: str) -> bool:
    with create_connection() as connection:
        cursor = connection.execute("DELETE FROM settings WHERE key = ?", (key.strip(),))
        connection.commit()
        return cursor.rowcount > 0


def list_settings() -> List[SettingEntry]:
    with create_connection() as connection:
        rows = connection.execute(
            "SELECT key, value, updated_at FROM settings ORDER BY key ASC"
        ).fetchall()

    return [
        SettingEntry(key=row["key"], value=row["value"], updated_at=parse_timestamp(row["updated_at"]))
        for row in rows
    ]


def get_shop_settings() -> ShopSettings:
    def _text(key: str) -> str:
        value = get_setting(key)
        if value is None or not value.strip():
            return _DEFAULTS[key]
        return value.strip()

    return ShopSettings(
        store_name=_text("storeName"),
        store_address=_text("storeAddress"),
        store_city=_text("storeCity"),
        store_email=_text("storeEmail"),
        store_phone=_text("storePhone"),
        store_website=_text("storeWebsite"),
        invoice_logo_path=_text("invoiceLogoPath"),
    )
