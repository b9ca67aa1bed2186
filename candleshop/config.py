from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class AppConfig:
    data_dir: Path
    environment: str
    allow_mock_payments: bool
    paypal_client_id: str
    paypal_client_secret: str
    paypal_api_base: str
    sendgrid_api_key: str
    from_email: str
    admin_email: str
    admin_phone: str
    public_url: str
    host: str
    port: int
    log_level: str

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def has_paypal_credentials(self) -> bool:
        return bool(self.paypal_client_id and self.paypal_client_secret)


def load_config() -> AppConfig:
    """Read the runtime configuration from the environment."""
    environment = (os.getenv("CANDLESHOP_ENV") or "development").strip().lower()
    is_production = environment == "production"

    data_dir_raw = os.getenv("CANDLESHOP_DATA_DIR")
    data_dir = Path(data_dir_raw).expanduser() if data_dir_raw else Path.home() / ".candleshop"

    # Mock payments can never be switched on in production.
    allow_mock = _parse_flag(os.getenv("CANDLESHOP_ALLOW_MOCK_PAYMENTS"), default=not is_production)
    if is_production:
        allow_mock = False

    paypal_base = "https://api-m.paypal.com" if is_production else "https://api-m.sandbox.paypal.com"

    try:
        port = int(os.getenv("CANDLESHOP_PORT") or "5000")
    except ValueError:
        port = 5000

    return AppConfig(
        data_dir=data_dir,
        environment=environment,
        allow_mock_payments=allow_mock,
        paypal_client_id=(os.getenv("PAYPAL_CLIENT_ID") or "").strip(),
        paypal_client_secret=(os.getenv("PAYPAL_CLIENT_SECRET") or "").strip(),
        paypal_api_base=(os.getenv("PAYPAL_API_BASE") or paypal_base).rstrip("/"),
        sendgrid_api_key=(os.getenv("SENDGRID_API_KEY") or "").strip(),
        from_email=(os.getenv("CANDLESHOP_FROM_EMAIL") or "info@kerzenweltbydani.com").strip(),
        admin_email=(os.getenv("CANDLESHOP_ADMIN_EMAIL") or "").strip(),
        admin_phone=(os.getenv("CANDLESHOP_ADMIN_PHONE") or "").strip(),
        public_url=(os.getenv("CANDLESHOP_PUBLIC_URL") or "http://localhost:5000").rstrip("/"),
        host=(os.getenv("CANDLESHOP_HOST") or "127.0.0.1").strip(),
        port=port,
        log_level=(os.getenv("CANDLESHOP_LOG_LEVEL") or "INFO").strip().upper(),
    )


def _parse_flag(raw: Optional[str], *, default: bool) -> bool:
    if raw is None:
        return default
    cleaned = raw.strip().lower()
    if cleaned in _TRUE_VALUES:
        return True
    if cleaned in _FALSE_VALUES:
        return False
    return default
