from __future__ import annotations

import base64
import json
import logging
import socket
import time
import urllib.error
import urllib.request
from typing import Dict, Optional

from ..config import AppConfig, load_config
from ..data import payment_repository
from ..errors import PaymentGatewayError, ValidationError
from ..models.shop_models import PaymentCapture

logger = logging.getLogger(__name__)

_TIMEOUT_SECONDS = 10.0
_USER_AGENT = "Candleshop-Payments"


def get_client_token() -> Dict[str, object]:
    config = load_config()
    if not config.has_paypal_credentials:
        _require_mock(config, "PayPal credentials are not configured")
        return {"clientToken": "MOCK_CLIENT_TOKEN", "mock": True}

    try:
        access_token = _fetch_access_token(config)
        data = _paypal_request(config, "POST", "/v1/identity/generate-token", access_token, {})
    except PaymentGatewayError:
        _require_mock(config, "PayPal client token request failed")
        return {"clientToken": "MOCK_CLIENT_TOKEN", "mock": True}
    return {"clientToken": data.get("client_token", ""), "mock": False}


def create_paypal_order(amount: object, currency: str, intent: str) -> Dict[str, object]:
    errors: Dict[str, str] = {}
    try:
        value = float(amount)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        value = 0.0
    if value <= 0:
        errors["amount"] = "Invalid amount. Amount must be a positive number."
    if not (currency or "").strip():
        errors["currency"] = "Invalid currency. Currency is required."
    if not (intent or "").strip():
        errors["intent"] = "Invalid intent. Intent is required."
    if errors:
        raise ValidationError("Invalid PayPal order request", errors)

    currency = currency.strip().upper()
    config = load_config()
    if not config.has_paypal_credentials:
        _require_mock(config, "PayPal credentials are not configured")
        return _mock_order(value, currency)

    body = {
        "intent": intent.strip().upper(),
        "purchase_units": [{"amount": {"currency_code": currency, "value": f"{value:.2f}"}}],
    }
    try:
        access_token = _fetch_access_token(config)
        data = _paypal_request(config, "POST", "/v2/checkout/orders", access_token, body)
    except PaymentGatewayError:
        _require_mock(config, "PayPal order creation failed")
        return _mock_order(value, currency)

    reference = str(data.get("id") or "")
    if reference:
        payment_repository.record_capture(
            PaymentCapture(reference=reference, capture_id="", status=str(data.get("status") or "CREATED"),
                           amount=value, currency=currency)
        )
    return data


def capture_paypal_order(paypal_order_id: str) -> Dict[str, object]:
    reference = (paypal_order_id or "").strip()
    if not reference:
        raise ValidationError("PayPal order id is required", {"orderID": "PayPal order id is required"})

    config = load_config()
    if not config.has_paypal_credentials or reference.startswith("MOCK_ORDER_"):
        _require_mock(config, "PayPal credentials are not configured")
        return _mock_capture(reference)

    try:
        access_token = _fetch_access_token(config)
        data = _paypal_request(config, "POST", f"/v2/checkout/orders/{reference}/capture", access_token, {})
    except PaymentGatewayError:
        _require_mock(config, "PayPal capture failed")
        return _mock_capture(reference)

    status = str(data.get("status") or "")
    capture_id, amount, currency = _extract_capture(data)
    existing = payment_repository.get_capture(reference)
    if existing is not None and not amount:
        amount, currency = existing.amount, existing.currency
    payment_repository.record_capture(
        PaymentCapture(reference=reference, capture_id=capture_id, status=status, amount=amount, currency=currency)
    )
    logger.info("PayPal order %s captured with status %s", reference, status)
    return data


def is_capture_completed(reference: Optional[str]) -> bool:
    if not reference:
        return False
    capture = payment_repository.get_capture(reference)
    return capture is not None and capture.status == "COMPLETED" and capture.order_id is None


def _require_mock(config: AppConfig, reason: str) -> None:
    if not config.allow_mock_payments:
        logger.error("%s and mock payments are disabled", reason)
        raise PaymentGatewayError(f"{reason}.")
    logger.warning("%s, returning a mock PayPal response", reason)


def _mock_order(amount: float, currency: str) -> Dict[str, object]:
    reference = f"MOCK_ORDER_{int(time.time() * 1000)}"
    payment_repository.record_capture(
        PaymentCapture(reference=reference, capture_id="", status="CREATED", amount=amount, currency=currency)
    )
    return {"id": reference, "status": "CREATED", "mock": True}


def _mock_capture(reference: str) -> Dict[str, object]:
    existing = payment_repository.get_capture(reference)
    amount = existing.amount if existing is not None else 0.0
    currency = existing.currency if existing is not None else "EUR"
    capture_id = f"MOCK_CAPTURE_{int(time.time() * 1000)}"
    payment_repository.record_capture(
        PaymentCapture(reference=reference, capture_id=capture_id, status="COMPLETED", amount=amount, currency=currency)
    )
    return {
        "id": reference,
        "status": "COMPLETED",
        "mock": True,
        "purchase_units": [
            {
                "payments": {
                    "captures": [
                        {
                            "id": capture_id,
                            "status": "COMPLETED",
                            "amount": {"currency_code": currency, "value": f"{amount:.2f}"},
                        }
                    ]
                }
            }
        ],
    }


def _extract_capture(data: Dict[str, object]):
    try:
        units = data.get("purchase_units") or []
        capture = units[0]["payments"]["captures"][0]  # type: ignore[index]
        amount = capture.get("amount") or {}
        return str(capture.get("id") or ""), float(amount.get("value") or 0.0), str(amount.get("currency_code") or "EUR")
    except (IndexError, KeyError, TypeError, ValueError):
        return "", 0.0, "EUR"


def _fetch_access_token(config: AppConfig) -> str:
    credentials = f"{config.paypal_client_id}:{config.paypal_client_secret}".encode("utf-8")
    request = urllib.request.Request(
        f"{config.paypal_api_base}/v1/oauth2/token",
        data=b"grant_type=client_credentials",
        headers={
            "Authorization": "Basic " + base64.b64encode(credentials).decode("ascii"),
            "Content-Type": "application/x-www-form-urlencoded",
            "User-Agent": _USER_AGENT,
        },
        method="POST",
    )
    data = _read_json(request)
    token = str(data.get("access_token") or "")
    if not token:
        raise PaymentGatewayError("PayPal did not return an access token.")
    return token


def _paypal_request(
    config: AppConfig,
    method: str,
    path: str,
    access_token: str,
    body: Dict[str, object],
) -> Dict[str, object]:
    request = urllib.request.Request(
        f"{config.paypal_api_base}{path}",
        data=json.dumps(body).encode("utf-8"),
        headers={
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
            "User-Agent": _USER_AGENT,
        },
        method=method,
    )
    return _read_json(request)


def _read_json(request: urllib.request.Request) -> Dict[str, object]:
    try:
        with urllib.request.urlopen(request, timeout=_TIMEOUT_SECONDS) as response:
            payload = response.read()
    except urllib.error.HTTPError as exc:
        raise PaymentGatewayError(f"HTTP {exc.code} error from PayPal.") from exc
    except urllib.error.URLError as exc:
        reason = getattr(exc, "reason", exc)
        raise PaymentGatewayError(f"Network error: {reason}") from exc
    except (TimeoutError, socket.timeout) as exc:
        raise PaymentGatewayError("PayPal request timed out.") from exc

    try:
        data = json.loads(payload.decode("utf-8"))
    except json.JSONDecodeError as exc:
        raise PaymentGatewayError("Received invalid response from PayPal.") from exc
    if not isinstance(data, dict):
        raise PaymentGatewayError("Received invalid response from PayPal.")
    return data
