from __future__ import annotations

import json
import logging
import socket
import urllib.error
import urllib.request
from typing import Optional

from ..config import load_config
from ..data import settings_repository
from ..models.shop_models import Order
from . import email_templates

logger = logging.getLogger(__name__)

_SENDGRID_URL = "https://api.sendgrid.com/v3/mail/send"
_TIMEOUT_SECONDS = 10.0


def send_email(to: str, subject: str, html_body: str, text_body: Optional[str] = None) -> bool:
    """Send one HTML email through SendGrid; returns False instead of raising on failure."""
    config = load_config()
    if not config.sendgrid_api_key:
        logger.warning("SENDGRID_API_KEY not configured, email to %s not sent", to)
        return False
    if not to:
        logger.warning("No recipient for email %r", subject)
        return False

    content = []
    if text_body:
        content.append({"type": "text/plain", "value": text_body})
    content.append({"type": "text/html", "value": html_body})
    payload = {
        "personalizations": [{"to": [{"email": to}]}],
        "from": {"email": config.from_email},
        "subject": subject,
        "content": content,
    }

    request = urllib.request.Request(
        _SENDGRID_URL,
        data=json.dumps(payload).encode("utf-8"),
        headers={
            "Authorization": f"Bearer {config.sendgrid_api_key}",
            "Content-Type": "application/json",
        },
        method="POST",
    )
    try:
        with urllib.request.urlopen(request, timeout=_TIMEOUT_SECONDS) as response:
            if response.status >= 300:
                logger.error("SendGrid answered HTTP %s for email to %s", response.status, to)
                return False
    except urllib.error.HTTPError as exc:
        logger.error("SendGrid HTTP %s error for email to %s", exc.code, to)
        return False
    except urllib.error.URLError as exc:
        logger.error("Network error sending email to %s: %s", to, getattr(exc, "reason", exc))
        return False
    except (TimeoutError, socket.timeout):
        logger.error("Timed out sending email to %s", to)
        return False

    logger.info("Email sent to %s with subject: %s", to, subject)
    return True


def send_sms(message: str, to: Optional[str] = None) -> bool:
    # No SMS provider is wired up; the message is only logged.
    recipient = to or load_config().admin_phone
    if not recipient:
        logger.info("SMS (no recipient configured): %s", message)
        return False
    logger.info("SMS to %s: %s", recipient, message)
    return True


def _admin_recipient() -> str:
    config = load_config()
    return config.admin_email or settings_repository.get_shop_settings().store_email


def send_new_order_notification(order: Order, *, email_enabled: bool = True, sms_enabled: bool = True) -> None:
    config = load_config()
    store_name = settings_repository.get_shop_settings().store_name
    created_on = order.created_at.strftime("%d.%m.%Y.") if order.created_at else ""
    message = email_templates.new_order_email(
        order_id=int(order.id or 0),
        created_on=created_on,
        total=order.total,
        payment_method=order.payment_method,
        status=order.status,
        admin_url=config.public_url,
        store_name=store_name,
    )
    if email_enabled:
        send_email(_admin_recipient(), message.subject, message.html)
    if sms_enabled:
        send_sms(message.text)


def send_invoice_generated_notification(
    order_id: int,
    invoice_id: int,
    *,
    email_enabled: bool = True,
    sms_enabled: bool = True,
) -> None:
    config = load_config()
    store_name = settings_repository.get_shop_settings().store_name
    message = email_templates.invoice_created_email(
        order_id=order_id,
        invoice_id=invoice_id,
        admin_url=config.public_url,
        store_name=store_name,
    )
    if email_enabled:
        send_email(_admin_recipient(), message.subject, message.html)
    if sms_enabled:
        send_sms(message.text)


def send_order_notifications(order: Order, invoice_id: Optional[int]) -> None:
    """New-order and invoice notifications for a placed order; failures are logged only."""
    try:
        send_new_order_notification(order)
    except Exception:
        logger.exception("New order notification failed for order %s", order.id)

    if invoice_id is None:
        return
    try:
        send_invoice_generated_notification(int(order.id or 0), invoice_id)
    except Exception:
        logger.exception("Invoice notification failed for order %s", order.id)


def send_verification_email(email: str, username: str, token: str, language: Optional[str] = None) -> bool:
    config = load_config()
    link = f"{config.public_url}/verify-email?token={token}"
    message = email_templates.verification_email(username, link, language)
    return send_email(email, message.subject, message.html)


def send_newsletter_welcome(email: str, discount_code: str, language: Optional[str] = None) -> bool:
    message = email_templates.newsletter_welcome_email(discount_code, language)
    return send_email(email, message.subject, message.html, message.text)
