from __future__ import annotations

from datetime import datetime

from candleshop.models.shop_models import Order
from candleshop.services import email_templates, notification_service


def _order() -> Order:
    return Order(
        id=17,
        user_id=1,
        status="pending",
        payment_method="cash",
        subtotal=30.0,
        shipping_cost=5.0,
        discount_amount=0.0,
        total=35.0,
        created_at=datetime(2024, 6, 1, 9, 0),
    )


def test_email_language_falls_back_to_german():
    assert email_templates.normalize_email_language("fr") == "de"
    assert email_templates.normalize_email_language("SL") == "sl"


def test_verification_email_is_localized():
    message = email_templates.verification_email("ana", "https://shop.example/verify?token=a&b=1", "en")

    assert message.subject == "Verify Your Email Address - Kerzenwelt by Dani"
    assert "Hello ana," in message.html
    assert "token=a&amp;b=1" in message.html


def test_new_order_email_carries_sms_text():
    message = email_templates.new_order_email(17, "01.06.2024.", 35.0, "cash", "pending", "https://shop.example/")

    assert message.subject == "Nova narudžba #17 - Kerzenwelt by Dani"
    assert "https://shop.example/admin/orders/17" in message.html
    assert "35.00 EUR" in message.html
    assert message.text == "Nova narudžba #17 na Kerzenwelt by Dani - Ukupno: 35.00 EUR"


def test_invoice_created_email_links_admin_page():
    message = email_templates.invoice_created_email(17, 4, "https://shop.example", language="en")

    assert message.subject == "New invoice created - Kerzenwelt by Dani"
    assert "https://shop.example/admin/invoices/4" in message.html


def test_newsletter_email_shows_code():
    message = email_templates.newsletter_welcome_email("WELCOME10", "de")

    assert "WELCOME10" in message.html
    assert "WELCOME10" in message.text
    assert message.subject == "Willkommen zum Kerzenwelt by Dani Newsletter!"


def test_send_email_without_api_key_returns_false(db):
    assert notification_service.send_email("ana@example.com", "Hi", "<p>Hi</p>") is False


def test_order_notifications_survive_failures(db, monkeypatch):
    calls = []

    def fail_new_order(order, **kwargs):
        raise RuntimeError("mail server down")

    def record_invoice(order_id, invoice_id, **kwargs):
        calls.append((order_id, invoice_id))

    monkeypatch.setattr(notification_service, "send_new_order_notification", fail_new_order)
    monkeypatch.setattr(notification_service, "send_invoice_generated_notification", record_invoice)

    notification_service.send_order_notifications(_order(), 4)

    assert calls == [(17, 4)]


def test_order_notifications_send_email_and_sms(db, monkeypatch):
    sent = []
    monkeypatch.setenv("CANDLESHOP_ADMIN_EMAIL", "owner@example.com")
    monkeypatch.setattr(
        notification_service, "send_email", lambda to, subject, html_body, text_body=None: sent.append((to, subject))
    )
    monkeypatch.setattr(notification_service, "send_sms", lambda message, to=None: sent.append(("sms", message)))

    notification_service.send_order_notifications(_order(), None)

    assert sent[0] == ("owner@example.com", "Nova narudžba #17 - Kerzenwelt by Dani")
    assert sent[1][0] == "sms"
    assert len(sent) == 2


def test_verification_and_newsletter_mails_are_sent(db, monkeypatch):
    sent = []
    monkeypatch.setenv("CANDLESHOP_PUBLIC_URL", "https://shop.example/")
    monkeypatch.setattr(
        notification_service,
        "send_email",
        lambda to, subject, html_body, text_body=None: sent.append((to, subject, html_body, text_body)) or True,
    )

    assert notification_service.send_verification_email("ana@example.com", "ana", "abc", "en") is True
    assert notification_service.send_newsletter_welcome("ana@example.com", "WELCOME10", "hr") is True

    assert "https://shop.example/verify-email?token=abc" in sent[0][2]
    assert sent[0][3] is None
    assert "WELCOME10" in sent[1][3]
