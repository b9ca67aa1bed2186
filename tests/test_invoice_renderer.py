from __future__ import annotations

from datetime import datetime

import pytest

from candleshop.models.shop_models import InvoiceLine, InvoiceView, SellerIdentity
from candleshop.services import invoice_renderer


def _view(**overrides) -> InvoiceView:
    values = dict(
        invoice_number="i451",
        issued_at=datetime(2024, 3, 5, 14, 30),
        language="hr",
        seller=SellerIdentity(name="Kerzenwelt by Dani", email="info@kerzenweltbydani.com"),
        customer_name="Ana <Horvat>",
        customer_email="ana@example.com",
        customer_address="Ilica 1",
        customer_city="Zagreb",
        customer_postal_code="10000",
        customer_country="Hrvatska",
        customer_phone="",
        customer_note="",
        payment_method="bank_transfer",
        payment_status="pending",
        subtotal=40.0,
        shipping_cost=5.0,
        discount_amount=10.0,
        tax=0.0,
        total=35.0,
        lines=[
            InvoiceLine(invoice_id=1, product_id=1, product_name="Vanilla Candle", quantity=2, price=10.0,
                        selected_scent="Lavender"),
            InvoiceLine(invoice_id=1, product_id=2, product_name="Trio", quantity=1, price=20.0,
                        selected_color="Red, Blue", has_multiple_colors=True),
        ],
    )
    values.update(overrides)
    return InvoiceView(**values)


def test_format_money_and_filename():
    assert invoice_renderer.format_money(5) == "5.00 €"
    assert invoice_renderer.format_money(12.5) == "12.50 €"
    assert invoice_renderer.invoice_filename("i451") == "invoice-i451.pdf"


@pytest.mark.parametrize("language, expected", [("en", "en"), ("DE", "de"), ("fr", "hr"), (None, "hr")])
def test_normalize_language(language, expected):
    assert invoice_renderer.normalize_language(language) == expected


def test_supported_languages():
    assert sorted(invoice_renderer.supported_languages()) == ["de", "en", "hr", "it", "sl"]


def test_croatian_invoice_html():
    document = invoice_renderer.render_invoice_html(_view())

    assert "RAČUN" in document
    assert "i451" in document
    assert "05.03.2024." in document
    assert "Ana &lt;Horvat&gt;" in document
    assert "Miris: Lavender" in document
    assert "Boje: Red, Blue" in document
    assert "Bankovni prijenos" in document
    assert "-10.00 €" in document
    assert "35.00 €" in document
    assert "U obradi" in document


def test_language_argument_overrides_view_language():
    document = invoice_renderer.render_invoice_html(_view(), "en")

    assert "INVOICE" in document
    assert "Scent: Lavender" in document
    assert "Colors: Red, Blue" in document
    assert "Bank transfer" in document


def test_paid_status_and_no_discount_row():
    document = invoice_renderer.render_invoice_html(
        _view(language="de", payment_status="completed", discount_amount=0.0, total=45.0)
    )

    assert "RECHNUNG" in document
    assert "Bezahlt" in document
    assert "Rabatt" not in document


def test_customer_note_is_rendered_when_present():
    without_note = invoice_renderer.render_invoice_html(_view(language="en"))
    with_note = invoice_renderer.render_invoice_html(_view(language="en", customer_note="Gift wrap\nplease"))

    assert "Customer note" not in without_note
    assert "Gift wrap<br>please" in with_note


def test_unknown_payment_method_label():
    labels = invoice_renderer.get_labels("en")

    assert invoice_renderer.payment_method_label("", labels) == labels["undefined"]
    assert invoice_renderer.payment_method_label("gift_card", labels) == "Gift Card"


def test_missing_logo_is_skipped(tmp_path):
    document = invoice_renderer.render_invoice_html(
        _view(seller=SellerIdentity(name="Shop", logo_path=str(tmp_path / "missing.png")))
    )

    assert "<img" not in document


def test_logo_is_embedded(tmp_path):
    logo = tmp_path / "logo.png"
    logo.write_bytes(b"\x89PNG\r\n\x1a\nfake")

    document = invoice_renderer.render_invoice_html(_view(seller=SellerIdentity(name="Shop", logo_path=str(logo))))

    assert "data:image/png;base64," in document
