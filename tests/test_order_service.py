from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from candleshop.data import catalog_repository, order_repository, payment_repository, settings_repository, user_repository
from candleshop.errors import AuthorizationError, NotFoundError, PaymentIncompleteError, ValidationError
from candleshop.models.shop_models import LineInput, PaymentCapture, Product, ShippingInfo, User
from candleshop.services import cart_service, invoice_service, notification_service, order_service

SHIPPING = ShippingInfo(address="Ilica 1", city="Zagreb", postal_code="10000", country="Hrvatska")


def _fill_cart(user_id: int, price: float, quantity: int = 1) -> None:
    product = catalog_repository.create_product(Product(id=0, name="Candle", price=price))
    cart_service.add_line(user_id, product.id, quantity)


@pytest.mark.parametrize(
    "subtotal, threshold, rate, expected",
    [
        (49.99, 50.0, 5.0, 5.0),
        (50.0, 50.0, 5.0, 0.0),
        (120.0, 50.0, 0.0, 0.0),
        (120.0, 0.0, 5.0, 5.0),
        (10.0, 50.0, -3.0, 0.0),
    ],
)
def test_compute_shipping(subtotal, threshold, rate, expected):
    assert order_service.compute_shipping(subtotal, threshold, rate) == expected


def test_shipping_uses_stored_settings(customer):
    settings_repository.set_setting("freeShippingThreshold", "100")
    settings_repository.set_setting("standardShippingRate", "7.5")

    totals = order_service.calculate_totals(customer, 60.0)

    assert totals.shipping_cost == 7.5
    assert totals.total == 67.5


def test_request_overrides_win_over_settings(customer):
    settings_repository.set_setting("standardShippingRate", "7.5")

    totals = order_service.calculate_totals(customer, 20.0, {"standardShippingRate": "3", "freeShippingThreshold": None})

    assert totals.shipping_cost == 3.0
    assert totals.free_shipping_threshold == 50.0


@pytest.mark.parametrize("bad_rate", ["-35", "nan", "inf"])
def test_invalid_shipping_rate_falls_back_to_next_source(customer, bad_rate):
    settings_repository.set_setting("standardShippingRate", "7.5")

    totals = order_service.calculate_totals(customer, 40.0, {"standardShippingRate": bad_rate})

    assert totals.shipping_cost == 7.5
    assert totals.total == 47.5


def test_invalid_stored_shipping_rate_uses_default(customer):
    settings_repository.set_setting("standardShippingRate", "nan")
    settings_repository.set_setting("freeShippingThreshold", "-1")

    totals = order_service.calculate_totals(customer, 40.0)

    assert totals.shipping_cost == 5.0
    assert totals.free_shipping_threshold == 50.0
    assert totals.total == 45.0


def test_negative_shipping_override_never_lowers_order_total(customer):
    _fill_cart(customer.id, 40.0)

    placed = order_service.place_order(
        customer.id,
        SHIPPING,
        "cash",
        shipping_overrides={"standardShippingRate": -35},
        notify=lambda *a: None,
    )

    assert placed.order.shipping_cost == 5.0
    assert placed.order.total == 45.0


def test_discount_applies_when_minimum_is_met(customer):
    user = user_repository.set_discount(customer.id, 10.0, 30.0, datetime.now() + timedelta(days=5))

    totals = order_service.calculate_totals(user, 40.0)

    assert totals.discount_amount == 10.0
    assert totals.shipping_cost == 5.0
    assert totals.total == 35.0


def test_discount_skipped_below_minimum(customer):
    user = user_repository.set_discount(customer.id, 10.0, 30.0, datetime.now() + timedelta(days=5))

    totals = order_service.calculate_totals(user, 20.0)

    assert totals.discount_amount == 0.0
    assert totals.total == 25.0


def test_expired_or_undated_discount_is_ignored(customer):
    expired = user_repository.set_discount(customer.id, 10.0, 0.0, datetime.now() - timedelta(days=1))
    assert order_service.compute_discount(expired, 100.0) == 0.0

    undated = user_repository.set_discount(customer.id, 10.0, 0.0, None)
    assert order_service.compute_discount(undated, 100.0) == 0.0


def test_total_never_goes_negative(customer):
    user = user_repository.set_discount(customer.id, 80.0, 0.0, datetime.now() + timedelta(days=5))

    totals = order_service.calculate_totals(user, 20.0)

    assert totals.total == 0.0


def test_place_order_from_cart(customer):
    _fill_cart(customer.id, 12.5, 2)

    placed = order_service.place_order(customer.id, SHIPPING, "cash", notify=lambda *args: None)

    assert placed.order.subtotal == 25.0
    assert placed.order.shipping_cost == 5.0
    assert placed.order.total == 30.0
    assert placed.order.payment_status == "pending"
    assert placed.invoice_id is not None
    assert cart_service.list_lines(customer.id) == []
    assert invoice_service.get_invoice(placed.invoice_id).order_id == placed.order.id


def test_place_order_with_empty_cart_fails(customer):
    with pytest.raises(ValidationError):
        order_service.place_order(customer.id, SHIPPING, "cash")


def test_place_order_requires_shipping_fields(customer):
    _fill_cart(customer.id, 10.0)

    with pytest.raises(ValidationError) as info:
        order_service.place_order(customer.id, ShippingInfo(address="Ilica 1"), "")

    assert set(info.value.errors) == {"city", "postalCode", "country", "paymentMethod"}


def test_place_order_with_explicit_lines(customer, colors):
    red, blue, _ = colors
    lines = [
        LineInput(product_id=999, quantity=2, price=4.0, product_name="Custom candle"),
        LineInput(product_id=998, quantity=1, price=6.0, product_name="Set", color_ids=f"[{blue.id}, {red.id}]",
                  has_multiple_colors=True),
    ]

    placed = order_service.place_order(customer.id, SHIPPING, "bank_transfer", lines=lines, notify=lambda *a: None)

    assert placed.order.subtotal == 14.0
    multi = placed.order.lines[1]
    assert multi.color_name == "Red, Blue"
    assert multi.color_ids == f"[{red.id}, {blue.id}]"


def test_notification_failure_keeps_the_order(customer, monkeypatch):
    def explode(*args):
        raise RuntimeError("smtp down")

    monkeypatch.setattr(notification_service, "send_order_notifications", explode)
    _fill_cart(customer.id, 10.0)

    placed = order_service.place_order(customer.id, SHIPPING, "cash")

    assert order_repository.fetch_order(placed.order.id) is not None
    assert placed.invoice_id is not None


def test_invoice_failure_keeps_the_order(customer, monkeypatch):
    def explode(*args):
        raise RuntimeError("disk full")

    monkeypatch.setattr(invoice_service, "_generate_invoice", explode)
    _fill_cart(customer.id, 10.0)

    placed = order_service.place_order(customer.id, SHIPPING, "cash", notify=lambda *a: None)

    assert placed.invoice_id is None
    assert order_repository.fetch_order(placed.order.id) is not None


def test_paypal_order_needs_completed_capture(customer):
    _fill_cart(customer.id, 10.0)

    with pytest.raises(PaymentIncompleteError):
        order_service.place_order(customer.id, SHIPPING, "paypal", payment_reference="PAYPAL-1")

    payment_repository.record_capture(
        PaymentCapture(reference="PAYPAL-1", capture_id="", status="CREATED", amount=15.0, currency="EUR")
    )
    with pytest.raises(PaymentIncompleteError):
        order_service.place_order(customer.id, SHIPPING, "paypal", payment_reference="PAYPAL-1")

    assert order_repository.fetch_user_orders(customer.id) == []
    assert len(cart_service.list_lines(customer.id)) == 1


def test_paypal_capture_pays_for_one_order_only(customer):
    payment_repository.record_capture(
        PaymentCapture(reference="PAYPAL-2", capture_id="CAP-2", status="COMPLETED", amount=15.0, currency="EUR")
    )
    _fill_cart(customer.id, 10.0)

    placed = order_service.place_order(
        customer.id, SHIPPING, "paypal", payment_reference="PAYPAL-2", notify=lambda *a: None
    )

    assert placed.order.payment_status == "completed"
    assert placed.order.payment_reference == "PAYPAL-2"
    assert payment_repository.get_capture("PAYPAL-2").order_id == placed.order.id

    _fill_cart(customer.id, 10.0)
    with pytest.raises(PaymentIncompleteError):
        order_service.place_order(customer.id, SHIPPING, "paypal", payment_reference="PAYPAL-2")


@pytest.mark.parametrize(
    "reference, amount, currency",
    [("PAYPAL-CENT", 0.01, "EUR"), ("PAYPAL-USD", 15.0, "USD")],
)
def test_paypal_capture_must_match_order_total(customer, reference, amount, currency):
    payment_repository.record_capture(
        PaymentCapture(reference=reference, capture_id="CAP", status="COMPLETED", amount=amount, currency=currency)
    )
    _fill_cart(customer.id, 10.0)

    with pytest.raises(PaymentIncompleteError):
        order_service.place_order(customer.id, SHIPPING, "paypal", payment_reference=reference)

    assert order_repository.fetch_user_orders(customer.id) == []
    assert payment_repository.get_capture(reference).order_id is None


def test_non_paypal_order_drops_reference(customer):
    _fill_cart(customer.id, 10.0)

    placed = order_service.place_order(
        customer.id, SHIPPING, "cash", payment_reference="PAYPAL-3", notify=lambda *a: None
    )

    assert placed.order.payment_reference is None


def test_order_access_is_limited_to_owner_and_admin(customer, admin):
    _fill_cart(customer.id, 10.0)
    placed = order_service.place_order(customer.id, SHIPPING, "cash", notify=lambda *a: None)
    stranger = user_repository.create_user(User(id=0, username="eve", email="eve@example.com"))

    assert order_service.get_order_for_user(placed.order.id, admin).id == placed.order.id
    with pytest.raises(AuthorizationError) as info:
        order_service.get_order_for_user(placed.order.id, stranger)
    assert info.value.status_code == 403


def test_update_order_status(customer):
    _fill_cart(customer.id, 10.0)
    placed = order_service.place_order(customer.id, SHIPPING, "cash", notify=lambda *a: None)

    assert order_service.update_order_status(placed.order.id, "Shipped").status == "shipped"
    with pytest.raises(ValidationError):
        order_service.update_order_status(placed.order.id, "lost")
    with pytest.raises(NotFoundError):
        order_service.update_order_status(9999, "shipped")


def test_list_all_orders_is_not_capped_and_pages(customer):
    ids = []
    for day in range(3):
        _fill_cart(customer.id, 10.0)
        placed = order_service.place_order(
            customer.id, SHIPPING, "cash", notify=lambda *a: None, now=datetime(2024, 6, 1 + day, 9, 0)
        )
        ids.append(placed.order.id)

    assert [order.id for order in order_service.list_all_orders()] == ids[::-1]
    assert [order.id for order in order_service.list_all_orders(limit=2)] == [ids[2], ids[1]]
    assert [order.id for order in order_service.list_all_orders(offset=2)] == [ids[0]]
