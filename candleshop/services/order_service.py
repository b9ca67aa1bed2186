from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Dict, List, Mapping, Optional

from ..data import catalog_repository, order_repository, payment_repository, user_repository
from ..errors import AuthorizationError, InternalError, NotFoundError, PaymentIncompleteError, ValidationError
from ..models.shop_models import (
    ORDER_STATUSES,
    PAYMENT_METHODS,
    PAYMENT_STATUSES,
    LineInput,
    Order,
    OrderLine,
    OrderTotals,
    PlacedOrder,
    ShippingInfo,
    User,
    parse_color_ids,
    serialize_color_ids,
)
from . import cart_service, invoice_renderer, invoice_service, notification_service, payment_service
from .config_resolver import settings_resolver

logger = logging.getLogger(__name__)

DEFAULT_FREE_SHIPPING_THRESHOLD = 50.0
DEFAULT_STANDARD_SHIPPING_RATE = 5.0

Dispatcher = Callable[..., None]


def compute_shipping(subtotal: float, free_shipping_threshold: float, standard_shipping_rate: float) -> float:
    if standard_shipping_rate <= 0:
        return 0.0
    if free_shipping_threshold > 0 and subtotal >= free_shipping_threshold:
        return 0.0
    return round(standard_shipping_rate, 2)


def compute_discount(user: Optional[User], subtotal: float, now: Optional[datetime] = None) -> float:
    if user is None or user.discount_amount <= 0:
        return 0.0
    if user.discount_expiry_date is None:
        return 0.0
    if _local_naive(user.discount_expiry_date) <= _local_naive(now or datetime.now()):
        return 0.0
    if subtotal < (user.discount_minimum_order or 0.0):
        return 0.0
    return round(user.discount_amount, 2)


def _local_naive(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


def calculate_totals(
    user: Optional[User],
    subtotal: float,
    overrides: Optional[Mapping[str, object]] = None,
    now: Optional[datetime] = None,
) -> OrderTotals:
    resolver = settings_resolver(overrides)
    threshold = resolver.resolve_float("freeShippingThreshold", DEFAULT_FREE_SHIPPING_THRESHOLD)
    rate = resolver.resolve_float("standardShippingRate", DEFAULT_STANDARD_SHIPPING_RATE)

    subtotal = round(subtotal, 2)
    shipping = compute_shipping(subtotal, threshold, rate)
    discount = compute_discount(user, subtotal, now)
    total = round(max(0.0, subtotal + shipping - discount), 2)
    return OrderTotals(
        subtotal=subtotal,
        shipping_cost=shipping,
        discount_amount=discount,
        total=total,
        free_shipping_threshold=threshold,
        standard_shipping_rate=rate,
    )


def quote_cart(
    user_id: int,
    overrides: Optional[Mapping[str, object]] = None,
    now: Optional[datetime] = None,
) -> OrderTotals:
    user = user_repository.get_user(user_id)
    subtotal = sum(view.line_total for view in cart_service.list_lines(user_id))
    return calculate_totals(user, subtotal, overrides, now)


def place_order(
    user_id: int,
    shipping_info: ShippingInfo,
    payment_method: str,
    lines: Optional[List[LineInput]] = None,
    language: str = "hr",
    payment_reference: Optional[str] = None,
    shipping_overrides: Optional[Mapping[str, object]] = None,
    notify: Optional[Dispatcher] = None,
    now: Optional[datetime] = None,
) -> PlacedOrder:
    """Turn the user's cart (or the given lines) into a stored order.

    Invoice generation and notifications run after the order is committed and can
    not undo it. ``notify`` receives the notification callable and its arguments;
    by default it is called right away.
    """
    payment_method = (payment_method or "").strip()
    _validate_checkout(shipping_info, payment_method)

    user = user_repository.get_user(user_id)
    if user is None:
        raise NotFoundError("User not found")

    from_cart = lines is None
    order_lines = _lines_from_cart(user.id) if from_cart else _lines_from_input(lines or [])
    if not order_lines:
        raise ValidationError("Order has no items", {"items": "Cart is empty"})

    subtotal = sum(line.quantity * line.price for line in order_lines)
    totals = calculate_totals(user, subtotal, shipping_overrides, now)

    payment_status = "pending"
    reference = (payment_reference or "").strip() or None
    if payment_method == "paypal":
        if not payment_service.is_capture_completed(reference):
            raise PaymentIncompleteError(
                "PayPal payment must be completed before placing the order",
                {"paymentReference": "No completed PayPal payment found"},
            )
        capture = payment_repository.get_capture(reference or "")
        if capture is None or capture.currency != "EUR" or abs(capture.amount - totals.total) > 0.01:
            logger.warning("PayPal capture %s does not cover order total %.2f EUR", reference, totals.total)
            raise PaymentIncompleteError(
                "PayPal payment does not match the order total",
                {"paymentReference": "Captured amount does not match the order total"},
            )
        payment_status = "completed"
    else:
        reference = None

    order = Order(
        user_id=user.id,
        status="pending",
        payment_method=payment_method,
        payment_status=payment_status,
        payment_reference=reference,
        subtotal=totals.subtotal,
        shipping_cost=totals.shipping_cost,
        discount_amount=totals.discount_amount,
        total=totals.total,
        customer_note=(shipping_info.customer_note or "").strip(),
        shipping_address=shipping_info.address.strip(),
        shipping_city=shipping_info.city.strip(),
        shipping_postal_code=shipping_info.postal_code.strip(),
        shipping_country=shipping_info.country.strip(),
        created_at=now or datetime.now(),
        lines=order_lines,
    )
    order_id = order_repository.insert_order(order)
    stored = order_repository.fetch_order(order_id)
    if stored is None:
        raise InternalError("Stored order could not be read back")
    logger.info("Order %s placed by user %s, total %.2f", order_id, user.id, stored.total)

    if from_cart:
        try:
            cart_service.clear(user.id)
        except Exception:
            logger.exception("Could not clear cart of user %s after order %s", user.id, order_id)

    invoice_id = invoice_service.generate_invoice(order_id, invoice_renderer.normalize_language(language))
    if invoice_id is None:
        logger.warning("Order %s was placed without an invoice", order_id)

    _dispatch(notify, notification_service.send_order_notifications, stored, invoice_id)
    return PlacedOrder(order=stored, invoice_id=invoice_id)


def _dispatch(notify: Optional[Dispatcher], func: Callable[..., None], *args: object) -> None:
    try:
        if notify is None:
            func(*args)
        else:
            notify(func, *args)
    except Exception:
        logger.exception("Notification dispatch failed")


def _validate_checkout(shipping_info: ShippingInfo, payment_method: str) -> None:
    errors: Dict[str, str] = {}
    required = {
        "address": shipping_info.address,
        "city": shipping_info.city,
        "postalCode": shipping_info.postal_code,
        "country": shipping_info.country,
    }
    for field_name, value in required.items():
        if not (value or "").strip():
            errors[field_name] = "This field is required"
    if not payment_method:
        errors["paymentMethod"] = "Payment method is required"
    elif payment_method not in PAYMENT_METHODS:
        errors["paymentMethod"] = "Unknown payment method"
    if errors:
        raise ValidationError("Invalid order data", errors)


def _lines_from_cart(user_id: int) -> List[OrderLine]:
    lines: List[OrderLine] = []
    for view in cart_service.list_lines(user_id):
        color_name = None
        if view.line.has_multiple_colors:
            color_name = ", ".join(color.name for color in view.colors) or view.line.color_name
        elif view.color is not None:
            color_name = view.color.name
        lines.append(
            OrderLine(
                order_id=0,
                product_id=view.product.id,
                product_name=view.product.name,
                quantity=view.line.quantity,
                price=round(view.product.price, 2),
                scent_id=view.line.scent_id,
                scent_name=view.scent.name if view.scent else None,
                color_id=view.line.color_id,
                color_name=color_name,
                color_ids=view.line.color_ids,
                has_multiple_colors=view.line.has_multiple_colors,
            )
        )
    return lines


def _lines_from_input(inputs: List[LineInput]) -> List[OrderLine]:
    lines: List[OrderLine] = []
    errors: Dict[str, str] = {}
    for index, item in enumerate(inputs):
        if int(item.quantity) < 1:
            errors[f"items.{index}.quantity"] = "Quantity must be at least 1"
            continue
        product = catalog_repository.get_product(item.product_id)
        name = (item.product_name or "").strip() or (product.name if product else "")
        price = item.price if item.price is not None else (product.price if product else None)
        if not name:
            errors[f"items.{index}.productId"] = "Product not found"
            continue
        if price is None or price < 0:
            errors[f"items.{index}.price"] = "Price is required"
            continue

        scent_name = item.scent_name
        if not scent_name and item.scent_id is not None:
            scent = catalog_repository.get_scent(item.scent_id)
            scent_name = scent.name if scent else None

        color_ids = None
        color_name = item.color_name
        if item.has_multiple_colors:
            ids = parse_color_ids(item.color_ids)
            color_ids = serialize_color_ids(ids) if ids else None
            if not color_name and ids:
                color_name = ", ".join(color.name for color in catalog_repository.get_colors(ids)) or None
        elif not color_name and item.color_id is not None:
            color = catalog_repository.get_color(item.color_id)
            color_name = color.name if color else None

        lines.append(
            OrderLine(
                order_id=0,
                product_id=product.id if product else None,
                product_name=name,
                quantity=int(item.quantity),
                price=round(float(price), 2),
                scent_id=item.scent_id,
                scent_name=scent_name,
                color_id=None if item.has_multiple_colors else item.color_id,
                color_name=color_name,
                color_ids=color_ids,
                has_multiple_colors=item.has_multiple_colors,
            )
        )
    if errors:
        raise ValidationError("Invalid order items", errors)
    return lines


def get_order(order_id: int) -> Order:
    order = order_repository.fetch_order(order_id)
    if order is None:
        raise NotFoundError("Order not found")
    return order


def get_order_for_user(order_id: int, user: User) -> Order:
    order = get_order(order_id)
    if order.user_id != user.id and not user.is_admin:
        raise AuthorizationError("You do not have access to this order", forbidden=True)
    return order


def list_order_lines(order_id: int, user: User) -> List[OrderLine]:
    return get_order_for_user(order_id, user).lines


def list_user_orders(user_id: int) -> List[Order]:
    return order_repository.fetch_user_orders(user_id)


def list_all_orders(limit: Optional[int] = None, offset: int = 0) -> List[Order]:
    return order_repository.fetch_orders(limit, offset)


def update_order_status(order_id: int, status: str) -> Order:
    cleaned = (status or "").strip().lower()
    if cleaned not in ORDER_STATUSES:
        raise ValidationError("Invalid order status", {"status": "Invalid order status"})
    if not order_repository.update_status(order_id, cleaned):
        raise NotFoundError("Order not found")
    logger.info("Order %s status set to %s", order_id, cleaned)
    return get_order(order_id)


def update_payment_status(order_id: int, payment_status: str) -> Order:
    cleaned = (payment_status or "").strip().lower()
    if cleaned not in PAYMENT_STATUSES:
        raise ValidationError("Invalid payment status", {"paymentStatus": "Invalid payment status"})
    if not order_repository.update_payment_status(order_id, cleaned):
        raise NotFoundError("Order not found")
    return get_order(order_id)
