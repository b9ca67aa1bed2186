from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import List, Optional, Tuple

from ..data import invoice_repository, order_repository, settings_repository, user_repository
from ..errors import AuthorizationError, ConflictError, EmptyOrderError, InternalError, NotFoundError, ValidationError
from ..models.shop_models import (
    PAYMENT_METHODS,
    Invoice,
    InvoiceLine,
    InvoiceView,
    Order,
    SellerIdentity,
    User,
)
from . import invoice_renderer

logger = logging.getLogger(__name__)

DEFAULT_PRODUCT_NAME = "Nepoznat proizvod"


def generate_invoice(order_id: int, language: str = "hr") -> Optional[int]:
    """Create the invoice for an order, or return the id of the one it already has.

    Returns None when the invoice could not be created; the reason is logged.
    """
    try:
        return _generate_invoice(int(order_id), invoice_renderer.normalize_language(language))
    except Exception:
        logger.exception("Invoice generation failed for order %s", order_id)
        return None


def _generate_invoice(order_id: int, language: str) -> int:
    existing = invoice_repository.fetch_invoice_for_order(order_id)
    if existing is not None:
        logger.info("Order %s already has invoice %s", order_id, existing.invoice_number)
        return int(existing.id)

    order = order_repository.fetch_order(order_id)
    if order is None:
        raise NotFoundError("Order not found")
    user = user_repository.get_user(order.user_id)
    if user is None:
        raise NotFoundError("User not found")
    if not order.lines:
        raise EmptyOrderError("Order has no items")

    invoice = _snapshot_order(order, user, language)
    invoice_id, created = invoice_repository.insert_invoice(invoice)
    if created:
        stored = invoice_repository.fetch_invoice(invoice_id)
        logger.info("Created invoice %s for order %s", stored.invoice_number if stored else invoice_id, order_id)
    return invoice_id


def _snapshot_order(order: Order, user: User, language: str) -> Invoice:
    lines = [
        InvoiceLine(
            invoice_id=0,
            product_id=line.product_id,
            product_name=line.product_name or DEFAULT_PRODUCT_NAME,
            quantity=line.quantity,
            price=line.price,
            selected_scent=line.scent_name or None,
            selected_color=line.color_name or None,
            has_multiple_colors=line.has_multiple_colors,
        )
        for line in order.lines
    ]

    return Invoice(
        invoice_number="",
        order_id=order.id,
        user_id=user.id,
        customer_name=user.full_name or user.username,
        customer_email=user.email,
        customer_address=order.shipping_address or user.address,
        customer_city=order.shipping_city or user.city,
        customer_postal_code=order.shipping_postal_code or user.postal_code,
        customer_country=order.shipping_country or user.country,
        customer_phone=user.phone,
        customer_note=order.customer_note,
        payment_method=order.payment_method,
        subtotal=order.subtotal,
        shipping_cost=order.shipping_cost,
        discount_amount=order.discount_amount,
        tax=0.0,
        total=order.total,
        language=language,
        lines=lines,
    )


def create_manual_invoice(invoice: Invoice) -> Invoice:
    """Store an invoice entered by an admin; the number is always assigned here."""
    errors = {}
    if not invoice.customer_name.strip():
        errors["customerName"] = "Customer name is required"
    if not invoice.payment_method.strip():
        errors["paymentMethod"] = "Payment method is required"
    elif invoice.payment_method.strip() not in PAYMENT_METHODS:
        errors["paymentMethod"] = "Unknown payment method"
    for index, line in enumerate(invoice.lines):
        if line.quantity < 1:
            errors[f"items.{index}.quantity"] = "Quantity must be at least 1"
        if line.price < 0:
            errors[f"items.{index}.price"] = "Price cannot be negative"
    if errors:
        raise ValidationError("Invalid invoice data", errors)
    if not invoice.lines:
        raise EmptyOrderError("Invoice needs at least one item")

    if invoice.order_id is not None and order_repository.fetch_order(invoice.order_id) is None:
        raise NotFoundError("Order not found")
    if user_repository.get_user(invoice.user_id) is None:
        raise NotFoundError("User not found")

    subtotal = round(sum(line.quantity * line.price for line in invoice.lines), 2)
    shipping = round(max(0.0, invoice.shipping_cost), 2)
    discount = round(max(0.0, invoice.discount_amount), 2)
    prepared = replace(
        invoice,
        invoice_number="",
        language=invoice_renderer.normalize_language(invoice.language),
        subtotal=subtotal,
        shipping_cost=shipping,
        discount_amount=discount,
        tax=0.0,
        total=round(max(0.0, subtotal + shipping - discount), 2),
        lines=[
            replace(line, product_name=(line.product_name or "").strip() or DEFAULT_PRODUCT_NAME)
            for line in invoice.lines
        ],
    )

    invoice_id, created = invoice_repository.insert_invoice(prepared)
    if not created:
        raise ConflictError("Invoice already exists for this order")

    stored = invoice_repository.fetch_invoice(invoice_id)
    if stored is None:
        raise InternalError("Stored invoice could not be read back")
    logger.info("Created manual invoice %s", stored.invoice_number)
    return stored


def get_invoice(invoice_id: int) -> Invoice:
    invoice = invoice_repository.fetch_invoice(invoice_id)
    if invoice is None:
        raise NotFoundError("Invoice not found")
    return invoice


def get_invoice_for_user(invoice_id: int, user: User) -> Invoice:
    invoice = get_invoice(invoice_id)
    if invoice.user_id != user.id and not user.is_admin:
        raise AuthorizationError("You do not have access to this invoice", forbidden=True)
    return invoice


def get_invoice_for_order(order_id: int, user: User) -> Invoice:
    order = order_repository.fetch_order(order_id)
    if order is None:
        raise NotFoundError("Order not found")
    if order.user_id != user.id and not user.is_admin:
        raise AuthorizationError("You do not have access to this order", forbidden=True)
    invoice = invoice_repository.fetch_invoice_for_order(order_id)
    if invoice is None:
        raise NotFoundError("Invoice not found for this order")
    return invoice


def list_invoices() -> List[Invoice]:
    return invoice_repository.fetch_invoices()


def list_user_invoices(user_id: int) -> List[Invoice]:
    return invoice_repository.fetch_user_invoices(user_id)


def get_last_invoice() -> Optional[Invoice]:
    return invoice_repository.fetch_last_invoice()


def preview_next_invoice_number(order_id: Optional[int] = None) -> str:
    last = invoice_repository.peek_last_number()
    return invoice_repository.format_invoice_number(invoice_repository.next_invoice_number(last, order_id))


def delete_invoice(invoice_id: int) -> None:
    if not invoice_repository.delete_invoice(invoice_id):
        raise NotFoundError("Invoice not found")
    logger.info("Deleted invoice %s", invoice_id)


def build_invoice_view(invoice: Invoice) -> InvoiceView:
    settings = settings_repository.get_shop_settings()
    payment_status = "pending"
    if invoice.order_id is not None:
        order = order_repository.fetch_order(invoice.order_id)
        if order is not None:
            payment_status = order.payment_status

    lines = invoice.lines or invoice_repository.fetch_invoice_lines(int(invoice.id or 0))
    return InvoiceView(
        invoice_number=invoice.invoice_number,
        issued_at=invoice.created_at or datetime.now(),
        language=invoice_renderer.normalize_language(invoice.language),
        seller=SellerIdentity(
            name=settings.store_name,
            address=settings.store_address,
            city=settings.store_city,
            email=settings.store_email,
            phone=settings.store_phone,
            website=settings.store_website,
            logo_path=settings.invoice_logo_path,
        ),
        customer_name=invoice.customer_name,
        customer_email=invoice.customer_email,
        customer_address=invoice.customer_address,
        customer_city=invoice.customer_city,
        customer_postal_code=invoice.customer_postal_code,
        customer_country=invoice.customer_country,
        customer_phone=invoice.customer_phone,
        customer_note=invoice.customer_note,
        payment_method=invoice.payment_method,
        payment_status=payment_status,
        subtotal=invoice.subtotal,
        shipping_cost=invoice.shipping_cost,
        discount_amount=invoice.discount_amount,
        tax=invoice.tax,
        total=invoice.total,
        lines=list(lines),
        order_id=invoice.order_id,
    )


def export_invoice_pdf(invoice: Invoice, language: Optional[str] = None) -> Tuple[str, bytes]:
    view = build_invoice_view(invoice)
    document = invoice_renderer.render_invoice(view, language)
    return invoice_renderer.invoice_filename(invoice.invoice_number), document
