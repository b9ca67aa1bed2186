from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import BackgroundTasks, Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse, Response

from ..data import catalog_repository, database, settings_repository, user_repository
from ..errors import NotFoundError, ShopError, ValidationError
from ..models.shop_models import (
    CartLineView,
    ColorSelection,
    Invoice,
    InvoiceLine,
    LineInput,
    Order,
    OrderLine,
    OrderTotals,
    Product,
    SettingEntry,
    ShippingInfo,
    User,
    serialize_color_ids,
)
from ..services import cart_service, invoice_service, order_service, payment_service
from . import schemas
from .dependencies import get_current_user, require_admin

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    database.initialize()
    yield


app = FastAPI(title="Candleshop API", lifespan=lifespan)


@app.exception_handler(ShopError)
async def shop_error_handler(_request: Request, exc: ShopError) -> JSONResponse:
    content: Dict[str, Any] = {"message": exc.message}
    if exc.errors:
        content["errors"] = exc.errors
    if exc.status_code >= 500:
        logger.error("Request failed: %s", exc.message)
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"message": "Internal server error"})


# Serializers

def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def product_to_client(product: Product) -> Dict[str, Any]:
    return {
        "id": product.id,
        "name": product.name,
        "description": product.description,
        "price": f"{product.price:.2f}",
        "imageUrl": product.image_url,
        "categoryId": product.category_id,
        "stock": product.stock,
        "featured": product.featured,
        "hasColorOptions": product.has_color_options,
        "allowMultipleColors": product.allow_multiple_colors,
        "active": product.active,
        "createdAt": _iso(product.created_at),
    }


def cart_line_to_client(view: CartLineView) -> Dict[str, Any]:
    line = view.line
    data: Dict[str, Any] = {
        "id": line.id,
        "userId": line.user_id,
        "productId": line.product_id,
        "quantity": line.quantity,
        "scentId": line.scent_id,
        "colorId": line.color_id,
        "colorIds": line.color_ids,
        "colorName": line.color_name,
        "hasMultipleColors": line.has_multiple_colors,
        "product": product_to_client(view.product),
        "scent": {"id": view.scent.id, "name": view.scent.name} if view.scent else None,
    }
    if line.has_multiple_colors:
        data["selectedColors"] = [{"id": c.id, "name": c.name, "hexValue": c.hex_value} for c in view.colors]
    else:
        data["color"] = (
            {"id": view.color.id, "name": view.color.name, "hexValue": view.color.hex_value} if view.color else None
        )
    return data


def order_line_to_client(line: OrderLine) -> Dict[str, Any]:
    return {
        "id": line.id,
        "orderId": line.order_id,
        "productId": line.product_id,
        "productName": line.product_name,
        "quantity": line.quantity,
        "price": f"{line.price:.2f}",
        "scentId": line.scent_id,
        "scentName": line.scent_name,
        "colorId": line.color_id,
        "colorName": line.color_name,
        "colorIds": line.color_ids,
        "hasMultipleColors": line.has_multiple_colors,
    }


def order_to_client(order: Order) -> Dict[str, Any]:
    return {
        "id": order.id,
        "userId": order.user_id,
        "status": order.status,
        "paymentMethod": order.payment_method,
        "paymentStatus": order.payment_status,
        "paymentReference": order.payment_reference,
        "subtotal": f"{order.subtotal:.2f}",
        "discountAmount": f"{order.discount_amount:.2f}",
        "shippingCost": f"{order.shipping_cost:.2f}",
        "total": f"{order.total:.2f}",
        "customerNote": order.customer_note,
        "shippingAddress": order.shipping_address,
        "shippingCity": order.shipping_city,
        "shippingPostalCode": order.shipping_postal_code,
        "shippingCountry": order.shipping_country,
        "createdAt": _iso(order.created_at),
    }


def totals_to_client(totals: OrderTotals) -> Dict[str, Any]:
    return {
        "subtotal": f"{totals.subtotal:.2f}",
        "shippingCost": f"{totals.shipping_cost:.2f}",
        "discountAmount": f"{totals.discount_amount:.2f}",
        "total": f"{totals.total:.2f}",
        "isFreeShipping": totals.is_free_shipping,
        "freeShippingThreshold": totals.free_shipping_threshold,
        "standardShippingRate": totals.standard_shipping_rate,
    }


def invoice_to_client(invoice: Invoice, *, include_items: bool = True) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "id": invoice.id,
        "invoiceNumber": invoice.invoice_number,
        "orderId": invoice.order_id,
        "userId": invoice.user_id,
        "customerName": invoice.customer_name,
        "customerEmail": invoice.customer_email,
        "customerAddress": invoice.customer_address,
        "customerCity": invoice.customer_city,
        "customerPostalCode": invoice.customer_postal_code,
        "customerCountry": invoice.customer_country,
        "customerPhone": invoice.customer_phone,
        "customerNote": invoice.customer_note,
        "paymentMethod": invoice.payment_method,
        "subtotal": f"{invoice.subtotal:.2f}",
        "shippingCost": f"{invoice.shipping_cost:.2f}",
        "discountAmount": f"{invoice.discount_amount:.2f}",
        "tax": f"{invoice.tax:.2f}",
        "total": f"{invoice.total:.2f}",
        "language": invoice.language,
        "createdAt": _iso(invoice.created_at),
    }
    if include_items:
        data["items"] = [
            {
                "id": line.id,
                "invoiceId": line.invoice_id,
                "productId": line.product_id,
                "productName": line.product_name,
                "quantity": line.quantity,
                "price": f"{line.price:.2f}",
                "selectedScent": line.selected_scent,
                "selectedColor": line.selected_color,
                "hasMultipleColors": line.has_multiple_colors,
            }
            for line in invoice.lines
        ]
    return data


def setting_to_client(entry: SettingEntry) -> Dict[str, Any]:
    return {"key": entry.key, "value": entry.value, "updatedAt": _iso(entry.updated_at)}


def user_to_client(user: User) -> Dict[str, Any]:
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "firstName": user.first_name,
        "lastName": user.last_name,
        "isAdmin": user.is_admin,
        "discountAmount": f"{user.discount_amount:.2f}",
        "discountMinimumOrder": f"{user.discount_minimum_order:.2f}",
        "discountExpiryDate": _iso(user.discount_expiry_date),
    }


def _pdf_response(filename: str, document: bytes) -> Response:
    return Response(
        content=document,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# Cart

@app.get("/api/cart")
def get_cart(user: User = Depends(get_current_user)) -> List[Dict[str, Any]]:
    return [cart_line_to_client(view) for view in cart_service.list_lines(user.id)]


@app.post("/api/cart", status_code=201)
def add_to_cart(payload: schemas.CartItemIn, user: User = Depends(get_current_user)) -> Dict[str, Any]:
    selection = None
    if payload.has_multiple_colors:
        selection = ColorSelection.many(payload.color_ids or [])
    elif payload.color_id is not None:
        selection = ColorSelection.single(payload.color_id)
    line = cart_service.add_line(user.id, payload.product_id, payload.quantity, payload.scent_id, selection)
    for view in cart_service.list_lines(user.id):
        if view.line.id == line.id:
            return cart_line_to_client(view)
    raise NotFoundError("Cart item not found")


@app.get("/api/cart/quote")
def quote_cart(
    free_shipping_threshold: Optional[float] = Query(None, alias="freeShippingThreshold", ge=0, allow_inf_nan=False),
    standard_shipping_rate: Optional[float] = Query(None, alias="standardShippingRate", ge=0, allow_inf_nan=False),
    user: User = Depends(get_current_user),
) -> Dict[str, Any]:
    overrides = {
        "freeShippingThreshold": free_shipping_threshold,
        "standardShippingRate": standard_shipping_rate,
    }
    return totals_to_client(order_service.quote_cart(user.id, overrides))


@app.put("/api/cart/{line_id}")
def update_cart_item(
    line_id: int,
    payload: schemas.CartQuantityIn,
    user: User = Depends(get_current_user),
) -> Dict[str, Any]:
    line = cart_service.update_quantity(line_id, user.id, payload.quantity)
    return {"id": line.id, "quantity": line.quantity}


@app.delete("/api/cart/{line_id}", status_code=204)
def remove_cart_item(line_id: int, user: User = Depends(get_current_user)) -> Response:
    cart_service.remove_line(line_id, user.id)
    return Response(status_code=204)


@app.delete("/api/cart", status_code=204)
def clear_cart(user: User = Depends(get_current_user)) -> Response:
    cart_service.clear(user.id)
    return Response(status_code=204)


# Orders

@app.get("/api/orders")
def list_orders(user: User = Depends(get_current_user)) -> List[Dict[str, Any]]:
    return [order_to_client(order) for order in order_service.list_user_orders(user.id)]


@app.get("/api/admin/orders")
def list_all_orders(
    limit: Optional[int] = Query(None, ge=1),
    offset: int = Query(0, ge=0),
    _admin: User = Depends(require_admin),
) -> List[Dict[str, Any]]:
    return [order_to_client(order) for order in order_service.list_all_orders(limit, offset)]


@app.post("/api/orders", status_code=201)
def create_order(
    payload: schemas.OrderIn,
    background_tasks: BackgroundTasks,
    user: User = Depends(get_current_user),
) -> Dict[str, Any]:
    target_user_id = user.id
    lines = None
    if payload.items is not None or payload.user_id is not None:
        if not user.is_admin:
            raise ValidationError("Only administrators can enter order items directly")
        target_user_id = payload.user_id or user.id
        lines = [
            LineInput(
                product_id=item.product_id,
                quantity=item.quantity,
                price=item.price,
                product_name=item.product_name,
                scent_id=item.scent_id,
                scent_name=item.scent_name,
                color_id=item.color_id,
                color_name=item.color_name,
                color_ids=serialize_color_ids(item.color_ids) if item.color_ids else None,
                has_multiple_colors=item.has_multiple_colors,
            )
            for item in payload.items or []
        ]

    placed = order_service.place_order(
        target_user_id,
        ShippingInfo(
            address=payload.shipping_address,
            city=payload.shipping_city,
            postal_code=payload.shipping_postal_code,
            country=payload.shipping_country,
            customer_note=payload.customer_note or "",
        ),
        payload.payment_method,
        lines=lines,
        language=payload.language,
        payment_reference=payload.payment_reference,
        shipping_overrides={
            "freeShippingThreshold": payload.free_shipping_threshold,
            "standardShippingRate": payload.standard_shipping_rate,
        },
        notify=background_tasks.add_task,
    )
    data = order_to_client(placed.order)
    data["items"] = [order_line_to_client(line) for line in placed.order.lines]
    data["invoiceId"] = placed.invoice_id
    return data


@app.get("/api/orders/{order_id}")
def get_order(order_id: int, user: User = Depends(get_current_user)) -> Dict[str, Any]:
    order = order_service.get_order_for_user(order_id, user)
    data = order_to_client(order)
    data["items"] = [order_line_to_client(line) for line in order.lines]
    return data


@app.get("/api/orders/{order_id}/items")
def get_order_items(order_id: int, user: User = Depends(get_current_user)) -> List[Dict[str, Any]]:
    return [order_line_to_client(line) for line in order_service.list_order_lines(order_id, user)]


@app.put("/api/orders/{order_id}/status")
def update_order_status(
    order_id: int,
    payload: schemas.OrderStatusIn,
    _admin: User = Depends(require_admin),
) -> Dict[str, Any]:
    if payload.status is None and payload.payment_status is None:
        raise ValidationError("Nothing to update", {"status": "Status or payment status is required"})
    order = order_service.get_order(order_id)
    if payload.status is not None:
        order = order_service.update_order_status(order_id, payload.status)
    if payload.payment_status is not None:
        order = order_service.update_payment_status(order_id, payload.payment_status)
    return order_to_client(order)


@app.get("/api/orders/{order_id}/invoice")
def get_order_invoice(order_id: int, user: User = Depends(get_current_user)) -> Dict[str, Any]:
    return invoice_to_client(invoice_service.get_invoice_for_order(order_id, user))


@app.get("/api/orders/{order_id}/invoice/pdf")
def get_order_invoice_pdf(
    order_id: int,
    lang: Optional[str] = None,
    user: User = Depends(get_current_user),
) -> Response:
    invoice = invoice_service.get_invoice_for_order(order_id, user)
    filename, document = invoice_service.export_invoice_pdf(invoice, lang)
    return _pdf_response(filename, document)


# Invoices

@app.get("/api/invoices")
def list_invoices(_admin: User = Depends(require_admin)) -> List[Dict[str, Any]]:
    return [invoice_to_client(invoice, include_items=False) for invoice in invoice_service.list_invoices()]


@app.get("/api/invoices/last")
def get_last_invoice(_admin: User = Depends(require_admin)) -> Dict[str, Any]:
    last = invoice_service.get_last_invoice()
    return {
        "invoice": invoice_to_client(last, include_items=False) if last else None,
        "nextInvoiceNumber": invoice_service.preview_next_invoice_number(),
    }


@app.get("/api/user/invoices")
def list_my_invoices(user: User = Depends(get_current_user)) -> List[Dict[str, Any]]:
    return [invoice_to_client(invoice, include_items=False) for invoice in invoice_service.list_user_invoices(user.id)]


@app.get("/api/invoices/{invoice_id}")
def get_invoice(invoice_id: int, user: User = Depends(get_current_user)) -> Dict[str, Any]:
    return invoice_to_client(invoice_service.get_invoice_for_user(invoice_id, user))


@app.get("/api/invoices/{invoice_id}/pdf")
def get_invoice_pdf(
    invoice_id: int,
    lang: Optional[str] = None,
    user: User = Depends(get_current_user),
) -> Response:
    invoice = invoice_service.get_invoice_for_user(invoice_id, user)
    filename, document = invoice_service.export_invoice_pdf(invoice, lang)
    return _pdf_response(filename, document)


@app.post("/api/invoices", status_code=201)
def create_invoice(payload: schemas.InvoiceIn, admin: User = Depends(require_admin)) -> Dict[str, Any]:
    user_id = payload.user_id
    if user_id is None and payload.order_id is not None:
        user_id = order_service.get_order(payload.order_id).user_id
    invoice = invoice_service.create_manual_invoice(
        Invoice(
            invoice_number="",
            order_id=payload.order_id,
            user_id=user_id or admin.id,
            customer_name=payload.customer_name,
            customer_email=payload.customer_email,
            customer_address=payload.customer_address,
            customer_city=payload.customer_city,
            customer_postal_code=payload.customer_postal_code,
            customer_country=payload.customer_country,
            customer_phone=payload.customer_phone,
            customer_note=payload.customer_note,
            payment_method=payload.payment_method,
            subtotal=0.0,
            total=0.0,
            shipping_cost=payload.shipping_cost,
            discount_amount=payload.discount_amount,
            language=payload.language,
            lines=[
                InvoiceLine(
                    invoice_id=0,
                    product_id=item.product_id,
                    product_name=item.product_name,
                    quantity=item.quantity,
                    price=item.price,
                    selected_scent=item.selected_scent,
                    selected_color=item.selected_color,
                    has_multiple_colors=item.has_multiple_colors,
                )
                for item in payload.items
            ],
        )
    )
    return invoice_to_client(invoice)


@app.delete("/api/invoices/{invoice_id}")
def delete_invoice(invoice_id: int, _admin: User = Depends(require_admin)) -> Dict[str, Any]:
    invoice_service.delete_invoice(invoice_id)
    return {"success": True}


# Settings

@app.get("/api/settings")
def list_settings() -> List[Dict[str, Any]]:
    return [setting_to_client(entry) for entry in settings_repository.list_settings()]


@app.post("/api/settings")
def upsert_setting(payload: schemas.SettingIn, _admin: User = Depends(require_admin)) -> Dict[str, Any]:
    if not payload.key.strip():
        raise ValidationError("Setting key is required", {"key": "Setting key is required"})
    return setting_to_client(settings_repository.set_setting(payload.key, payload.value))


@app.get("/api/settings/{key}")
def get_setting(key: str) -> Dict[str, Any]:
    entry = settings_repository.get_setting_entry(key)
    if entry is not None:
        return setting_to_client(entry)
    default = settings_repository.get_default(key)
    if default is None:
        raise NotFoundError("Setting not found")
    return {"key": key, "value": default, "updatedAt": None}


@app.put("/api/settings/{key}")
def update_setting(
    key: str,
    payload: schemas.SettingValueIn,
    _admin: User = Depends(require_admin),
) -> Dict[str, Any]:
    return setting_to_client(settings_repository.set_setting(key, payload.value))


@app.delete("/api/settings/{key}")
def delete_setting(key: str, _admin: User = Depends(require_admin)) -> Dict[str, Any]:
    if not settings_repository.delete_setting(key):
        raise NotFoundError("Setting not found")
    return {"success": True}


# Catalog

@app.get("/api/products")
def list_products(category_id: Optional[int] = None) -> List[Dict[str, Any]]:
    products = catalog_repository.list_products(category_id=category_id, active_only=True)
    return [product_to_client(product) for product in products]


@app.get("/api/products/{product_id}")
def get_product(product_id: int) -> Dict[str, Any]:
    product = catalog_repository.get_product(product_id)
    if product is None:
        raise NotFoundError("Product not found")
    data = product_to_client(product)
    data["scents"] = [{"id": s.id, "name": s.name} for s in catalog_repository.list_product_scents(product_id)]
    data["colors"] = [
        {"id": c.id, "name": c.name, "hexValue": c.hex_value}
        for c in catalog_repository.list_product_colors(product_id)
    ]
    return data


@app.post("/api/products", status_code=201)
def create_product(payload: schemas.ProductIn, _admin: User = Depends(require_admin)) -> Dict[str, Any]:
    product = catalog_repository.create_product(Product(id=0, **payload.model_dump()))
    return product_to_client(product)


@app.put("/api/products/{product_id}")
def update_product(
    product_id: int,
    payload: schemas.ProductIn,
    _admin: User = Depends(require_admin),
) -> Dict[str, Any]:
    existing = catalog_repository.get_product(product_id)
    if existing is None:
        raise NotFoundError("Product not found")
    updated = catalog_repository.update_product(replace(existing, **payload.model_dump()))
    if updated is None:
        raise NotFoundError("Product not found")
    return product_to_client(updated)


@app.delete("/api/products/{product_id}")
def delete_product(product_id: int, _admin: User = Depends(require_admin)) -> Dict[str, Any]:
    if not catalog_repository.delete_product(product_id):
        raise NotFoundError("Product not found")
    return {"success": True}


@app.post("/api/scents", status_code=201)
def create_scent(payload: schemas.ScentIn, _admin: User = Depends(require_admin)) -> Dict[str, Any]:
    scent = catalog_repository.create_scent(payload.name, payload.description, payload.active)
    return {"id": scent.id, "name": scent.name, "description": scent.description, "active": scent.active}


@app.post("/api/colors", status_code=201)
def create_color(payload: schemas.ColorIn, _admin: User = Depends(require_admin)) -> Dict[str, Any]:
    color = catalog_repository.create_color(payload.name, payload.hex_value, payload.active)
    return {"id": color.id, "name": color.name, "hexValue": color.hex_value, "active": color.active}


@app.post("/api/products/{product_id}/scents", status_code=201)
def link_product_scent(
    product_id: int,
    payload: schemas.VariantLinkIn,
    _admin: User = Depends(require_admin),
) -> Dict[str, Any]:
    if catalog_repository.get_product(product_id) is None:
        raise NotFoundError("Product not found")
    if catalog_repository.get_scent(payload.id) is None:
        raise NotFoundError("Scent not found")
    catalog_repository.add_product_scent(product_id, payload.id)
    return {"productId": product_id, "scentId": payload.id}


@app.post("/api/products/{product_id}/colors", status_code=201)
def link_product_color(
    product_id: int,
    payload: schemas.VariantLinkIn,
    _admin: User = Depends(require_admin),
) -> Dict[str, Any]:
    if catalog_repository.get_product(product_id) is None:
        raise NotFoundError("Product not found")
    if catalog_repository.get_color(payload.id) is None:
        raise NotFoundError("Color not found")
    catalog_repository.add_product_color(product_id, payload.id)
    return {"productId": product_id, "colorId": payload.id}


@app.delete("/api/products/{product_id}/scents/{scent_id}", status_code=204)
def unlink_product_scent(product_id: int, scent_id: int, _admin: User = Depends(require_admin)) -> Response:
    catalog_repository.remove_product_scent(product_id, scent_id)
    return Response(status_code=204)


@app.delete("/api/products/{product_id}/colors/{color_id}", status_code=204)
def unlink_product_color(product_id: int, color_id: int, _admin: User = Depends(require_admin)) -> Response:
    catalog_repository.remove_product_color(product_id, color_id)
    return Response(status_code=204)


@app.get("/api/scents")
def list_scents() -> List[Dict[str, Any]]:
    return [
        {"id": s.id, "name": s.name, "description": s.description, "active": s.active}
        for s in catalog_repository.list_scents()
    ]


@app.get("/api/colors")
def list_colors() -> List[Dict[str, Any]]:
    return [
        {"id": c.id, "name": c.name, "hexValue": c.hex_value, "active": c.active}
        for c in catalog_repository.list_colors()
    ]


@app.get("/api/categories")
def list_categories() -> List[Dict[str, Any]]:
    return [{"id": c.id, "name": c.name, "description": c.description} for c in catalog_repository.list_categories()]


@app.post("/api/categories", status_code=201)
def create_category(payload: schemas.CategoryIn, _admin: User = Depends(require_admin)) -> Dict[str, Any]:
    category = catalog_repository.create_category(payload.name, payload.description)
    return {"id": category.id, "name": category.name, "description": category.description}


@app.get("/api/collections")
def list_collections() -> List[Dict[str, Any]]:
    return [
        {"id": c.id, "name": c.name, "description": c.description, "active": c.active}
        for c in catalog_repository.list_collections()
    ]


@app.post("/api/collections", status_code=201)
def create_collection(payload: schemas.CollectionIn, _admin: User = Depends(require_admin)) -> Dict[str, Any]:
    collection = catalog_repository.create_collection(payload.name, payload.description, payload.active)
    return {"id": collection.id, "name": collection.name, "description": collection.description, "active": collection.active}


@app.get("/api/collections/{collection_id}/products")
def list_collection_products(collection_id: int) -> List[Dict[str, Any]]:
    return [product_to_client(product) for product in catalog_repository.list_collection_products(collection_id)]


@app.post("/api/collections/{collection_id}/products", status_code=201)
def add_collection_product(
    collection_id: int,
    payload: schemas.VariantLinkIn,
    _admin: User = Depends(require_admin),
) -> Dict[str, Any]:
    if catalog_repository.get_product(payload.id) is None:
        raise NotFoundError("Product not found")
    catalog_repository.add_product_to_collection(payload.id, collection_id)
    return {"collectionId": collection_id, "productId": payload.id}


@app.post("/api/users/{user_id}/discount")
def set_user_discount(
    user_id: int,
    payload: schemas.DiscountIn,
    _admin: User = Depends(require_admin),
) -> Dict[str, Any]:
    updated = user_repository.set_discount(user_id, payload.amount, payload.minimum_order, payload.expiry_date)
    if updated is None:
        raise NotFoundError("User not found")
    return user_to_client(updated)


# PayPal

@app.get("/api/paypal/setup")
def paypal_setup() -> Dict[str, Any]:
    return payment_service.get_client_token()


@app.post("/api/paypal/order")
def paypal_create_order(payload: schemas.PayPalOrderIn) -> Dict[str, Any]:
    return payment_service.create_paypal_order(payload.amount, payload.currency, payload.intent)


@app.post("/api/paypal/order/{paypal_order_id}/capture")
def paypal_capture_order(paypal_order_id: str) -> Dict[str, Any]:
    return payment_service.capture_paypal_order(paypal_order_id)
