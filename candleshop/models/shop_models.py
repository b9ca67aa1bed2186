from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Tuple


ORDER_STATUSES: Tuple[str, ...] = ("pending", "processing", "shipped", "completed", "cancelled")
PAYMENT_STATUSES: Tuple[str, ...] = ("pending", "completed")
PAYMENT_METHODS: Tuple[str, ...] = ("cash", "bank_transfer", "paypal", "credit_card")


@dataclass
class User:
    id: int
    username: str
    email: str
    first_name: str = ""
    last_name: str = ""
    address: str = ""
    city: str = ""
    postal_code: str = ""
    country: str = ""
    phone: str = ""
    is_admin: bool = False
    discount_amount: float = 0.0
    discount_minimum_order: float = 0.0
    discount_expiry_date: Optional[datetime] = None
    preferred_language: str = "de"
    created_at: Optional[datetime] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass
class Category:
    id: int
    name: str
    description: str = ""


@dataclass
class Collection:
    id: int
    name: str
    description: str = ""
    active: bool = True


@dataclass
class Product:
    id: int
    name: str
    price: float
    description: str = ""
    image_url: str = ""
    category_id: Optional[int] = None
    stock: int = 0
    featured: bool = False
    has_color_options: bool = False
    allow_multiple_colors: bool = False
    active: bool = True
    created_at: Optional[datetime] = None


@dataclass
class Scent:
    id: int
    name: str
    description: str = ""
    active: bool = True


@dataclass
class Color:
    id: int
    name: str
    hex_value: str = ""
    active: bool = True


@dataclass(frozen=True)
class ColorSelection:
    """A single color, or a set of colors picked in multi-color mode."""

    color_ids: Tuple[int, ...] = ()
    multiple: bool = False

    @classmethod
    def single(cls, color_id: int) -> "ColorSelection":
        return cls(color_ids=(int(color_id),), multiple=False)

    @classmethod
    def many(cls, color_ids) -> "ColorSelection":
        return cls(color_ids=tuple(int(value) for value in color_ids), multiple=True)

    @property
    def color_id(self) -> Optional[int]:
        if self.multiple or not self.color_ids:
            return None
        return self.color_ids[0]

    @property
    def normalized_ids(self) -> Tuple[int, ...]:
        return tuple(sorted(set(self.color_ids)))


@dataclass
class CartLine:
    id: int
    user_id: int
    product_id: int
    quantity: int
    scent_id: Optional[int] = None
    color_id: Optional[int] = None
    color_ids: Optional[str] = None
    color_name: Optional[str] = None
    has_multiple_colors: bool = False


@dataclass
class CartLineView:
    line: CartLine
    product: Product
    scent: Optional[Scent] = None
    color: Optional[Color] = None
    colors: List[Color] = field(default_factory=list)

    @property
    def line_total(self) -> float:
        return round(self.product.price * self.line.quantity, 2)


@dataclass
class ShippingInfo:
    address: str = ""
    city: str = ""
    postal_code: str = ""
    country: str = ""
    customer_note: str = ""


@dataclass
class LineInput:
    """An order line entered directly instead of taken from a cart."""

    product_id: int
    quantity: int
    price: Optional[float] = None
    product_name: Optional[str] = None
    scent_id: Optional[int] = None
    scent_name: Optional[str] = None
    color_id: Optional[int] = None
    color_name: Optional[str] = None
    color_ids: Optional[str] = None
    has_multiple_colors: bool = False


@dataclass
class OrderLine:
    order_id: int
    product_id: Optional[int]
    product_name: str
    quantity: int
    price: float
    scent_id: Optional[int] = None
    scent_name: Optional[str] = None
    color_id: Optional[int] = None
    color_name: Optional[str] = None
    color_ids: Optional[str] = None
    has_multiple_colors: bool = False
    id: Optional[int] = None

    @property
    def line_total(self) -> float:
        return round(self.quantity * self.price, 2)


@dataclass
class Order:
    user_id: int
    status: str
    payment_method: str
    subtotal: float
    shipping_cost: float
    discount_amount: float
    total: float
    payment_status: str = "pending"
    payment_reference: Optional[str] = None
    customer_note: str = ""
    shipping_address: str = ""
    shipping_city: str = ""
    shipping_postal_code: str = ""
    shipping_country: str = ""
    created_at: Optional[datetime] = None
    id: Optional[int] = None
    lines: List[OrderLine] = field(default_factory=list)


@dataclass
class PlacedOrder:
    order: Order
    invoice_id: Optional[int] = None


@dataclass
class OrderTotals:
    subtotal: float
    shipping_cost: float
    discount_amount: float
    total: float
    free_shipping_threshold: float
    standard_shipping_rate: float

    @property
    def is_free_shipping(self) -> bool:
        return self.shipping_cost == 0


@dataclass
class InvoiceLine:
    invoice_id: int
    product_id: Optional[int]
    product_name: str
    quantity: int
    price: float
    selected_scent: Optional[str] = None
    selected_color: Optional[str] = None
    has_multiple_colors: bool = False
    id: Optional[int] = None

    @property
    def line_total(self) -> float:
        return round(self.quantity * self.price, 2)


@dataclass
class Invoice:
    invoice_number: str
    user_id: int
    customer_name: str
    payment_method: str
    subtotal: float
    total: float
    order_id: Optional[int] = None
    customer_email: str = ""
    customer_address: str = ""
    customer_city: str = ""
    customer_postal_code: str = ""
    customer_country: str = ""
    customer_phone: str = ""
    customer_note: str = ""
    shipping_cost: float = 0.0
    discount_amount: float = 0.0
    tax: float = 0.0
    language: str = "hr"
    created_at: Optional[datetime] = None
    id: Optional[int] = None
    lines: List[InvoiceLine] = field(default_factory=list)


@dataclass
class SellerIdentity:
    name: str
    address: str = ""
    city: str = ""
    email: str = ""
    phone: str = ""
    website: str = ""
    logo_path: str = ""


@dataclass
class InvoiceView:
    """Everything the renderer needs for one invoice, independent of its source."""

    invoice_number: str
    issued_at: datetime
    language: str
    seller: SellerIdentity
    customer_name: str
    customer_email: str
    customer_address: str
    customer_city: str
    customer_postal_code: str
    customer_country: str
    customer_phone: str
    customer_note: str
    payment_method: str
    payment_status: str
    subtotal: float
    shipping_cost: float
    discount_amount: float
    tax: float
    total: float
    lines: List[InvoiceLine] = field(default_factory=list)
    order_id: Optional[int] = None


@dataclass
class ShopSettings:
    store_name: str
    store_address: str
    store_city: str
    store_email: str
    store_phone: str
    store_website: str
    invoice_logo_path: str


@dataclass
class PaymentCapture:
    reference: str
    capture_id: str
    status: str
    amount: float
    currency: str
    order_id: Optional[int] = None
    created_at: Optional[datetime] = None
    id: Optional[int] = None


@dataclass
class SettingEntry:
    key: str
    value: str
    updated_at: Optional[datetime] = None


def serialize_color_ids(color_ids) -> str:
    """Serialize a color-id set in its normalized (sorted, distinct) form."""
    return json.dumps(sorted({int(value) for value in color_ids}))


def parse_color_ids(raw: Optional[str]) -> Tuple[int, ...]:
    if not raw:
        return ()
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError):
        parsed = [segment for segment in str(raw).strip("[]").split(",") if segment.strip()]
    if not isinstance(parsed, list):
        return ()
    values = set()
    for entry in parsed:
        try:
            values.add(int(entry))
        except (TypeError, ValueError):
            continue
    return tuple(sorted(values))
