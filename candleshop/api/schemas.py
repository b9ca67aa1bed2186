from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Cart

class CartItemIn(ApiModel):
    product_id: int
    quantity: int = 1
    scent_id: Optional[int] = None
    color_id: Optional[int] = None
    color_ids: Optional[List[int]] = None
    has_multiple_colors: bool = False


class CartQuantityIn(ApiModel):
    quantity: int


# Orders

class OrderItemIn(ApiModel):
    product_id: int
    quantity: int = 1
    price: Optional[float] = None
    product_name: Optional[str] = None
    scent_id: Optional[int] = None
    scent_name: Optional[str] = None
    color_id: Optional[int] = None
    color_name: Optional[str] = None
    color_ids: Optional[List[int]] = None
    has_multiple_colors: bool = False


class OrderIn(ApiModel):
    shipping_address: str = ""
    shipping_city: str = ""
    shipping_postal_code: str = ""
    shipping_country: str = ""
    customer_note: Optional[str] = None
    payment_method: str = ""
    payment_reference: Optional[str] = None
    language: str = "hr"
    free_shipping_threshold: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)
    standard_shipping_rate: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)
    items: Optional[List[OrderItemIn]] = None
    user_id: Optional[int] = None


class OrderStatusIn(ApiModel):
    status: Optional[str] = None
    payment_status: Optional[str] = None


# Invoices

class InvoiceItemIn(ApiModel):
    product_id: Optional[int] = None
    product_name: str = ""
    quantity: int = 1
    price: float = 0.0
    selected_scent: Optional[str] = None
    selected_color: Optional[str] = None
    has_multiple_colors: bool = False


class InvoiceIn(ApiModel):
    order_id: Optional[int] = None
    user_id: Optional[int] = None
    customer_name: str = ""
    customer_email: str = ""
    customer_address: str = ""
    customer_city: str = ""
    customer_postal_code: str = ""
    customer_country: str = ""
    customer_phone: str = ""
    customer_note: str = ""
    payment_method: str = ""
    shipping_cost: float = Field(default=0.0, ge=0)
    discount_amount: float = Field(default=0.0, ge=0)
    language: str = "hr"
    items: List[InvoiceItemIn] = Field(default_factory=list)


# Settings

class SettingIn(ApiModel):
    key: str
    value: str


class SettingValueIn(ApiModel):
    value: str


# Catalog

class ProductIn(ApiModel):
    name: str
    price: float = Field(ge=0)
    description: str = ""
    image_url: str = ""
    category_id: Optional[int] = None
    stock: int = Field(default=0, ge=0)
    featured: bool = False
    has_color_options: bool = False
    allow_multiple_colors: bool = False
    active: bool = True


class ScentIn(ApiModel):
    name: str
    description: str = ""
    active: bool = True


class ColorIn(ApiModel):
    name: str
    hex_value: str = ""
    active: bool = True


class VariantLinkIn(ApiModel):
    id: int


class CategoryIn(ApiModel):
    name: str
    description: str = ""


class CollectionIn(ApiModel):
    name: str
    description: str = ""
    active: bool = True


class DiscountIn(ApiModel):
    amount: float = Field(ge=0)
    minimum_order: float = Field(default=0.0, ge=0)
    expiry_date: Optional[datetime] = None


# PayPal

class PayPalOrderIn(ApiModel):
    amount: Optional[Union[float, str]] = None
    currency: str = ""
    intent: str = ""
