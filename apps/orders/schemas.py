"""Ninja schemas for order API input/output."""
from decimal import Decimal
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from ninja import Schema, Field

from .models import PaymentMethod, DeliveryType, OrderStatus


class ShippingAddressIn(Schema):
    name: str
    phone: str
    email: Optional[str] = None
    street: str = ""
    city: str = ""
    district: str = ""
    division: str = ""
    postal_code: str = ""


class OrderItemIn(Schema):
    product_name: str
    product_ref: str = ""
    unit_price: Decimal = Field(..., gt=0)
    quantity: int = Field(1, ge=1)
    variant: Dict[str, Any] = {}
    image: str = ""


class OrderCreate(Schema):
    items: List[OrderItemIn] = Field(..., min_length=1)
    shipping_address: ShippingAddressIn
    payment_method: PaymentMethod = PaymentMethod.COD
    delivery_type: DeliveryType = DeliveryType.INSIDE_DHAKA
    notes: str = ""


class OrderStatusUpdate(Schema):
    status: OrderStatus
    notes: Optional[str] = None
    tracking_number: Optional[str] = None


class OrderItemOut(Schema):
    id: UUID
    product_name: str
    product_ref: str
    unit_price: Decimal
    quantity: int
    variant: Dict[str, Any]
    image: str
    line_total: Decimal


class OrderOut(Schema):
    id: UUID
    order_number: str
    customer_id: Optional[UUID] = None
    customer_name: str
    customer_email: Optional[str] = None
    items: List[OrderItemOut]
    subtotal: Decimal
    tax: Decimal
    shipping_cost: Decimal
    discount_amount: Decimal
    total: Decimal
    payment_method: str
    payment_status: str
    order_status: str
    shipping_address: Dict[str, Any]
    delivery_type: str
    notes: str
    tracking_number: str
    delivered_at: Optional[datetime] = None
    transaction_id: str
    invoice_url: str
    invoice_generated: bool
    invoice_generated_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    @staticmethod
    def resolve_customer_name(obj):
        from .services import resolve_customer_name
        return resolve_customer_name(obj)

    @staticmethod
    def resolve_customer_email(obj):
        from .services import resolve_customer_email
        return resolve_customer_email(obj)


class PaginationOut(Schema):
    page: int
    limit: int
    total: int
    pages: int


class OrderPageOut(Schema):
    orders: List[OrderOut]
    pagination: PaginationOut


class DispatchOut(Schema):
    message: str
    email: Optional[str] = None
    phone: Optional[str] = None
    method: str
    job_id: Optional[str] = None
    processed: Optional[bool] = None
    error: Optional[str] = None
