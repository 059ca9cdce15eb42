"""
Order services.

Placement computes totals from the line items and courier settings, then
best-effort notifies the customer and the store. Status changes are audited.
"""
import math
import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Optional
from uuid import UUID

from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from apps.audit.audit_service import log_action, diff_fields, snapshot, AuditAction
from apps.site_settings.services import get_courier_settings
from .models import Order, OrderItem, OrderStatus, DeliveryType
from .schemas import OrderCreate

logger = logging.getLogger(__name__)

TAX_RATE = Decimal('0.05')
MAX_PAGE_SIZE = 100
STATUS_AUDIT_FIELDS = ['order_status', 'notes', 'tracking_number', 'delivered_at']
STATUS_VALUES = set(OrderStatus.values)


class InvalidOrderStatus(ValueError):
    """Raised for a status outside the order lifecycle."""


def _money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)


# =============================================================================
# Pricing
# =============================================================================

def calculate_shipping(subtotal: Decimal, delivery_type: str) -> Decimal:
    """Regular delivery charge for the zone, free at or above the threshold."""
    courier = get_courier_settings()
    threshold = Decimal(courier.free_delivery_threshold or 0)
    if threshold > 0 and subtotal >= threshold:
        return Decimal('0.00')

    key = 'regular_within_dhaka' if delivery_type == DeliveryType.INSIDE_DHAKA else 'regular_outside_dhaka'
    return _money(Decimal(str(courier.delivery_charges.get(key, 0))))


def calculate_tax(subtotal: Decimal) -> Decimal:
    # Whole currency units
    return (subtotal * TAX_RATE).quantize(Decimal('1'), rounding=ROUND_HALF_UP)


# =============================================================================
# Placement
# =============================================================================

def place_order(payload: OrderCreate, customer=None, audit_context: Optional[dict] = None) -> Order:
    """
    Create an order for a customer (or guest when customer is None).

    Confirmation email and the admin alert are best-effort: their failure is
    logged and never fails the order.
    """
    if customer is not None and not customer.is_authenticated:
        customer = None

    subtotal = _money(sum((item.unit_price * item.quantity for item in payload.items), Decimal('0')))
    tax = calculate_tax(subtotal)
    shipping_cost = calculate_shipping(subtotal, payload.delivery_type)
    discount_amount = Decimal('0.00')

    with transaction.atomic():
        order = Order.objects.create(
            customer=customer,
            subtotal=subtotal,
            tax=tax,
            shipping_cost=shipping_cost,
            discount_amount=discount_amount,
            total=_money(subtotal + tax + shipping_cost - discount_amount),
            payment_method=payload.payment_method,
            shipping_address=payload.shipping_address.dict(),
            delivery_type=payload.delivery_type,
            notes=payload.notes,
        )
        OrderItem.objects.bulk_create([
            OrderItem(
                order=order,
                product_name=item.product_name,
                product_ref=item.product_ref,
                unit_price=item.unit_price,
                quantity=item.quantity,
                variant=item.variant,
                image=item.image,
            )
            for item in payload.items
        ])

    log_action(
        actor=customer,
        action=AuditAction.CREATE_ORDER,
        resource="Order",
        resource_id=order.id,
        metadata={"order_number": order.order_number, "total": str(order.total)},
        **(audit_context or {}),
    )
    logger.info(f"Placed order {order.order_number} total={order.total}")

    notify_new_order(order)
    return order


def notify_new_order(order: Order) -> None:
    """Send the customer confirmation and queue the admin alert, best-effort."""
    from apps.core.task_service import TaskService
    from apps.notifications.dispatcher import send_order_confirmation, NoRecipientError, DispatchError

    try:
        result = send_order_confirmation(order)
        logger.info(f"Order {order.order_number} confirmation sent via {result.method}")
    except NoRecipientError:
        logger.info(f"Order {order.order_number} has no email address, confirmation skipped")
    except DispatchError as e:
        logger.error(f"Order {order.order_number} confirmation not delivered: {e}")

    try:
        TaskService.new_order_notification(order.id, order.order_number, str(order.total))
    except Exception as e:
        logger.error(f"Failed to queue new order notification for {order.order_number}: {e}")


# =============================================================================
# Queries
# =============================================================================

def get_order(order_id: UUID) -> Optional[Order]:
    return (
        Order.objects.select_related('customer')
        .prefetch_related('items')
        .filter(id=order_id)
        .first()
    )


def get_order_by_number(order_number: str) -> Optional[Order]:
    return (
        Order.objects.select_related('customer')
        .prefetch_related('items')
        .filter(order_number__iexact=order_number.strip())
        .first()
    )


def get_order_by_transaction(transaction_id: str) -> Optional[Order]:
    if not transaction_id:
        return None
    return Order.objects.filter(transaction_id=transaction_id).first()


def list_orders(
    status: str = "",
    payment_status: str = "",
    payment_method: str = "",
    search: str = "",
    page: int = 1,
    limit: int = 20,
    sort_order: str = "desc",
) -> Dict[str, Any]:
    """Filtered, paginated order listing for the admin panel."""
    page = max(1, page)
    limit = max(1, min(limit, MAX_PAGE_SIZE))

    qs = Order.objects.select_related('customer').prefetch_related('items')
    if status:
        qs = qs.filter(order_status=status)
    if payment_status:
        qs = qs.filter(payment_status=payment_status)
    if payment_method:
        qs = qs.filter(payment_method=payment_method)
    if search:
        qs = qs.filter(
            Q(order_number__icontains=search)
            | Q(shipping_address__name__icontains=search)
            | Q(shipping_address__phone__icontains=search)
        )

    qs = qs.order_by('created_at' if sort_order == 'asc' else '-created_at')

    total = qs.count()
    offset = (page - 1) * limit
    return {
        "orders": list(qs[offset:offset + limit]),
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": math.ceil(total / limit),
        },
    }


def list_customer_orders(customer) -> list:
    return list(
        Order.objects.filter(customer=customer)
        .prefetch_related('items')
        .order_by('-created_at')
    )


# =============================================================================
# Mutations
# =============================================================================

def update_order_status(
    order_id: UUID,
    status: str,
    notes: Optional[str] = None,
    tracking_number: Optional[str] = None,
    actor=None,
    audit_context: Optional[dict] = None,
) -> Optional[Order]:
    """
    Move an order through its lifecycle.

    Returns None if the order does not exist.

    Raises:
        InvalidOrderStatus: status is not a lifecycle state
    """
    if status not in STATUS_VALUES:
        raise InvalidOrderStatus(f"Invalid order status: {status}")

    order = get_order(order_id)
    if order is None:
        return None

    before = snapshot(order, STATUS_AUDIT_FIELDS)

    order.order_status = status
    if notes:
        order.notes = notes
    if tracking_number is not None:
        order.tracking_number = tracking_number
    if status == OrderStatus.DELIVERED and before['order_status'] != OrderStatus.DELIVERED:
        order.delivered_at = timezone.now()
    order.save(update_fields=STATUS_AUDIT_FIELDS + ['updated_at'])

    log_action(
        actor=actor,
        action=AuditAction.UPDATE_ORDER_STATUS,
        resource="Order",
        resource_id=order.id,
        changes=diff_fields(before, snapshot(order, STATUS_AUDIT_FIELDS)),
        metadata={"order_number": order.order_number},
        **(audit_context or {}),
    )
    return order


# =============================================================================
# Notification helpers
# =============================================================================

def resolve_customer_email(order: Order) -> Optional[str]:
    """Customer account email, else the shipping address email."""
    if order.customer_id and order.customer.email:
        return order.customer.email
    return (order.shipping_address or {}).get('email') or None


def resolve_customer_name(order: Order) -> str:
    if order.customer_id:
        full_name = order.customer.get_full_name()
        if full_name:
            return full_name
    return (order.shipping_address or {}).get('name') or "Customer"


def resolve_customer_phone(order: Order) -> Optional[str]:
    phone = (order.shipping_address or {}).get('phone')
    if phone:
        return phone
    if order.customer_id and order.customer.phone:
        return order.customer.phone
    return None


def format_address(address: Dict[str, Any]) -> str:
    parts = [address.get(key, '') for key in ('street', 'city', 'district', 'postal_code')]
    return ', '.join(part for part in parts if part)


def build_order_email_data(order: Order) -> Dict[str, Any]:
    """
    Payload for the order confirmation email.

    Shared by the direct send and the queued job, so it must stay
    JSON-serialisable.
    """
    address = order.shipping_address or {}
    customer_name = resolve_customer_name(order)
    return {
        "customer_name": customer_name,
        "order_number": order.order_number,
        "order_date": order.created_at.strftime('%d %b %Y'),
        "items": [
            {
                "name": item.product_name,
                "quantity": item.quantity,
                "price": str(item.unit_price),
                "total": str(item.line_total),
            }
            for item in order.items.all()
        ],
        "subtotal": str(order.subtotal),
        "tax": str(order.tax),
        "shipping_cost": str(order.shipping_cost),
        "discount_amount": str(order.discount_amount),
        "total": str(order.total),
        "payment_method": order.get_payment_method_display(),
        "delivery_type": order.get_delivery_type_display(),
        "shipping_address": {
            "name": address.get('name') or customer_name,
            "phone": address.get('phone', ''),
            "address": format_address(address),
        },
    }
