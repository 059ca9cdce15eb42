"""
Order API endpoints.

Admin endpoints (listing, status changes, customer notifications) are
mounted under /api/admin/orders/; checkout and customer order history
under /api/orders/.
"""
from typing import List
from uuid import UUID
from django.http import HttpRequest
from ninja import Router
from ninja.errors import HttpError

from apps.audit.audit_service import log_action, request_context, AuditAction
from apps.identity.permissions import Permissions, get_user_permissions
from apps.identity.security import require_auth, require_permission, has_permission
from apps.notifications import dispatcher
from apps.notifications.dispatcher import NoRecipientError
from apps.notifications.sms_service import SmsDeliveryError
from . import services
from .schemas import OrderCreate, OrderOut, OrderPageOut, OrderStatusUpdate, DispatchOut

router = Router(tags=["Orders"])
admin_router = Router(tags=["Orders"])


def _get_order_or_404(order_id: UUID):
    order = services.get_order(order_id)
    if order is None:
        raise HttpError(404, "Order not found")
    return order


def _audit_notification(request, order, action: str, result) -> None:
    log_action(
        actor=request.user,
        action=action,
        resource="Order",
        resource_id=order.id,
        metadata={
            "order_number": order.order_number,
            "method": result.method,
            "job_id": result.job_id,
        },
        **request_context(request),
    )


# =============================================================================
# Checkout / customer endpoints
# =============================================================================

@router.post("", response={201: OrderOut}, auth=None)
def place_order(request: HttpRequest, payload: OrderCreate):
    """
    Place an order. Works for signed-in customers and guests.
    """
    order = services.place_order(
        payload,
        customer=request.user,
        audit_context=request_context(request),
    )
    return 201, services.get_order(order.id)


@router.get("", response=List[OrderOut], auth=None)
def list_my_orders(request: HttpRequest):
    """Order history of the signed-in customer."""
    user = require_auth(request)
    return services.list_customer_orders(user)


@router.get("/{order_id}", response=OrderOut, auth=None)
def get_my_order(request: HttpRequest, order_id: UUID):
    """
    Get an order. Customers see their own orders; order staff see all.
    """
    user = require_auth(request)
    order = _get_order_or_404(order_id)

    if order.customer_id != user.id and Permissions.ORDERS_VIEW not in get_user_permissions(user):
        raise HttpError(404, "Order not found")

    return order


# =============================================================================
# Admin endpoints
# =============================================================================

@admin_router.get("", response=OrderPageOut, auth=None)
@has_permission(Permissions.ORDERS_VIEW)
def list_orders(
    request: HttpRequest,
    page: int = 1,
    limit: int = 20,
    status: str = "",
    payment_status: str = "",
    payment_method: str = "",
    search: str = "",
    sort_order: str = "desc",
):
    """
    List orders with filters and pagination.
    """
    return services.list_orders(
        status=status,
        payment_status=payment_status,
        payment_method=payment_method,
        search=search,
        page=page,
        limit=limit,
        sort_order=sort_order,
    )


@admin_router.get("/by-number", response=OrderOut, auth=None)
@has_permission(Permissions.ORDERS_VIEW)
def get_order_by_number(request: HttpRequest, order_number: str):
    """Look up an order by its customer-facing number."""
    order = services.get_order_by_number(order_number)
    if order is None:
        raise HttpError(404, "Order not found")
    return order


@admin_router.get("/{order_id}", response=OrderOut, auth=None)
@has_permission(Permissions.ORDERS_VIEW)
def get_order(request: HttpRequest, order_id: UUID):
    return _get_order_or_404(order_id)


@admin_router.put("/{order_id}/status", response=OrderOut, auth=None)
def update_order_status(request: HttpRequest, order_id: UUID, payload: OrderStatusUpdate):
    """
    Move an order through its lifecycle. Payment status is not affected.
    """
    user = require_permission(request, Permissions.ORDERS_MANAGE)

    try:
        order = services.update_order_status(
            order_id,
            payload.status,
            notes=payload.notes,
            tracking_number=payload.tracking_number,
            actor=user,
            audit_context=request_context(request),
        )
    except services.InvalidOrderStatus as e:
        raise HttpError(400, str(e))

    if order is None:
        raise HttpError(404, "Order not found")
    return services.get_order(order.id)


@admin_router.post("/{order_id}/resend-confirmation", response=DispatchOut, auth=None)
def resend_confirmation(request: HttpRequest, order_id: UUID):
    """
    Re-send the order confirmation email.

    Sends directly when possible, otherwise queues the email. A combined
    failure (DispatchError) is rendered by the API exception handler.
    """
    require_permission(request, Permissions.ORDERS_NOTIFY)
    order = _get_order_or_404(order_id)

    try:
        result = dispatcher.send_order_confirmation(order)
    except NoRecipientError as e:
        raise HttpError(400, str(e))

    _audit_notification(request, order, AuditAction.RESEND_CONFIRMATION, result)

    message = (
        "Confirmation email sent successfully"
        if result.method == dispatcher.METHOD_DIRECT
        else "Confirmation email queued successfully"
    )
    return DispatchOut(message=message, email=result.email, method=result.method, job_id=result.job_id)


INVOICE_MESSAGES = {
    dispatcher.METHOD_IMMEDIATE: "Invoice generated and sent successfully",
    dispatcher.METHOD_BACKGROUND: "Invoice generation queued for background processing",
    dispatcher.METHOD_QUEUE_RETRY: "Invoice generation queued but processing failed",
    dispatcher.METHOD_QUEUE_FALLBACK: "Invoice generation queued but immediate processing failed",
}


@admin_router.post("/{order_id}/send-invoice", response={200: DispatchOut, 202: DispatchOut}, auth=None)
def send_invoice(request: HttpRequest, order_id: UUID):
    """
    Generate the order invoice PDF and email it to the customer.

    Answers 202 when the job is queued but could not be processed yet.
    """
    require_permission(request, Permissions.ORDERS_NOTIFY)
    order = _get_order_or_404(order_id)

    try:
        result = dispatcher.send_invoice(order)
    except NoRecipientError as e:
        raise HttpError(400, str(e))

    _audit_notification(request, order, AuditAction.SEND_INVOICE, result)

    status = 202 if result.method in (dispatcher.METHOD_QUEUE_RETRY, dispatcher.METHOD_QUEUE_FALLBACK) else 200
    return status, DispatchOut(
        message=INVOICE_MESSAGES[result.method],
        email=result.email,
        method=result.method,
        job_id=result.job_id,
        processed=result.processed,
        error=result.error,
    )


@admin_router.post("/{order_id}/sms-confirmation", response=DispatchOut, auth=None)
def send_sms_confirmation(request: HttpRequest, order_id: UUID):
    """Text the order summary to the customer's phone."""
    require_permission(request, Permissions.ORDERS_NOTIFY)
    order = _get_order_or_404(order_id)

    try:
        result = dispatcher.send_order_sms_confirmation(order)
    except NoRecipientError as e:
        raise HttpError(400, str(e))
    except SmsDeliveryError as e:
        raise HttpError(502, str(e))

    _audit_notification(request, order, AuditAction.SEND_SMS_CONFIRMATION, result)
    return DispatchOut(message="SMS confirmation sent", phone=result.phone, method=result.method, job_id=result.job_id)
