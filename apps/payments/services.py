"""
Payment bridge between orders and SSLCommerz.

Flow: initiate -> customer pays on the gateway page -> success / fail /
cancel redirect -> IPN. Success and IPN never trust the posted status:
both re-validate the val_id with the gateway and compare the validated
amount and transaction id with the stored order before marking it paid.
"""
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Mapping, Optional
from uuid import UUID

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from apps.audit.audit_service import log_action, diff_fields, snapshot, AuditAction
from apps.orders.models import Order, OrderStatus, PaymentStatus, PaymentMethod
from apps.orders.services import resolve_customer_email, resolve_customer_name
from apps.site_settings.services import get_payment_settings
from .sslcommerz import SSLCommerzClient, PaymentGatewayError, generate_transaction_id, is_valid

logger = logging.getLogger(__name__)

STATUS_FIELDS = ['payment_status', 'order_status']
DEFAULT_POSTCODE = '1000'
COUNTRY = 'Bangladesh'


class PaymentError(Exception):
    """Base error for the payment bridge. code is the checkout error key."""

    def __init__(self, message: str, code: str = 'payment_processing_error'):
        super().__init__(message)
        self.code = code


class PaymentConfigError(PaymentError):
    """Gateway disabled or credentials missing."""

    def __init__(self, message: str):
        super().__init__(message, code='payment_config_error')


class PaymentOrderNotFound(PaymentError):
    def __init__(self, message: str = "Order not found"):
        super().__init__(message, code='order_not_found')


class PaymentValidationError(PaymentError):
    """The gateway did not confirm the payment as claimed."""


def amount_tolerance() -> Decimal:
    return Decimal(str(settings.PAYMENT_AMOUNT_TOLERANCE))


def checkout_redirect(code: str) -> str:
    return f"{settings.SITE_URL.rstrip('/')}/checkout?error={code}"


def order_redirect(order: Order) -> str:
    return f"{settings.SITE_URL.rstrip('/')}/orders/{order.id}?payment=success"


def get_client() -> SSLCommerzClient:
    """
    Build a client from PaymentSettings.

    Raises:
        PaymentConfigError: Credentials are not configured
    """
    payment_settings = get_payment_settings()
    if not payment_settings.has_credentials:
        raise PaymentConfigError("SSLCommerz credentials not configured")
    return SSLCommerzClient.from_settings(payment_settings)


def _record_status_change(order: Order, before: Dict[str, Any], source: str) -> None:
    changes = diff_fields(before, snapshot(order, STATUS_FIELDS))
    if changes:
        log_action(
            actor=None,
            action=AuditAction.PAYMENT_STATUS_CHANGE,
            resource="Order",
            resource_id=order.id,
            changes=changes,
            metadata={
                "order_number": order.order_number,
                "transaction_id": order.transaction_id,
                "source": source,
            },
        )


# =============================================================================
# Initiation
# =============================================================================

def build_payment_payload(order: Order, transaction_id: str, base_url: str) -> Dict[str, str]:
    address = order.shipping_address or {}
    customer_name = resolve_customer_name(order)
    postcode = address.get('postal_code') or DEFAULT_POSTCODE
    callback = f"{base_url.rstrip('/')}/api/payment/sslcommerz"

    return {
        'total_amount': str(order.total),
        'currency': settings.PAYMENT_CURRENCY,
        'tran_id': transaction_id,
        'success_url': f"{callback}/success",
        'fail_url': f"{callback}/fail",
        'cancel_url': f"{callback}/cancel",
        'ipn_url': f"{callback}/ipn",
        'shipping_method': order.get_delivery_type_display(),
        'product_name': f"Order {order.order_number}",
        'product_category': 'E-commerce',
        'product_profile': 'general',
        'cus_name': customer_name,
        'cus_email': resolve_customer_email(order) or '',
        'cus_add1': address.get('street', ''),
        'cus_city': address.get('city', ''),
        'cus_state': address.get('district', ''),
        'cus_postcode': postcode,
        'cus_country': COUNTRY,
        'cus_phone': address.get('phone', ''),
        'ship_name': address.get('name') or customer_name,
        'ship_add1': address.get('street', ''),
        'ship_city': address.get('city', ''),
        'ship_state': address.get('district', ''),
        'ship_postcode': postcode,
        'ship_country': COUNTRY,
        'ship_phone': address.get('phone', ''),
        'value_a': str(order.id),
    }


def initiate_payment(order_id: UUID, base_url: Optional[str] = None, audit_context: Optional[dict] = None) -> Dict[str, str]:
    """
    Open an SSLCommerz session for an order.

    Returns {"payment_url", "transaction_id"}.

    Raises:
        PaymentConfigError: Gateway disabled or not configured
        PaymentOrderNotFound: No such order
        PaymentError: Order already paid
        PaymentGatewayError: Gateway unreachable or refused the session
    """
    payment_settings = get_payment_settings()
    if not payment_settings.gateway_enabled:
        raise PaymentConfigError("Payment gateway is disabled")
    client = get_client()

    order = Order.objects.select_related('customer').filter(id=order_id).first()
    if order is None:
        raise PaymentOrderNotFound()
    if order.payment_status == PaymentStatus.PAID:
        raise PaymentError("Order is already paid", code='already_paid')

    transaction_id = generate_transaction_id()
    payload = build_payment_payload(order, transaction_id, base_url or settings.API_BASE_URL)
    result = client.initiate(payload)

    order.transaction_id = transaction_id
    order.payment_method = PaymentMethod.SSLCOMMERZ
    order.payment_details = {
        **(order.payment_details or {}),
        'transaction_id': transaction_id,
        'gateway_data': result,
        'ipn_received': False,
    }
    order.save(update_fields=['transaction_id', 'payment_method', 'payment_details', 'updated_at'])

    log_action(
        actor=order.customer,
        action=AuditAction.PAYMENT_INITIATED,
        resource="Order",
        resource_id=order.id,
        metadata={"order_number": order.order_number, "transaction_id": transaction_id},
        **(audit_context or {}),
    )
    logger.info(f"Payment session {transaction_id} opened for order {order.order_number}")

    return {"payment_url": result['GatewayPageURL'], "transaction_id": transaction_id}


# =============================================================================
# Validation
# =============================================================================

def check_validation(order: Order, validation: Mapping[str, Any], transaction_id: str) -> None:
    """
    Compare a gateway validation response with the stored order.

    Raises:
        PaymentValidationError: Not valid, transaction id mismatch, or
            amount outside the tolerance
    """
    if not is_valid(validation):
        raise PaymentValidationError(
            f"Gateway reports status {validation.get('status') or 'UNKNOWN'}",
            code='payment_validation_failed',
        )

    if validation.get('tran_id') != transaction_id:
        raise PaymentValidationError("Transaction id mismatch", code='payment_validation_failed')

    try:
        validated_amount = Decimal(str(validation.get('amount')))
    except (InvalidOperation, TypeError):
        raise PaymentValidationError("Validated amount missing", code='amount_mismatch')

    if not validated_amount.is_finite():
        raise PaymentValidationError(
            f"Validated amount {validated_amount} is not a number", code='amount_mismatch',
        )

    if abs(validated_amount - order.total) > amount_tolerance():
        raise PaymentValidationError(
            f"Validated amount {validated_amount} does not match order total {order.total}",
            code='amount_mismatch',
        )


def _mark_paid(order: Order, validation: Mapping[str, Any], val_id: str, source: str) -> None:
    before = snapshot(order, STATUS_FIELDS)
    order.payment_status = PaymentStatus.PAID
    if order.order_status == OrderStatus.PENDING:
        order.order_status = OrderStatus.CONFIRMED
    order.payment_details = {
        **(order.payment_details or {}),
        'validation_id': val_id,
        'card_type': validation.get('card_type'),
        'paid_amount': str(validation.get('amount')),
        'paid_at': timezone.now().isoformat(),
        'validation_data': dict(validation),
    }
    order.save(update_fields=['payment_status', 'order_status', 'payment_details', 'updated_at'])
    _record_status_change(order, before, source)


def _mark_failed(order: Order, reason: str, source: str) -> None:
    """Record a failure. A paid order is never downgraded."""
    order.payment_details = dict(order.payment_details or {})
    if order.payment_status == PaymentStatus.PAID:
        order.save(update_fields=['payment_details', 'updated_at'])
        return

    before = snapshot(order, STATUS_FIELDS)
    order.payment_status = PaymentStatus.FAILED
    order.payment_details['failure_reason'] = reason
    order.payment_details['failed_at'] = timezone.now().isoformat()
    order.save(update_fields=['payment_status', 'payment_details', 'updated_at'])
    _record_status_change(order, before, source)


# =============================================================================
# Callbacks
# =============================================================================

def handle_success(form: Mapping[str, Any]) -> str:
    """
    Customer returned from the gateway with a success claim.

    Returns the storefront URL to redirect to; never raises for gateway
    or validation problems.
    """
    transaction_id = form.get('tran_id')
    val_id = form.get('val_id')
    if not transaction_id or not val_id:
        return checkout_redirect('invalid_transaction')

    try:
        client = get_client()
        validation = client.validate(val_id)
    except PaymentError as e:
        return checkout_redirect(e.code)
    except PaymentGatewayError:
        return checkout_redirect('payment_validation_failed')

    with transaction.atomic():
        order = Order.objects.select_for_update().filter(transaction_id=transaction_id).first()
        if order is None:
            return checkout_redirect('order_not_found')

        try:
            check_validation(order, validation, transaction_id)
        except PaymentValidationError as e:
            logger.warning(f"Rejected success callback for {transaction_id}: {e}")
            return checkout_redirect(e.code)

        if order.payment_status != PaymentStatus.PAID:
            _mark_paid(order, validation, val_id, source='success')

    logger.info(f"Payment {transaction_id} confirmed for order {order.order_number}")
    return order_redirect(order)


def handle_fail(form: Mapping[str, Any]) -> str:
    transaction_id = form.get('tran_id')
    if transaction_id:
        with transaction.atomic():
            order = Order.objects.select_for_update().filter(transaction_id=transaction_id).first()
            if order is not None:
                _mark_failed(order, form.get('error') or 'Payment failed', source='fail')
                logger.info(f"Payment {transaction_id} failed for order {order.order_number}")
    return checkout_redirect('payment_failed')


def handle_cancel(form: Mapping[str, Any]) -> str:
    """Record the cancellation. The order stays payable."""
    transaction_id = form.get('tran_id')
    if transaction_id:
        order = Order.objects.filter(transaction_id=transaction_id).first()
        if order is not None:
            order.payment_details = {
                **(order.payment_details or {}),
                'cancelled_at': timezone.now().isoformat(),
            }
            order.save(update_fields=['payment_details', 'updated_at'])
            logger.info(f"Payment {transaction_id} cancelled for order {order.order_number}")
    return checkout_redirect('payment_cancelled')


def handle_ipn(form: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Server-to-server payment notification.

    The posted status is recorded but never trusted: the val_id is
    re-validated with the gateway and the result decides the outcome.

    Raises:
        PaymentValidationError: Missing ids, or the validated payment does
            not match the order (status is set to failed only when the
            gateway reports this transaction invalid)
        PaymentOrderNotFound: No order carries the transaction id
        PaymentConfigError: Credentials missing
        PaymentGatewayError: Validation request failed
    """
    transaction_id = form.get('tran_id')
    val_id = form.get('val_id')
    if not transaction_id or not val_id:
        raise PaymentValidationError("Invalid IPN data", code='invalid_transaction')

    validation = get_client().validate(val_id)

    with transaction.atomic():
        order = Order.objects.select_for_update().filter(transaction_id=transaction_id).first()
        if order is None:
            raise PaymentOrderNotFound()

        order.payment_details = {
            **(order.payment_details or {}),
            'ipn_received': True,
            'ipn_data': dict(form),
            'validation_data': dict(validation),
        }

        rejection = None
        try:
            check_validation(order, validation, transaction_id)
        except PaymentValidationError as e:
            rejection = e

        if rejection is None and order.payment_status != PaymentStatus.PAID:
            _mark_paid(order, validation, val_id, source='ipn')
        elif (
            rejection is not None
            and not is_valid(validation)
            and validation.get('tran_id') == transaction_id
        ):
            # Only a validation tied to this transaction may fail the order
            _mark_failed(order, f"IPN status: {validation.get('status') or 'UNKNOWN'}", source='ipn')
        else:
            order.save(update_fields=['payment_details', 'updated_at'])

    if rejection is not None:
        logger.warning(f"Rejected IPN for {transaction_id}: {rejection}")
        raise rejection

    logger.info(f"IPN validated payment {transaction_id} for order {order.order_number}")
    return {"success": True, "order_number": order.order_number, "payment_status": order.payment_status}
