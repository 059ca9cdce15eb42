"""
Order notification dispatcher.

send_order_confirmation() tries the email provider directly and falls back
to the task queue. Every call ends in exactly one of: sent directly, queued,
or DispatchError carrying both failure messages.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from apps.core.task_service import TaskService, TaskQueueError
from apps.orders.models import Order
from apps.orders.services import (
    resolve_customer_email,
    resolve_customer_phone,
    build_order_email_data,
)
from apps.site_settings.services import get_general_settings
from . import email_client
from .sms_service import send_sms

logger = logging.getLogger(__name__)

METHOD_DIRECT = "direct"
METHOD_QUEUE = "queue"
METHOD_IMMEDIATE = "immediate_processing"
METHOD_BACKGROUND = "background_queue"
METHOD_QUEUE_RETRY = "queue_retry"
METHOD_QUEUE_FALLBACK = "queue_fallback"
METHOD_SMS = "sms"


class NoRecipientError(Exception):
    """Raised when an order has no address to notify."""


class DispatchError(Exception):
    """Raised when every delivery path for a notification failed."""

    def __init__(
        self,
        message: str,
        direct_error: Optional[str] = None,
        queue_error: Optional[str] = None,
        processing_error: Optional[str] = None,
    ):
        super().__init__(message)
        self.direct_error = direct_error
        self.queue_error = queue_error
        self.processing_error = processing_error

    @property
    def details(self) -> dict:
        details = {}
        if self.direct_error is not None:
            details["direct_error"] = self.direct_error
        if self.queue_error is not None:
            details["queue_error"] = self.queue_error
        if self.processing_error is not None:
            details["processing_error"] = self.processing_error
        return details


@dataclass(frozen=True)
class DispatchResult:
    method: str
    email: Optional[str] = None
    job_id: Optional[str] = None
    processed: Optional[bool] = None
    phone: Optional[str] = None
    error: Optional[str] = None


def _require_email(order: Order) -> str:
    email = resolve_customer_email(order)
    if not email:
        raise NoRecipientError("No email address found for this order")
    return email


def confirmation_subject(order: Order) -> str:
    return f"Order Confirmation - {order.order_number} - {get_general_settings().site_name}"


def send_order_confirmation(order: Order) -> DispatchResult:
    """
    Send the order confirmation email, queueing it if direct delivery fails.

    Raises:
        NoRecipientError: The order has no customer or shipping email
        DispatchError: Both direct send and enqueue failed
    """
    email = _require_email(order)
    subject = confirmation_subject(order)
    data = build_order_email_data(order)

    try:
        message_id = email_client.send_order_confirmation(email, data, subject=subject)
        if not message_id:
            raise email_client.EmailDeliveryError("Email provider returned no message id")
        return DispatchResult(method=METHOD_DIRECT, email=email)
    except Exception as e:
        direct_error = str(e) or e.__class__.__name__
        logger.warning(f"Direct confirmation email for {order.order_number} failed: {direct_error}")

    try:
        job_id = TaskService.send_email(
            email_type="order_confirmation",
            to=email,
            subject=subject,
            data=data,
        )
    except Exception as e:
        queue_error = str(e) or e.__class__.__name__
        logger.error(f"Queueing confirmation email for {order.order_number} failed: {queue_error}")
        raise DispatchError(
            "Failed to send confirmation - both direct and queue methods failed",
            direct_error=direct_error,
            queue_error=queue_error,
        ) from e

    logger.info(f"Confirmation email for {order.order_number} queued as {job_id}")
    return DispatchResult(method=METHOD_QUEUE, email=email, job_id=job_id)


def send_invoice(order: Order) -> DispatchResult:
    """
    Queue invoice generation for an order and try to process it right away.

    - Synchronous backend: the invoice is generated inline.
    - Pollable queue (redis): one job is drained immediately. If processing
      fails the job stays queued for retry and the result says so.
    - Other backends: left to their workers.

    Raises:
        NoRecipientError: The order has no customer or shipping email
        DispatchError: The task could not be queued, or inline generation failed
    """
    email = _require_email(order)
    synchronous = TaskService.is_synchronous()

    try:
        job_id = TaskService.generate_invoice(
            order_id=order.id,
            order_number=order.order_number,
            customer_email=email,
        )
    except Exception as e:
        error = str(e) or e.__class__.__name__
        if synchronous and not isinstance(e, TaskQueueError):
            logger.error(f"Invoice generation for {order.order_number} failed: {error}")
            raise DispatchError("Invoice generation failed", processing_error=error) from e
        logger.error(f"Queueing invoice generation for {order.order_number} failed: {error}")
        raise DispatchError("Failed to queue invoice generation", queue_error=error) from e

    if synchronous:
        return DispatchResult(method=METHOD_IMMEDIATE, email=email, job_id=job_id, processed=True)

    try:
        result = TaskService.process_pending(batch_size=1)
    except Exception as e:
        error = str(e) or e.__class__.__name__
        logger.warning(f"Immediate invoice processing for {order.order_number} failed: {error}")
        return DispatchResult(
            method=METHOD_QUEUE_FALLBACK, email=email, job_id=job_id, processed=False, error=error,
        )

    if result and result["processed"]:
        return DispatchResult(method=METHOD_IMMEDIATE, email=email, job_id=job_id, processed=True)
    if result and result["failed"]:
        logger.warning(f"Invoice job {job_id} failed; left queued for retry")
        return DispatchResult(method=METHOD_QUEUE_RETRY, email=email, job_id=job_id, processed=False)
    return DispatchResult(method=METHOD_BACKGROUND, email=email, job_id=job_id, processed=False)


def order_sms_text(order: Order) -> str:
    site_name = get_general_settings().site_name
    return (
        f"{site_name}: your order {order.order_number} is {order.get_order_status_display().lower()}. "
        f"Total {order.total}. Thank you for shopping with us!"
    )


def send_order_sms_confirmation(order: Order) -> DispatchResult:
    """
    Text the order summary to the shipping phone.

    SMS is not queued; a failure is reported to the caller.

    Raises:
        NoRecipientError: No phone number on the order
        SmsDeliveryError: Twilio disabled, unconfigured, or rejected the message
    """
    phone = resolve_customer_phone(order)
    if not phone:
        raise NoRecipientError("No phone number found for this order")

    sid = send_sms(phone, order_sms_text(order))
    return DispatchResult(method=METHOD_SMS, phone=phone, job_id=sid)
