"""
Celery tasks for Notifications app.

Thin wrappers over the shared handler registry so every backend runs the
same code.
"""
import logging
from celery import shared_task

from apps.core.backends.local_backend import run_handler

logger = logging.getLogger(__name__)


@shared_task(bind=True, max_retries=3, default_retry_delay=60)
def send_email_task(self, email_type: str, to: str, subject: str, data: dict):
    try:
        return run_handler("send_email", {
            "email_type": email_type,
            "to": to,
            "subject": subject,
            "data": data,
        })
    except Exception as exc:
        logger.warning(f"[CELERY] send_email to {to} failed, retrying: {exc}")
        raise self.retry(exc=exc)


@shared_task(bind=True, max_retries=3, default_retry_delay=60)
def generate_invoice_task(self, order_id: str, order_number: str = "", customer_email=None):
    try:
        return run_handler("generate_invoice", {
            "order_id": order_id,
            "order_number": order_number,
            "customer_email": customer_email,
        })
    except LookupError:
        logger.error(f"[CELERY] Order {order_id} not found, dropping invoice task")
        raise
    except Exception as exc:
        logger.warning(f"[CELERY] Invoice for {order_number or order_id} failed, retrying: {exc}")
        raise self.retry(exc=exc)


@shared_task
def new_order_notification_task(order_id: str, order_number: str, total: str):
    return run_handler("new_order_notification", {
        "order_id": order_id,
        "order_number": order_number,
        "total": total,
    })
