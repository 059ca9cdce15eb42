"""
Local Task Backend - Synchronous execution for development.

This backend executes tasks immediately in the same process.
No Redis, SQS, or external dependencies required.

The TASK_HANDLERS registry defined here is shared by every consumer:
the Redis queue worker and the Lambda SQS handler look tasks up in it too.

Usage:
    Set TASK_BACKEND=local in your .env file.
"""

import uuid
import logging
from typing import Any, Dict
from apps.core.task_service import TaskServiceInterface

logger = logging.getLogger(__name__)


# Task handler registry - maps task names to handler functions
TASK_HANDLERS = {}


def register_handler(task_name: str):
    """Decorator to register a task handler."""
    def decorator(func):
        TASK_HANDLERS[task_name] = func
        return func
    return decorator


def run_handler(task_name: str, payload: Dict[str, Any]):
    """
    Run the registered handler for task_name.

    Raises:
        LookupError: If no handler is registered for the task
    """
    handler = TASK_HANDLERS.get(task_name)
    if handler is None:
        raise LookupError(f"No handler registered for task: {task_name}")
    return handler(**payload)


class LocalTaskService(TaskServiceInterface):
    """
    Execute tasks synchronously in the same process.

    This is ideal for:
    - Local development without Docker/Redis
    - Unit testing with immediate execution
    - Debugging task logic

    Note: Tasks run in the same request cycle, so they block
    the response. A failing handler propagates to the caller.
    """

    synchronous = True

    def send_task(
        self,
        task_name: str,
        payload: Dict[str, Any],
        delay_seconds: int = 0,
    ) -> str:
        """Execute task synchronously."""
        task_id = str(uuid.uuid4())

        logger.info(f"[LOCAL] Executing task {task_name} (id={task_id})")

        if delay_seconds > 0:
            logger.warning(
                f"[LOCAL] delay_seconds={delay_seconds} ignored in local backend"
            )

        try:
            result = run_handler(task_name, payload)
            logger.info(f"[LOCAL] Task {task_name} completed: {result}")
        except Exception as e:
            logger.exception(f"[LOCAL] Task {task_name} failed: {e}")
            raise

        return task_id


# =============================================================================
# Task Handlers - Import and register actual task implementations
# =============================================================================

@register_handler("send_email")
def handle_send_email(email_type: str, to: str, subject: str, data: dict):
    """Deliver a queued transactional email."""
    from apps.notifications import email_client

    message_id = email_client.send_by_type(email_type, to, subject, data)
    return f"Sent {email_type} email to {to} (id={message_id})"


@register_handler("generate_invoice")
def handle_generate_invoice(order_id: str, order_number: str = "", customer_email=None):
    """Generate, store and email an order invoice."""
    from uuid import UUID
    from apps.notifications.invoice_service import generate_and_send_invoice

    invoice_url = generate_and_send_invoice(UUID(order_id), customer_email=customer_email)
    return f"Generated invoice for {order_number or order_id}: {invoice_url}"


@register_handler("new_order_notification")
def handle_new_order_notification(order_id: str, order_number: str, total: str):
    """Alert the store admin about a new order."""
    from apps.notifications import email_client

    message_id = email_client.send_new_order_alert(order_number, total)
    if message_id is None:
        return f"Skipped new order alert for {order_number}: no admin email"
    return f"Sent new order alert for {order_number} (id={message_id})"
