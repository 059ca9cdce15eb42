"""
TaskService - Abstraction layer for async task execution.

This module provides a platform-agnostic interface for executing background tasks.
The actual backend is determined by the TASK_BACKEND environment variable.

Usage:
    from apps.core.task_service import TaskService

    # Queue an order confirmation email
    TaskService.send_email(
        email_type="order_confirmation",
        to="customer@example.com",
        subject="Order Confirmation - ORD-1001",
        data={...},
    )

    # Queue invoice generation
    TaskService.generate_invoice(order_id=uuid, order_number="ORD-1001")

Environment Configuration:
    TASK_BACKEND=local   # Sync execution (development)
    TASK_BACKEND=redis   # Redis list queue drained by a worker
    TASK_BACKEND=lambda  # AWS Lambda + SQS (production)
    TASK_BACKEND=celery  # Celery + Redis
"""

import os
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional
from uuid import UUID

logger = logging.getLogger(__name__)


class TaskQueueError(Exception):
    """Raised when a task cannot be handed to the configured backend."""


class TaskServiceInterface(ABC):
    """
    Abstract interface for async task execution.

    Implementations:
    - LocalTaskService: Sync execution for development/testing
    - RedisTaskService: Redis list queue
    - LambdaTaskService: AWS Lambda + SQS
    - CeleryTaskService: Celery + Redis
    """

    #: True when send_task runs the handler before returning.
    synchronous = False

    @abstractmethod
    def send_task(
        self,
        task_name: str,
        payload: Dict[str, Any],
        delay_seconds: int = 0,
    ) -> str:
        """
        Queue a task for async execution.

        Args:
            task_name: Identifier for the task handler
            payload: Data to pass to the task
            delay_seconds: Delay before execution (0 = immediate)

        Returns:
            Task ID for tracking
        """
        pass

    def process_jobs(self, batch_size: int = 10) -> Optional[Dict[str, int]]:
        """
        Drain up to batch_size queued jobs in this process.

        Returns {"processed": n, "failed": m}, or None for backends whose
        jobs are consumed elsewhere (Celery workers, SQS-triggered Lambdas)
        or run inline.
        """
        return None


def get_backend_name() -> str:
    return os.getenv('TASK_BACKEND', 'local')


def _get_backend() -> TaskServiceInterface:
    """Get the configured task backend based on TASK_BACKEND env var."""
    backend = get_backend_name()

    if backend == 'local':
        from apps.core.backends.local_backend import LocalTaskService
        return LocalTaskService()
    elif backend == 'redis':
        from apps.core.backends.redis_backend import RedisTaskService
        return RedisTaskService()
    elif backend == 'lambda':
        from apps.core.backends.lambda_backend import LambdaTaskService
        return LambdaTaskService()
    elif backend == 'celery':
        from apps.core.backends.celery_backend import CeleryTaskService
        return CeleryTaskService()
    else:
        raise ValueError(f"Unknown TASK_BACKEND: {backend}")


class TaskService:
    """
    Facade for sending async tasks.

    This class provides static methods for each task type,
    delegating to the configured backend.
    """

    @staticmethod
    def is_synchronous() -> bool:
        """True when the configured backend executes tasks inline."""
        return _get_backend().synchronous

    @staticmethod
    def process_pending(batch_size: int = 1) -> Optional[Dict[str, int]]:
        """Drain queued jobs now where the backend supports it."""
        return _get_backend().process_jobs(batch_size=batch_size)

    @staticmethod
    def send_email(
        email_type: str,
        to: str,
        subject: str,
        data: Dict[str, Any],
    ) -> str:
        """
        Queue a transactional email.

        Used by: Notification dispatcher when direct delivery fails.
        """
        logger.info(f"Queueing send_email task ({email_type}) for {to}")
        return _get_backend().send_task(
            task_name="send_email",
            payload={
                "email_type": email_type,
                "to": to,
                "subject": subject,
                "data": data,
            },
        )

    @staticmethod
    def generate_invoice(
        order_id: UUID,
        order_number: str,
        customer_email: Optional[str] = None,
    ) -> str:
        """
        Queue invoice PDF generation and delivery.

        Used by: Admin "send invoice" action.
        """
        logger.info(f"Queueing generate_invoice task for order {order_number}")
        return _get_backend().send_task(
            task_name="generate_invoice",
            payload={
                "order_id": str(order_id),
                "order_number": order_number,
                "customer_email": customer_email,
            },
        )

    @staticmethod
    def new_order_notification(order_id: UUID, order_number: str, total: str) -> str:
        """
        Queue the admin "new order" alert.

        Used by: Order creation.
        """
        logger.info(f"Queueing new_order_notification for order {order_number}")
        return _get_backend().send_task(
            task_name="new_order_notification",
            payload={
                "order_id": str(order_id),
                "order_number": order_number,
                "total": total,
            },
        )
