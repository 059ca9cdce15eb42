"""Celery tasks for Core app."""
import logging
from celery import shared_task

from .task_service import get_backend_name

logger = logging.getLogger(__name__)


@shared_task
def process_queue_task(batch_size: int = 10):
    """
    Drain the Redis job queue.

    Scheduled every minute by beat; a no-op for other backends.
    """
    if get_backend_name() != 'redis':
        return "Skipped: TASK_BACKEND is not redis"

    from .backends.redis_backend import RedisTaskService
    result = RedisTaskService().process_jobs(batch_size=batch_size)
    return f"Processed {result['processed']} jobs, {result['failed']} failed"
