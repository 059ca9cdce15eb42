"""
Queue endpoints.

`/queue/status` is for staff dashboards. `/queue/process` is hit by an
external scheduler and authenticates with the CRON_SECRET bearer token.
"""
import hmac
from typing import Any, Dict

from django.conf import settings
from django.http import HttpRequest
from ninja import Router
from ninja.errors import HttpError

from apps.identity.permissions import Permissions
from apps.identity.security import has_permission
from .task_service import get_backend_name

router = Router(tags=["Queue"])


def _redis_service():
    from apps.core.backends.redis_backend import RedisTaskService
    return RedisTaskService()


def _check_cron_secret(request: HttpRequest) -> None:
    secret = getattr(settings, 'CRON_SECRET', '')
    header = request.headers.get('Authorization', '')
    if not secret or not hmac.compare_digest(header, f"Bearer {secret}"):
        raise HttpError(401, "Unauthorized")


@router.get("/status", response=Dict[str, Any], auth=None)
@has_permission(Permissions.QUEUE_VIEW)
def queue_status(request: HttpRequest):
    """Pending and failed job counts for the configured backend."""
    backend = get_backend_name()
    if backend != 'redis':
        return {"backend": backend}
    return {"backend": backend, **_redis_service().queue_status()}


@router.api_operation(["GET", "POST"], "/process", response=Dict[str, Any], auth=None)
def process_queue(request: HttpRequest, batch_size: int = 10):
    """Drain one batch of the Redis queue."""
    _check_cron_secret(request)

    if get_backend_name() != 'redis':
        raise HttpError(400, "Queue processing requires TASK_BACKEND=redis")

    result = _redis_service().process_jobs(batch_size=max(1, min(batch_size, 100)))
    return {"success": True, **result}
