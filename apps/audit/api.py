import math
from typing import Literal
from uuid import UUID
from datetime import timedelta
from django.shortcuts import get_object_or_404
from django.db.models import Q
from django.utils import timezone
from ninja import Router

from apps.identity.permissions import Permissions
from apps.identity.security import has_permission
from .models import AuditLog
from .dtos import AuditLogOut, AuditLogPageOut, ActorOut

router = Router(tags=["Audit"])

DATE_RANGES = {
    '1d': timedelta(days=1),
    '7d': timedelta(days=7),
    '30d': timedelta(days=30),
    '90d': timedelta(days=90),
}
MAX_PAGE_SIZE = 200


def _serialize_log(log: AuditLog) -> AuditLogOut:
    """Convert an AuditLog model instance to its output schema."""
    actor = None
    if log.actor_id:
        actor = ActorOut(
            id=log.actor.id,
            name=log.actor.display_name,
            email=log.actor.email,
            role=log.actor.role,
        )

    return AuditLogOut(
        id=log.id,
        action=log.action,
        resource=log.resource,
        resource_id=log.resource_id,
        actor=actor,
        changes=log.changes,
        metadata=log.metadata,
        ip_address=log.ip_address,
        user_agent=log.user_agent,
        created_at=log.created_at,
    )


@router.get("/audit-logs", response=AuditLogPageOut, auth=None)
@has_permission(Permissions.AUDIT_VIEW)
def list_audit_logs(
    request,
    page: int = 1,
    limit: int = 50,
    action: str = "",
    resource: str = "",
    user: str = "",
    date_range: str = "7d",
    sort_order: Literal["asc", "desc"] = "desc",
):
    """
    List audit log entries, newest first by default.
    Filters: action, resource, actor name/email substring, date range
    (1d, 7d, 30d, 90d or all).
    """
    page = max(1, page)
    limit = max(1, min(limit, MAX_PAGE_SIZE))

    qs = AuditLog.objects.select_related("actor")

    if action and action != 'all':
        qs = qs.filter(action=action)
    if resource and resource != 'all':
        qs = qs.filter(resource=resource)
    if user:
        qs = qs.filter(
            Q(actor__first_name__icontains=user)
            | Q(actor__last_name__icontains=user)
            | Q(actor__email__icontains=user)
            | Q(actor__username__icontains=user)
        )
    if date_range in DATE_RANGES:
        qs = qs.filter(created_at__gte=timezone.now() - DATE_RANGES[date_range])

    qs = qs.order_by('created_at' if sort_order == 'asc' else '-created_at')

    total = qs.count()
    offset = (page - 1) * limit
    logs = [_serialize_log(log) for log in qs[offset:offset + limit]]

    return {
        "logs": logs,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": math.ceil(total / limit),
        },
    }


@router.get("/audit-logs/{log_id}", response=AuditLogOut, auth=None)
@has_permission(Permissions.AUDIT_VIEW)
def get_audit_log(request, log_id: UUID):
    """Retrieve a single audit log entry by ID."""
    log = get_object_or_404(AuditLog.objects.select_related("actor"), id=log_id)
    return _serialize_log(log)
