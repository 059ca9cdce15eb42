"""
Centralized audit logging service.

Use log_action() to record any administrative mutation. It is
fire-and-forget: it never raises, so a logging failure can never break
the calling request.

Usage:
    from apps.audit.audit_service import log_action, diff_fields, AuditAction

    before = snapshot(order, ["order_status", "notes"])
    ...mutate and save...
    log_action(
        actor=request.user,
        action=AuditAction.UPDATE_ORDER_STATUS,
        resource="Order",
        resource_id=order.id,
        changes=diff_fields(before, snapshot(order, ["order_status", "notes"])),
        metadata={"order_number": order.order_number},
        **request_context(request),
    )
"""
import logging
from decimal import Decimal
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

from django.db import transaction

from .models import AuditLog

logger = logging.getLogger(__name__)

DEFAULT_IP = '127.0.0.1'
MASK = '********'


class AuditAction:
    """
    Canonical string constants for audit log actions.
    Prevents scattered string literals and typos across apps.
    """
    # ── Orders ────────────────────────────────────────────────────────
    CREATE_ORDER = "CREATE_ORDER"
    UPDATE_ORDER_STATUS = "UPDATE_ORDER_STATUS"
    RESEND_CONFIRMATION = "RESEND_CONFIRMATION"
    SEND_INVOICE = "SEND_INVOICE"
    SEND_SMS_CONFIRMATION = "SEND_SMS_CONFIRMATION"

    # ── Payments ──────────────────────────────────────────────────────
    PAYMENT_INITIATED = "PAYMENT_INITIATED"
    PAYMENT_STATUS_CHANGE = "PAYMENT_STATUS_CHANGE"

    # ── Settings ──────────────────────────────────────────────────────
    UPDATE_SETTINGS = "UPDATE_SETTINGS"

    # ── Identity ──────────────────────────────────────────────────────
    USER_LOGIN = "USER_LOGIN"
    CREATE_USER = "CREATE_USER"
    UPDATE_USER = "UPDATE_USER"
    DEACTIVATE_USER = "DEACTIVATE_USER"


def _json_safe(value: Any) -> Any:
    """Make model values JSON-serialisable for the changes column."""
    if isinstance(value, (Decimal, UUID)):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(v) for v in value]
    return value


def snapshot(instance, fields: Iterable[str]) -> Dict[str, Any]:
    """Capture the current values of the given model fields."""
    return {field: getattr(instance, field) for field in fields}


def diff_fields(
    before: Dict[str, Any],
    after: Dict[str, Any],
    masked: Iterable[str] = (),
) -> List[Dict[str, Any]]:
    """
    Build the field-level change list between two snapshots.

    Fields listed in masked are recorded as changed without their values.
    """
    masked = set(masked)
    changes = []
    for field in after:
        old_value = before.get(field)
        new_value = after[field]
        if old_value == new_value:
            continue
        if field in masked:
            old_value, new_value = MASK, MASK
        changes.append({
            "field": field,
            "old_value": _json_safe(old_value),
            "new_value": _json_safe(new_value),
        })
    return changes


def get_client_ip(request) -> str:
    """First X-Forwarded-For hop, then X-Real-IP, then the socket address."""
    if request is None:
        return DEFAULT_IP

    forwarded = request.headers.get('X-Forwarded-For')
    if forwarded:
        return forwarded.split(',')[0].strip()

    real_ip = request.headers.get('X-Real-IP')
    if real_ip:
        return real_ip.strip()

    return request.META.get('REMOTE_ADDR') or DEFAULT_IP


def request_context(request) -> Dict[str, str]:
    """ip_address / user_agent kwargs for log_action()."""
    if request is None:
        return {"ip_address": DEFAULT_IP, "user_agent": ""}
    return {
        "ip_address": get_client_ip(request),
        "user_agent": request.headers.get('User-Agent', ''),
    }


def log_action(
    *,
    actor,
    action: str,
    resource: str,
    resource_id: Any = None,
    changes: Optional[List[Dict[str, Any]]] = None,
    metadata: Optional[dict] = None,
    ip_address: Optional[str] = None,
    user_agent: str = "",
) -> Optional[AuditLog]:
    """
    Create an AuditLog entry for an administrative action.

    Never raises. Any DB or serialization error is logged and swallowed so
    audit logging never degrades the user-facing request. The insert runs in
    its own savepoint so a failed write leaves the caller's transaction usable.

    Args:
        actor:        User instance, or None for system/gateway actions.
        action:       Action constant from AuditAction.
        resource:     Type of the object acted on (e.g. "Order").
        resource_id:  Primary key or other identifier of the object.
        changes:      Field-level diffs from diff_fields().
        metadata:     Optional dict of additional context.
        ip_address:   Client IP (see get_client_ip()).
        user_agent:   Client user agent.

    Returns:
        The created AuditLog instance, or None if creation failed.
    """
    try:
        if actor is not None and not getattr(actor, 'is_authenticated', False):
            actor = None
        with transaction.atomic():
            return AuditLog.objects.create(
                actor=actor,
                action=action,
                resource=resource,
                resource_id=str(resource_id) if resource_id is not None else "",
                changes=_json_safe(changes or []),
                metadata=_json_safe(metadata or {}),
                ip_address=ip_address,
                user_agent=user_agent or "",
            )
    except Exception:
        logger.exception(f"Failed to write audit log {action} on {resource} {resource_id}")
        return None
