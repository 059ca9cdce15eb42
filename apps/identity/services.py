"""Services for Identity app."""
from typing import Optional

from apps.audit.audit_service import log_action, diff_fields, snapshot, AuditAction
from .models import User, UserRole
from .dtos import UserDTO, UserCreate
from .permissions import get_user_permissions

STAFF_ROLES = [UserRole.ADMIN, UserRole.MANAGER, UserRole.STAFF]
AUDITED_FIELDS = ["email", "first_name", "last_name", "role", "phone", "is_active"]


def get_user_dto(user_id) -> UserDTO | None:
    try:
        user = User.objects.get(id=user_id)
    except User.DoesNotExist:
        return None
    return UserDTO(
        id=user.id,
        username=user.username,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        role=user.role,
        phone=user.phone,
        is_active=user.is_active,
        permissions=get_user_permissions(user),
    )


def create_user(payload: UserCreate, actor=None, audit_context: Optional[dict] = None) -> UserDTO:
    user = User.objects.create_user(
        username=payload.username,
        email=payload.email,
        password=payload.password,
        first_name=payload.first_name,
        last_name=payload.last_name,
        role=payload.role,
        phone=payload.phone or "",
        is_active=True
    )
    log_action(
        actor=actor,
        action=AuditAction.CREATE_USER,
        resource="User",
        resource_id=user.id,
        metadata={"username": user.username, "role": user.role},
        **(audit_context or {}),
    )
    return get_user_dto(user.id)


def list_staff_users() -> list[UserDTO]:
    users = User.objects.filter(role__in=STAFF_ROLES)
    return [get_user_dto(u.id) for u in users]


def update_user(user_id, data: dict, actor=None, audit_context: Optional[dict] = None) -> UserDTO | None:
    try:
        user = User.objects.get(id=user_id)
    except User.DoesNotExist:
        return None

    before = snapshot(user, AUDITED_FIELDS)
    for key, value in data.items():
        if value is not None and key in AUDITED_FIELDS:
            setattr(user, key, value)
    user.save()

    changes = diff_fields(before, snapshot(user, AUDITED_FIELDS))
    if changes:
        log_action(
            actor=actor,
            action=AuditAction.UPDATE_USER,
            resource="User",
            resource_id=user.id,
            changes=changes,
            **(audit_context or {}),
        )
    return get_user_dto(user_id)


def soft_delete_user(user_id, actor=None, audit_context: Optional[dict] = None) -> bool:
    try:
        user = User.objects.get(id=user_id)
    except User.DoesNotExist:
        return False

    user.is_active = False  # Soft delete means disabling login
    user.save(update_fields=["is_active"])
    log_action(
        actor=actor,
        action=AuditAction.DEACTIVATE_USER,
        resource="User",
        resource_id=user.id,
        changes=[{"field": "is_active", "old_value": True, "new_value": False}],
        **(audit_context or {}),
    )
    return True
