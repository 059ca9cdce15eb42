from django.contrib.auth.signals import user_logged_in
from django.dispatch import receiver

from apps.audit.audit_service import log_action, request_context, AuditAction


@receiver(user_logged_in)
def log_user_login(sender, user, request, **kwargs):
    """
    Log user login events to the Audit Log.
    """
    if user is None:
        return

    log_action(
        actor=user,
        action=AuditAction.USER_LOGIN,
        resource="User",
        resource_id=user.id,
        metadata={"username": user.username, "role": user.role},
        **request_context(request),
    )
