import uuid
from django.db import models


class AuditLogImmutableError(Exception):
    """Raised when code tries to edit or delete an existing audit entry."""


class AuditLog(models.Model):
    """
    Append-only audit trail for administrative mutations.
    Keeps a record of who did what, to which resource, and what changed.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    actor = models.ForeignKey(
        'identity.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='audit_logs'
    )
    action = models.CharField(max_length=50, help_text="Action performed (e.g., UPDATE_ORDER_STATUS)")
    resource = models.CharField(max_length=50, help_text="Type of object acted on (e.g., Order)")
    resource_id = models.CharField(max_length=64, blank=True, help_text="ID of the object acted on")

    # Field-level diffs: [{"field": ..., "old_value": ..., "new_value": ...}]
    changes = models.JSONField(default=list, blank=True)
    metadata = models.JSONField(default=dict, blank=True, help_text="Additional context/metadata")

    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['actor', '-created_at'], name='audit_actor_created_idx'),
            models.Index(fields=['resource', 'resource_id', '-created_at'], name='audit_resource_created_idx'),
        ]
        verbose_name = "Audit Log"
        verbose_name_plural = "Audit Logs"

    def __str__(self):
        return f"{self.action} on {self.resource} by {self.actor}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise AuditLogImmutableError("Audit log entries cannot be modified")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise AuditLogImmutableError("Audit log entries cannot be deleted")
