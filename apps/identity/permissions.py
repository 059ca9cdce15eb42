from typing import List, Dict
from .models import UserRole, User

# Define all available permissions here for reference
class Permissions:
    # Orders
    ORDERS_VIEW = "orders.view"
    ORDERS_MANAGE = "orders.manage"
    ORDERS_NOTIFY = "orders.notify"

    # Store settings
    SETTINGS_VIEW = "settings.view"
    SETTINGS_MANAGE = "settings.manage"

    # Audit trail
    AUDIT_VIEW = "audit.view"

    # Background queue
    QUEUE_VIEW = "queue.view"

    # Identity
    IDENTITY_VIEW_USER = "identity.view_user"
    IDENTITY_MANAGE_USER = "identity.manage_user"


# Static Role -> Permission Mapping
ROLE_PERMISSIONS: Dict[str, List[str]] = {
    UserRole.ADMIN: [
        # Orders - Full access
        Permissions.ORDERS_VIEW,
        Permissions.ORDERS_MANAGE,
        Permissions.ORDERS_NOTIFY,
        # Settings
        Permissions.SETTINGS_VIEW,
        Permissions.SETTINGS_MANAGE,
        # Audit
        Permissions.AUDIT_VIEW,
        # Queue
        Permissions.QUEUE_VIEW,
        # Identity
        Permissions.IDENTITY_VIEW_USER,
        Permissions.IDENTITY_MANAGE_USER,
    ],
    UserRole.MANAGER: [
        # Orders - Full access
        Permissions.ORDERS_VIEW,
        Permissions.ORDERS_MANAGE,
        Permissions.ORDERS_NOTIFY,
        # Settings - Read only
        Permissions.SETTINGS_VIEW,
        # Queue
        Permissions.QUEUE_VIEW,
        # Identity
        Permissions.IDENTITY_VIEW_USER,
    ],
    UserRole.STAFF: [
        # Orders - Day-to-day fulfilment
        Permissions.ORDERS_VIEW,
        Permissions.ORDERS_MANAGE,
        Permissions.ORDERS_NOTIFY,
    ],
    UserRole.CUSTOMER: [
        # Customers only see their own orders
        # This is enforced at the service level, not here
    ],
}

def get_user_permissions(user: User) -> List[str]:
    """
    Returns a list of permission strings for the given user based on their role.
    """
    if not user or not user.is_active:
        return []

    return ROLE_PERMISSIONS.get(user.role, [])
