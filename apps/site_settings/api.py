from typing import Any, Dict
from django.http import HttpRequest, HttpResponse
from ninja import Router, Body
from ninja.errors import HttpError

from apps.audit.audit_service import request_context
from apps.identity.permissions import Permissions
from apps.identity.security import require_permission
from . import services
from .services import SettingsError, UnknownSettingsKind

router = Router(tags=["Settings"])
public_router = Router(tags=["Settings"])

# Kinds holding credentials need the manage permission even to read.
RESTRICTED_KINDS = {'payment', 'integrations', 'auth'}
PUBLIC_CACHE_CONTROL = 'public, max-age=300'


def _get_kind_or_404(kind: str):
    try:
        return services.get_settings(kind)
    except UnknownSettingsKind as e:
        raise HttpError(404, str(e))


# =============================================================================
# Admin endpoints
# =============================================================================

@router.get("/{kind}", response=Dict[str, Any], auth=None)
def get_settings(request: HttpRequest, kind: str):
    """
    Read a settings document. Secrets are masked.
    """
    permission = Permissions.SETTINGS_MANAGE if kind in RESTRICTED_KINDS else Permissions.SETTINGS_VIEW
    require_permission(request, permission)
    return services.settings_to_dict(_get_kind_or_404(kind))


@router.put("/{kind}", response=Dict[str, Any], auth=None)
def update_settings(request: HttpRequest, kind: str, payload: Dict[str, Any] = Body(...)):
    """
    Partially update a settings document.
    """
    user = require_permission(request, Permissions.SETTINGS_MANAGE)
    try:
        instance = services.update_settings(
            kind,
            payload,
            actor=user,
            audit_context=request_context(request),
        )
    except UnknownSettingsKind as e:
        raise HttpError(404, str(e))
    except SettingsError as e:
        raise HttpError(400, str(e))
    return services.settings_to_dict(instance)


# =============================================================================
# Public endpoints
# =============================================================================

@public_router.get("/settings/general", response=Dict[str, Any], auth=None)
def get_public_general_settings(request: HttpRequest, response: HttpResponse):
    """Store branding for the storefront."""
    response['Cache-Control'] = PUBLIC_CACHE_CONTROL
    return services.get_public_general_settings()


@public_router.get("/settings/courier", response=Dict[str, Any], auth=None)
def get_public_courier_settings(request: HttpRequest, response: HttpResponse):
    """Delivery charges shown at checkout."""
    response['Cache-Control'] = PUBLIC_CACHE_CONTROL
    return services.get_public_courier_settings()


@public_router.get("/auth-settings", response=Dict[str, Any], auth=None)
def get_public_auth_settings(request: HttpRequest):
    return services.get_public_auth_settings()
