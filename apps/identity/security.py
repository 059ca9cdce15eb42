from functools import wraps
from typing import Callable
from django.http import HttpRequest
from ninja.errors import HttpError
from .permissions import get_user_permissions


def require_auth(request: HttpRequest):
    """Require authenticated user."""
    if not request.user.is_authenticated:
        raise HttpError(401, "Authentication required")
    return request.user


def require_permission(request: HttpRequest, permission: str):
    """Require a specific permission. Returns the user."""
    user = require_auth(request)
    perms = get_user_permissions(user)
    if permission not in perms:
        raise HttpError(403, f"Permission denied: {permission}")
    return user


def has_permission(required_perm: str):
    """
    Decorator to enforce a specific permission on a Django Ninja endpoint.

    Usage:
        @router.get("/some-path")
        @has_permission(Permissions.SOME_PERM)
        def my_view(request):
            ...
    """
    def decorator(view_func: Callable):
        @wraps(view_func)
        def wrapper(request: HttpRequest, *args, **kwargs):
            require_permission(request, required_perm)
            return view_func(request, *args, **kwargs)
        return wrapper
    return decorator
