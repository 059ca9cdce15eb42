"""
Identity API endpoints with JWT authentication.

Provides login, logout, token refresh, and staff user management endpoints.
Uses JWT tokens in httpOnly cookies for stateless authentication.
"""
import os
from typing import List, Optional
from uuid import UUID
from ninja import Router, Schema
from django.conf import settings
from django.http import HttpRequest, HttpResponse
from django.contrib.auth import authenticate
from django.contrib.auth.signals import user_logged_in
from ninja.errors import HttpError

from apps.audit.audit_service import request_context
from .models import User
from .dtos import UserOut, UserCreate, UserUpdate
from .services import get_user_dto, create_user, list_staff_users, update_user, soft_delete_user
from .permissions import Permissions
from .security import require_auth, require_permission
from .jwt_auth import (
    ACCESS_COOKIE,
    REFRESH_COOKIE,
    create_token_pair,
    create_access_token,
    get_user_id_from_token,
    get_access_token_cookie_settings,
    get_refresh_token_cookie_settings,
)

router = Router(tags=["Identity"])


# =============================================================================
# Schemas
# =============================================================================

class LoginSchema(Schema):
    username: str
    password: str


class TokenResponse(Schema):
    success: bool
    user: Optional[UserOut] = None
    message: Optional[str] = None


# =============================================================================
# Helper Functions
# =============================================================================

def is_production() -> bool:
    """Check if running in production (Lambda or DEBUG=False)."""
    return bool(os.getenv('AWS_LAMBDA_FUNCTION_NAME')) or not settings.DEBUG


def _json_response(data: TokenResponse) -> HttpResponse:
    return HttpResponse(data.model_dump_json(), content_type='application/json')


# =============================================================================
# Auth Endpoints
# =============================================================================

@router.post("/login", response=TokenResponse, auth=None)
def login_user(request: HttpRequest, payload: LoginSchema):
    """
    Authenticate user and set JWT tokens in httpOnly cookies.
    """
    user = authenticate(request, username=payload.username, password=payload.password)

    if user is None:
        raise HttpError(401, "Invalid username or password")

    if not user.is_active:
        raise HttpError(401, "Account is disabled")

    access_token, refresh_token = create_token_pair(user.id, user.role)
    user_logged_in.send(sender=user.__class__, request=request, user=user)

    response = _json_response(TokenResponse(success=True, user=get_user_dto(user.id)))

    prod = is_production()
    response.set_cookie(ACCESS_COOKIE, access_token, **get_access_token_cookie_settings(prod))
    response.set_cookie(REFRESH_COOKIE, refresh_token, **get_refresh_token_cookie_settings(prod))

    return response


@router.post("/logout", response=TokenResponse, auth=None)
def logout_user(request: HttpRequest):
    """
    Clear authentication cookies.
    """
    response = _json_response(TokenResponse(success=True, message="Logged out"))
    response.delete_cookie(ACCESS_COOKIE, path='/')
    response.delete_cookie(REFRESH_COOKIE, path='/')
    return response


@router.post("/refresh", response=TokenResponse, auth=None)
def refresh_token(request: HttpRequest):
    """
    Issue a new access token from a valid refresh token cookie.
    """
    refresh_token_value = request.COOKIES.get(REFRESH_COOKIE)
    if not refresh_token_value:
        raise HttpError(401, "No refresh token")

    user_id = get_user_id_from_token(refresh_token_value, token_type='refresh')
    if not user_id:
        raise HttpError(401, "Invalid refresh token")

    try:
        user = User.objects.get(id=user_id, is_active=True)
    except User.DoesNotExist:
        raise HttpError(401, "Invalid refresh token")

    response = _json_response(TokenResponse(success=True, user=get_user_dto(user.id)))
    response.set_cookie(
        ACCESS_COOKIE,
        create_access_token(user.id, user.role),
        **get_access_token_cookie_settings(is_production()),
    )
    return response


@router.get("/me", response=UserOut, auth=None)
def get_me(request: HttpRequest):
    """
    Get current authenticated user's profile.
    """
    user = require_auth(request)
    return get_user_dto(user.id)


# =============================================================================
# Staff User Management Endpoints
# =============================================================================

@router.post("/users", response=UserOut, auth=None)
def create_staff_user(request: HttpRequest, payload: UserCreate):
    """
    Create a new admin panel user.

    Requires IDENTITY_MANAGE_USER permission.
    """
    user = require_permission(request, Permissions.IDENTITY_MANAGE_USER)

    if User.objects.filter(username=payload.username).exists():
        raise HttpError(400, "Username already taken")

    return create_user(payload, actor=user, audit_context=request_context(request))


@router.get("/users", response=List[UserOut], auth=None)
def list_users(request: HttpRequest):
    """
    List admin panel users.

    Requires IDENTITY_VIEW_USER permission.
    """
    require_permission(request, Permissions.IDENTITY_VIEW_USER)
    return list_staff_users()


@router.put("/users/{user_id}", response=UserOut, auth=None)
def update_staff_user(request: HttpRequest, user_id: UUID, payload: UserUpdate):
    """
    Update a user.

    Requires IDENTITY_MANAGE_USER permission.
    """
    user = require_permission(request, Permissions.IDENTITY_MANAGE_USER)

    updated = update_user(
        user_id,
        payload.dict(exclude_unset=True),
        actor=user,
        audit_context=request_context(request),
    )
    if not updated:
        raise HttpError(404, "User not found")

    return updated


@router.delete("/users/{user_id}", response={204: None}, auth=None)
def delete_staff_user(request: HttpRequest, user_id: UUID):
    """
    Soft delete (deactivate) a user.

    Requires IDENTITY_MANAGE_USER permission.
    """
    user = require_permission(request, Permissions.IDENTITY_MANAGE_USER)

    if user.id == user_id:
        raise HttpError(400, "You cannot deactivate your own account")

    if not soft_delete_user(user_id, actor=user, audit_context=request_context(request)):
        raise HttpError(404, "User not found")

    return 204, None
