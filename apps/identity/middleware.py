import logging
from django.utils.deprecation import MiddlewareMixin

from .jwt_auth import ACCESS_COOKIE, get_user_id_from_token
from .models import User

logger = logging.getLogger(__name__)


class JWTAuthenticationMiddleware(MiddlewareMixin):
    """
    Resolves request.user from the access_token cookie.

    Runs after AuthenticationMiddleware: a session user (admin site,
    tests using force_login) always wins. Invalid or expired tokens
    leave the anonymous user in place.
    """

    def process_request(self, request):
        if hasattr(request, 'user') and request.user.is_authenticated:
            return

        token = request.COOKIES.get(ACCESS_COOKIE)
        if not token:
            return

        user_id = get_user_id_from_token(token)
        if not user_id:
            logger.debug("Ignoring invalid access token cookie")
            return

        try:
            request.user = User.objects.get(id=user_id, is_active=True)
        except User.DoesNotExist:
            logger.warning(f"Access token for unknown or inactive user {user_id}")
