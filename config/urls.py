"""
URL configuration for the storefront backend.
"""
import logging

from django.contrib import admin
from django.urls import path
from django.conf import settings
from django.conf.urls.static import static
from ninja import NinjaAPI

from apps.notifications.dispatcher import DispatchError

logger = logging.getLogger(__name__)

api = NinjaAPI(
    title="Storefront API",
    version="1.0.0",
    description="Order, payment and notification backend for the storefront",
    docs_url="/docs",
)


@api.exception_handler(DispatchError)
def dispatch_failed(request, exc: DispatchError):
    return api.create_response(
        request,
        {"error": str(exc), "details": exc.details},
        status=500,
    )


@api.exception_handler(Exception)
def unhandled_error(request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.path}: {exc}")
    return api.create_response(request, {"error": "Internal server error"}, status=500)


from apps.identity.api import router as identity_router
from apps.audit.api import router as audit_router
from apps.site_settings.api import router as settings_router, public_router as public_settings_router
from apps.orders.api import router as orders_router, admin_router as admin_orders_router
from apps.payments.api import router as payments_router
from apps.address.api import router as address_router
from apps.core.api import router as queue_router

api.add_router("/identity/", identity_router)
api.add_router("/", audit_router)
api.add_router("/admin/settings/", settings_router)
api.add_router("/", public_settings_router)
api.add_router("/orders/", orders_router)
api.add_router("/admin/orders/", admin_orders_router)
api.add_router("/payment/", payments_router)
api.add_router("/address/", address_router)
api.add_router("/queue/", queue_router)

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/', api.urls),
]

# Serve media files in development
if settings.DEBUG:
    urlpatterns += static(
        getattr(settings, 'MEDIA_URL', '/media/'),
        document_root=getattr(settings, 'MEDIA_ROOT', settings.BASE_DIR / 'media')
    )
