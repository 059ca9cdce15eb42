"""
Payment API endpoints.

The success/fail/cancel callbacks are browser redirects from SSLCommerz
(POST, occasionally GET) and answer with a redirect to the storefront.
The IPN endpoint is called server-to-server and answers JSON.
"""
from typing import Any, Dict
from uuid import UUID
from django.http import HttpRequest, HttpResponseRedirect
from ninja import Router, Schema
from ninja.errors import HttpError

from apps.audit.audit_service import request_context
from apps.identity.permissions import Permissions, get_user_permissions
from apps.orders.services import get_order
from apps.site_settings.services import get_public_payment_settings
from . import services
from .services import PaymentError, PaymentConfigError, PaymentOrderNotFound
from .sslcommerz import PaymentGatewayError

router = Router(tags=["Payments"])


class PaymentSettingsOut(Schema):
    gateway_enabled: bool
    cod_enabled: bool
    sandbox: bool


class InitiateIn(Schema):
    order_id: UUID


class InitiateOut(Schema):
    success: bool
    payment_url: str
    transaction_id: str


def _form(request: HttpRequest) -> Dict[str, Any]:
    data = request.POST if request.method == 'POST' else request.GET
    return data.dict()


@router.get("/settings", response=PaymentSettingsOut, auth=None)
def payment_settings(request: HttpRequest):
    """Payment options shown at checkout."""
    return get_public_payment_settings()


@router.post("/sslcommerz/initiate", response=InitiateOut, auth=None)
def initiate_payment(request: HttpRequest, payload: InitiateIn):
    """
    Open a gateway session for an order and return the payment page URL.
    """
    order = get_order(payload.order_id)
    if order is None:
        raise HttpError(404, "Order not found")

    # Guest orders are payable by anyone holding the id
    if order.customer_id and order.customer_id != getattr(request.user, 'id', None):
        if Permissions.ORDERS_MANAGE not in get_user_permissions(request.user):
            raise HttpError(404, "Order not found")

    try:
        result = services.initiate_payment(order.id, audit_context=request_context(request))
    except PaymentOrderNotFound:
        raise HttpError(404, "Order not found")
    except PaymentError as e:
        raise HttpError(400, str(e))
    except PaymentGatewayError as e:
        raise HttpError(502, str(e))

    return {"success": True, **result}


@router.api_operation(["GET", "POST"], "/sslcommerz/success", auth=None, include_in_schema=False)
def payment_success(request: HttpRequest):
    return HttpResponseRedirect(services.handle_success(_form(request)))


@router.api_operation(["GET", "POST"], "/sslcommerz/fail", auth=None, include_in_schema=False)
def payment_fail(request: HttpRequest):
    return HttpResponseRedirect(services.handle_fail(_form(request)))


@router.api_operation(["GET", "POST"], "/sslcommerz/cancel", auth=None, include_in_schema=False)
def payment_cancel(request: HttpRequest):
    return HttpResponseRedirect(services.handle_cancel(_form(request)))


@router.post("/sslcommerz/ipn", auth=None)
def payment_ipn(request: HttpRequest):
    """
    Instant Payment Notification from SSLCommerz.
    """
    try:
        return services.handle_ipn(_form(request))
    except PaymentOrderNotFound:
        raise HttpError(404, "Order not found")
    except PaymentConfigError as e:
        raise HttpError(400, str(e))
    except PaymentError as e:
        raise HttpError(400, f"Payment validation failed: {e}")
    except PaymentGatewayError as e:
        raise HttpError(502, str(e))
