"""
Transactional email through the Resend API.

Bodies are rendered from Django templates under notifications/email/ with
store branding from GeneralSettings.
"""
import base64
import logging
from typing import Any, Dict, List, Optional

import resend
from django.conf import settings
from django.template.loader import render_to_string

from apps.site_settings.services import get_general_settings

logger = logging.getLogger(__name__)


class EmailDeliveryError(Exception):
    """Raised when the email provider is unconfigured or rejects a message."""


def _sender() -> str:
    return f"{settings.FROM_NAME} <{settings.RESEND_FROM_EMAIL}>"


def _branding() -> Dict[str, Any]:
    general = get_general_settings()
    return {
        "site_name": general.site_name,
        "site_url": general.site_url or settings.SITE_URL,
        "logo": general.logo1,
        "primary_color": general.primary_color,
        "secondary_color": general.secondary_color,
        "contact_email": general.contact_email,
        "contact_phone": general.contact_phone,
        "address": general.address,
        "currency": general.currency,
    }


def render_email(template: str, data: Dict[str, Any]) -> str:
    context = {**_branding(), **data}
    return render_to_string(f"notifications/email/{template}", context)


def send_email(
    to: str,
    subject: str,
    html: str,
    attachments: Optional[List[Dict[str, Any]]] = None,
) -> str:
    """
    Send a single message and return the provider message id.

    attachments: [{"filename": ..., "content": bytes}]

    Raises:
        EmailDeliveryError: No API key, provider error, or no message id
    """
    if not settings.RESEND_API_KEY:
        raise EmailDeliveryError("Resend API key is not configured")

    params: Dict[str, Any] = {
        "from": _sender(),
        "to": [to],
        "subject": subject,
        "html": html,
    }
    if attachments:
        params["attachments"] = [
            {
                "filename": a["filename"],
                "content": base64.b64encode(a["content"]).decode("ascii")
                if isinstance(a["content"], bytes) else a["content"],
            }
            for a in attachments
        ]

    resend.api_key = settings.RESEND_API_KEY
    try:
        response = resend.Emails.send(params)
    except Exception as e:
        raise EmailDeliveryError(f"Resend rejected message to {to}: {e}") from e

    message_id = response.get("id") if isinstance(response, dict) else getattr(response, "id", None)
    if not message_id:
        raise EmailDeliveryError(f"Resend returned no message id: {response}")

    logger.info(f"Email '{subject}' sent to {to} (id={message_id})")
    return message_id


def send_order_confirmation(to: str, data: Dict[str, Any], subject: Optional[str] = None) -> str:
    """data is the payload from orders.services.build_order_email_data()."""
    subject = subject or f"Order Confirmation - {data['order_number']} - {get_general_settings().site_name}"
    return send_email(to, subject, render_email("order_confirmation.html", data))


def send_invoice_email(
    to: str,
    data: Dict[str, Any],
    attachment: Optional[Dict[str, Any]] = None,
    subject: Optional[str] = None,
) -> str:
    subject = subject or f"Invoice for Order {data['order_number']} - {get_general_settings().site_name}"
    return send_email(
        to,
        subject,
        render_email("invoice.html", data),
        attachments=[attachment] if attachment else None,
    )


def send_new_order_alert(order_number: str, total: str) -> Optional[str]:
    """Notify the store admin. Returns None when no admin address is set."""
    admin_email = settings.ADMIN_EMAIL or get_general_settings().contact_email
    if not admin_email:
        return None

    site_name = get_general_settings().site_name
    html = render_email("new_order_alert.html", {"order_number": order_number, "total": total})
    return send_email(admin_email, f"[{site_name}] New order {order_number}", html)


EMAIL_SENDERS = {
    "order_confirmation": send_order_confirmation,
    "invoice": send_invoice_email,
}


def send_by_type(email_type: str, to: str, subject: str, data: Dict[str, Any]) -> str:
    """Entry point for queued send_email jobs."""
    sender = EMAIL_SENDERS.get(email_type)
    if sender is None:
        raise ValueError(f"Unknown email type: {email_type}")
    return sender(to, data, subject=subject)
