"""
Invoice generation service.
Renders the invoice template with WeasyPrint, stores the PDF through the
default storage backend (local media or S3) and emails it to the customer.
"""
import logging
from io import BytesIO
from typing import Optional
from uuid import UUID

from django.core.files.base import ContentFile
from django.core.files.storage import default_storage
from django.template.loader import render_to_string
from django.utils import timezone

from apps.orders.models import Order
from apps.orders.services import (
    get_order,
    resolve_customer_email,
    resolve_customer_name,
    format_address,
    build_order_email_data,
)
from apps.site_settings.services import get_general_settings
from . import email_client

logger = logging.getLogger(__name__)

INVOICE_DIR = "invoices"


def _get_weasyprint():
    """Lazy import WeasyPrint to avoid import errors if not installed."""
    try:
        from weasyprint import HTML
        return HTML
    except ImportError:
        logger.error("WeasyPrint is not installed. Install with: pip install weasyprint")
        raise ImportError(
            "WeasyPrint is required for PDF generation. "
            "Install it with: pip install weasyprint"
        )


def invoice_filename(order: Order) -> str:
    return f"invoice-{order.order_number}.pdf"


def generate_invoice_pdf(order: Order) -> bytes:
    """
    Render an order invoice as PDF.

    Returns:
        PDF file as bytes
    """
    HTML = _get_weasyprint()
    general = get_general_settings()

    context = {
        'order': order,
        'items': list(order.items.all()),
        'customer_name': resolve_customer_name(order),
        'shipping_address': format_address(order.shipping_address or {}),
        'site_name': general.site_name,
        'address': general.address,
        'contact_email': general.contact_email,
        'contact_phone': general.contact_phone,
        'primary_color': general.primary_color,
        'currency': general.currency,
        'generated_at': timezone.now().strftime('%B %d, %Y at %I:%M %p'),
    }
    html_content = render_to_string('notifications/invoice.html', context)

    pdf_file = BytesIO()
    HTML(string=html_content).write_pdf(pdf_file)
    pdf_file.seek(0)

    return pdf_file.read()


def store_invoice(order: Order, pdf: bytes) -> str:
    """Save the PDF and return its public URL."""
    path = f"{INVOICE_DIR}/{invoice_filename(order)}"
    if default_storage.exists(path):
        default_storage.delete(path)
    saved_path = default_storage.save(path, ContentFile(pdf))
    return default_storage.url(saved_path)


def generate_and_send_invoice(order_id: UUID, customer_email: Optional[str] = None) -> str:
    """
    Generate, store and email the invoice for an order.

    Returns the invoice URL. Raises LookupError if the order is gone;
    email failures propagate so the queue can retry the job.
    """
    order = get_order(order_id)
    if order is None:
        raise LookupError(f"Order {order_id} not found")

    pdf = generate_invoice_pdf(order)
    invoice_url = store_invoice(order, pdf)

    order.invoice_url = invoice_url
    order.invoice_generated = True
    order.invoice_generated_at = timezone.now()
    order.save(update_fields=['invoice_url', 'invoice_generated', 'invoice_generated_at', 'updated_at'])
    logger.info(f"Invoice stored for order {order.order_number}: {invoice_url}")

    recipient = customer_email or resolve_customer_email(order)
    if recipient:
        data = build_order_email_data(order)
        data['invoice_url'] = invoice_url
        email_client.send_invoice_email(
            recipient,
            data,
            attachment={"filename": invoice_filename(order), "content": pdf},
        )
    else:
        logger.warning(f"Invoice for {order.order_number} generated but no email address to send it to")

    return invoice_url
