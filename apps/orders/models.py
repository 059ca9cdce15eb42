import uuid
import secrets
from decimal import Decimal
from django.conf import settings
from django.db import models
from django.utils import timezone


class PaymentMethod(models.TextChoices):
    COD = 'cod', 'Cash on Delivery'
    SSLCOMMERZ = 'sslcommerz', 'SSLCommerz'
    BKASH = 'bkash', 'bKash'
    NAGAD = 'nagad', 'Nagad'


class PaymentStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    PAID = 'paid', 'Paid'
    FAILED = 'failed', 'Failed'
    REFUNDED = 'refunded', 'Refunded'


class OrderStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    CONFIRMED = 'confirmed', 'Confirmed'
    PROCESSING = 'processing', 'Processing'
    SHIPPED = 'shipped', 'Shipped'
    DELIVERED = 'delivered', 'Delivered'
    CANCELLED = 'cancelled', 'Cancelled'


class DeliveryType(models.TextChoices):
    INSIDE_DHAKA = 'inside_dhaka', 'Inside Dhaka'
    OUTSIDE_DHAKA = 'outside_dhaka', 'Outside Dhaka'


def generate_order_number() -> str:
    return f"ORD-{timezone.now():%Y%m%d}-{secrets.token_hex(3).upper()}"


class Order(models.Model):
    """
    A customer order.

    payment_status is owned by the payment bridge; admin status updates
    only move order_status.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order_number = models.CharField(max_length=32, unique=True, default=generate_order_number)

    customer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='orders',
        help_text="Null for guest checkout"
    )

    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    tax = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    shipping_cost = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    discount_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))

    payment_method = models.CharField(max_length=20, choices=PaymentMethod.choices, default=PaymentMethod.COD)
    payment_status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
        db_index=True
    )
    order_status = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING,
        db_index=True
    )

    # {name, phone, email, street, city, district, division, postal_code}
    shipping_address = models.JSONField(default=dict)
    delivery_type = models.CharField(max_length=20, choices=DeliveryType.choices, default=DeliveryType.INSIDE_DHAKA)

    notes = models.TextField(blank=True)
    tracking_number = models.CharField(max_length=100, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)

    # Gateway transaction id, kept out of payment_details so callbacks can look it up
    transaction_id = models.CharField(max_length=64, blank=True, db_index=True)
    # {gateway_data, validation_id, card_type, paid_amount, paid_at, failure_reason,
    #  failed_at, cancelled_at, ipn_received, ipn_data, validation_data}
    payment_details = models.JSONField(default=dict, blank=True)

    invoice_url = models.CharField(max_length=500, blank=True)
    invoice_generated = models.BooleanField(default=False)
    invoice_generated_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return self.order_number


class OrderItem(models.Model):
    """A line on an order, priced at the time of purchase."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='items')
    product_name = models.CharField(max_length=255)
    product_ref = models.CharField(max_length=64, blank=True, help_text="Catalogue id of the product")
    unit_price = models.DecimalField(max_digits=12, decimal_places=2)
    quantity = models.PositiveIntegerField(default=1)
    variant = models.JSONField(default=dict, blank=True)
    image = models.CharField(max_length=500, blank=True)

    class Meta:
        ordering = ['product_name']

    def __str__(self):
        return f"{self.product_name} x{self.quantity}"

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity
