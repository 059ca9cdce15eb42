from decimal import Decimal
from django.db import models


def default_location():
    return {"address": "", "latitude": 0, "longitude": 0, "formatted_address": ""}


def default_social_links():
    return {"facebook": "", "youtube": "", "instagram": "", "tiktok": ""}


def default_sender_info():
    return {"name": "", "phone": "", "address": "", "division": "", "district": ""}


def default_delivery_charges():
    return {
        "regular_within_dhaka": 60,
        "regular_outside_dhaka": 120,
        "express_within_dhaka": 100,
        "express_outside_dhaka": 150,
        "same_day_within_dhaka": 150,
        "fragile_handling_charge": 20,
    }


def default_courier_partners():
    return ["steadfast"]


class SingletonSettings(models.Model):
    """
    Base for store-wide settings documents.
    Exactly one row per table, created with defaults on first read.
    """
    SINGLETON_PK = 1

    # Fields never returned in full by the API
    SECRET_FIELDS: tuple = ()

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        self.pk = self.SINGLETON_PK
        if self._state.adding and self.created_at is None:
            # Overwriting the stored row keeps its creation time
            self.created_at = (
                type(self).objects.filter(pk=self.pk).values_list('created_at', flat=True).first()
            )
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        # Singletons are reset by editing, never removed
        pass

    @classmethod
    def load(cls):
        obj, _ = cls.objects.get_or_create(pk=cls.SINGLETON_PK)
        return obj


class GeneralSettings(SingletonSettings):
    """Store identity and branding."""
    PUBLIC_FIELDS = (
        'site_name', 'site_description', 'site_url', 'contact_email', 'contact_phone',
        'address', 'logo1', 'logo2', 'favicon', 'primary_color', 'secondary_color',
        'location', 'social_links', 'currency', 'timezone', 'language',
    )

    site_name = models.CharField(max_length=255, default='Storefront')
    site_description = models.CharField(max_length=500, default='Your Trusted Online Shopping Destination')
    site_url = models.CharField(max_length=255, blank=True, default='')
    contact_email = models.CharField(max_length=255, blank=True, default='')
    contact_phone = models.CharField(max_length=50, blank=True, default='')
    contact_person = models.CharField(max_length=255, blank=True, default='')
    address = models.TextField(blank=True, default='')
    logo1 = models.CharField(max_length=500, blank=True, default='')
    logo2 = models.CharField(max_length=500, blank=True, default='')
    favicon = models.CharField(max_length=500, blank=True, default='')
    primary_color = models.CharField(max_length=20, default='#3949AB')
    secondary_color = models.CharField(max_length=20, default='#10b981')
    location = models.JSONField(default=default_location, blank=True)
    social_links = models.JSONField(default=default_social_links, blank=True)
    currency = models.CharField(max_length=10, default='BDT')
    timezone = models.CharField(max_length=64, default='Asia/Dhaka')
    language = models.CharField(max_length=10, default='en')

    class Meta:
        verbose_name = "General Settings"
        verbose_name_plural = "General Settings"

    def __str__(self):
        return self.site_name


class PaymentSettings(SingletonSettings):
    """SSLCommerz credentials and enabled payment methods."""
    SECRET_FIELDS = ('sslcommerz_store_password',)

    gateway_enabled = models.BooleanField(default=False)
    sslcommerz_store_id = models.CharField(max_length=255, blank=True, default='')
    sslcommerz_store_password = models.CharField(max_length=255, blank=True, default='')
    sslcommerz_sandbox = models.BooleanField(default=True)
    cod_enabled = models.BooleanField(default=True)

    class Meta:
        verbose_name = "Payment Settings"
        verbose_name_plural = "Payment Settings"

    @property
    def has_credentials(self) -> bool:
        return bool(self.sslcommerz_store_id and self.sslcommerz_store_password)


class CourierSettings(SingletonSettings):
    """Delivery charges and courier defaults."""
    sender_info = models.JSONField(default=default_sender_info, blank=True)
    delivery_charges = models.JSONField(default=default_delivery_charges, blank=True)
    cod_charge_rate = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('1.00'))
    weight_based_charging = models.BooleanField(default=True)
    free_delivery_threshold = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('1000.00'))
    default_courier_partners = models.JSONField(default=default_courier_partners, blank=True)

    class Meta:
        verbose_name = "Courier Settings"
        verbose_name_plural = "Courier Settings"


class IntegrationSettings(SingletonSettings):
    """Credentials for third-party media, SMS and email providers."""
    SECRET_FIELDS = (
        'cloudinary_api_secret',
        'twilio_auth_token',
        'zamanit_api_key',
        'smtp_password',
    )

    cloudinary_enabled = models.BooleanField(default=True)
    cloudinary_cloud_name = models.CharField(max_length=255, blank=True, default='')
    cloudinary_api_key = models.CharField(max_length=255, blank=True, default='')
    cloudinary_api_secret = models.CharField(max_length=255, blank=True, default='')

    twilio_enabled = models.BooleanField(default=False)
    twilio_account_sid = models.CharField(max_length=255, blank=True, default='')
    twilio_auth_token = models.CharField(max_length=255, blank=True, default='')
    twilio_phone_number = models.CharField(max_length=50, blank=True, default='')

    zamanit_enabled = models.BooleanField(default=True)
    zamanit_api_key = models.CharField(max_length=255, blank=True, default='')
    zamanit_sender_id = models.CharField(max_length=50, blank=True, default='')
    zamanit_base_url = models.CharField(max_length=255, default='http://45.120.38.242/api/sendsms')

    email_enabled = models.BooleanField(default=True)
    email_provider = models.CharField(max_length=20, default='smtp')
    smtp_host = models.CharField(max_length=255, blank=True, default='')
    smtp_port = models.PositiveIntegerField(default=587)
    smtp_user = models.CharField(max_length=255, blank=True, default='')
    smtp_password = models.CharField(max_length=255, blank=True, default='')

    class Meta:
        verbose_name = "Integration Settings"
        verbose_name_plural = "Integration Settings"


class AuthSettings(SingletonSettings):
    """Customer sign-in options."""
    google_auth_enabled = models.BooleanField(default=False)
    facebook_auth_enabled = models.BooleanField(default=False)
    email_auth_enabled = models.BooleanField(default=True)
    otp_auth_enabled = models.BooleanField(default=True)
    password_min_length = models.PositiveSmallIntegerField(default=8)
    require_email_verification = models.BooleanField(default=False)
    allow_self_registration = models.BooleanField(default=True)

    class Meta:
        verbose_name = "Auth Settings"
        verbose_name_plural = "Auth Settings"
