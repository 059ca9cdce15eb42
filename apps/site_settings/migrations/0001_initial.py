from decimal import Decimal

from django.db import migrations, models

import apps.site_settings.models


def _timestamps():
    return [
        ('created_at', models.DateTimeField(auto_now_add=True)),
        ('updated_at', models.DateTimeField(auto_now=True)),
    ]


def _id():
    return ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID'))


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='GeneralSettings',
            fields=[
                _id(),
                *_timestamps(),
                ('site_name', models.CharField(default='Storefront', max_length=255)),
                ('site_description', models.CharField(default='Your Trusted Online Shopping Destination', max_length=500)),
                ('site_url', models.CharField(blank=True, default='', max_length=255)),
                ('contact_email', models.CharField(blank=True, default='', max_length=255)),
                ('contact_phone', models.CharField(blank=True, default='', max_length=50)),
                ('contact_person', models.CharField(blank=True, default='', max_length=255)),
                ('address', models.TextField(blank=True, default='')),
                ('logo1', models.CharField(blank=True, default='', max_length=500)),
                ('logo2', models.CharField(blank=True, default='', max_length=500)),
                ('favicon', models.CharField(blank=True, default='', max_length=500)),
                ('primary_color', models.CharField(default='#3949AB', max_length=20)),
                ('secondary_color', models.CharField(default='#10b981', max_length=20)),
                ('location', models.JSONField(blank=True, default=apps.site_settings.models.default_location)),
                ('social_links', models.JSONField(blank=True, default=apps.site_settings.models.default_social_links)),
                ('currency', models.CharField(default='BDT', max_length=10)),
                ('timezone', models.CharField(default='Asia/Dhaka', max_length=64)),
                ('language', models.CharField(default='en', max_length=10)),
            ],
            options={
                'verbose_name': 'General Settings',
                'verbose_name_plural': 'General Settings',
            },
        ),
        migrations.CreateModel(
            name='PaymentSettings',
            fields=[
                _id(),
                *_timestamps(),
                ('gateway_enabled', models.BooleanField(default=False)),
                ('sslcommerz_store_id', models.CharField(blank=True, default='', max_length=255)),
                ('sslcommerz_store_password', models.CharField(blank=True, default='', max_length=255)),
                ('sslcommerz_sandbox', models.BooleanField(default=True)),
                ('cod_enabled', models.BooleanField(default=True)),
            ],
            options={
                'verbose_name': 'Payment Settings',
                'verbose_name_plural': 'Payment Settings',
            },
        ),
        migrations.CreateModel(
            name='CourierSettings',
            fields=[
                _id(),
                *_timestamps(),
                ('sender_info', models.JSONField(blank=True, default=apps.site_settings.models.default_sender_info)),
                ('delivery_charges', models.JSONField(blank=True, default=apps.site_settings.models.default_delivery_charges)),
                ('cod_charge_rate', models.DecimalField(decimal_places=2, default=Decimal('1.00'), max_digits=5)),
                ('weight_based_charging', models.BooleanField(default=True)),
                ('free_delivery_threshold', models.DecimalField(decimal_places=2, default=Decimal('1000.00'), max_digits=12)),
                ('default_courier_partners', models.JSONField(blank=True, default=apps.site_settings.models.default_courier_partners)),
            ],
            options={
                'verbose_name': 'Courier Settings',
                'verbose_name_plural': 'Courier Settings',
            },
        ),
        migrations.CreateModel(
            name='IntegrationSettings',
            fields=[
                _id(),
                *_timestamps(),
                ('cloudinary_enabled', models.BooleanField(default=True)),
                ('cloudinary_cloud_name', models.CharField(blank=True, default='', max_length=255)),
                ('cloudinary_api_key', models.CharField(blank=True, default='', max_length=255)),
                ('cloudinary_api_secret', models.CharField(blank=True, default='', max_length=255)),
                ('twilio_enabled', models.BooleanField(default=False)),
                ('twilio_account_sid', models.CharField(blank=True, default='', max_length=255)),
                ('twilio_auth_token', models.CharField(blank=True, default='', max_length=255)),
                ('twilio_phone_number', models.CharField(blank=True, default='', max_length=50)),
                ('zamanit_enabled', models.BooleanField(default=True)),
                ('zamanit_api_key', models.CharField(blank=True, default='', max_length=255)),
                ('zamanit_sender_id', models.CharField(blank=True, default='', max_length=50)),
                ('zamanit_base_url', models.CharField(default='http://45.120.38.242/api/sendsms', max_length=255)),
                ('email_enabled', models.BooleanField(default=True)),
                ('email_provider', models.CharField(default='smtp', max_length=20)),
                ('smtp_host', models.CharField(blank=True, default='', max_length=255)),
                ('smtp_port', models.PositiveIntegerField(default=587)),
                ('smtp_user', models.CharField(blank=True, default='', max_length=255)),
                ('smtp_password', models.CharField(blank=True, default='', max_length=255)),
            ],
            options={
                'verbose_name': 'Integration Settings',
                'verbose_name_plural': 'Integration Settings',
            },
        ),
        migrations.CreateModel(
            name='AuthSettings',
            fields=[
                _id(),
                *_timestamps(),
                ('google_auth_enabled', models.BooleanField(default=False)),
                ('facebook_auth_enabled', models.BooleanField(default=False)),
                ('email_auth_enabled', models.BooleanField(default=True)),
                ('otp_auth_enabled', models.BooleanField(default=True)),
                ('password_min_length', models.PositiveSmallIntegerField(default=8)),
                ('require_email_verification', models.BooleanField(default=False)),
                ('allow_self_registration', models.BooleanField(default=True)),
            ],
            options={
                'verbose_name': 'Auth Settings',
                'verbose_name_plural': 'Auth Settings',
            },
        ),
    ]
