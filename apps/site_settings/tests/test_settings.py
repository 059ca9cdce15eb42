"""
Tests for the settings store: singleton behaviour, masking of secrets,
audited partial updates and the public endpoints.
"""
import json
from unittest.mock import patch
from decimal import Decimal
from uuid import uuid4

from django.test import TestCase, Client
from django.contrib.auth import get_user_model

from apps.audit.audit_service import AuditAction, MASK
from apps.audit.models import AuditLog
from apps.identity.models import UserRole
from apps.site_settings import services
from apps.site_settings.models import GeneralSettings, PaymentSettings, CourierSettings
from apps.site_settings.services import SettingsError, UnknownSettingsKind


User = get_user_model()


def make_user(role=UserRole.ADMIN):
    username = f"user_{uuid4().hex[:8]}"
    return User.objects.create_user(
        username=username,
        email=f"{username}@test.com",
        password="testpass123",
        role=role,
    )


class SingletonTest(TestCase):

    def test_first_read_creates_defaults(self):
        self.assertFalse(GeneralSettings.objects.exists())
        general = services.get_general_settings()
        self.assertEqual(general.site_name, 'Storefront')
        self.assertEqual(general.currency, 'BDT')
        self.assertEqual(GeneralSettings.objects.count(), 1)

    def test_repeated_reads_share_one_row(self):
        first = services.get_payment_settings()
        second = services.get_settings('payment')
        self.assertEqual(first.pk, second.pk)
        self.assertEqual(PaymentSettings.objects.count(), 1)

    def test_saving_new_instance_overwrites_singleton(self):
        original = services.get_general_settings()
        GeneralSettings(site_name='Other').save()
        self.assertEqual(GeneralSettings.objects.count(), 1)
        stored = services.get_general_settings()
        self.assertEqual(stored.site_name, 'Other')
        self.assertEqual(stored.created_at, original.created_at)

    def test_saving_new_instance_without_stored_row(self):
        GeneralSettings(site_name='Fresh').save()
        stored = GeneralSettings.objects.get()
        self.assertEqual(stored.site_name, 'Fresh')
        self.assertIsNotNone(stored.created_at)

    def test_delete_is_ignored(self):
        general = services.get_general_settings()
        general.delete()
        self.assertEqual(GeneralSettings.objects.count(), 1)

    def test_unknown_kind(self):
        with self.assertRaises(UnknownSettingsKind):
            services.get_settings('shipping')

    def test_courier_defaults(self):
        courier = services.get_courier_settings()
        self.assertEqual(courier.delivery_charges['regular_within_dhaka'], 60)
        self.assertEqual(courier.free_delivery_threshold, Decimal('1000.00'))
        self.assertEqual(courier.default_courier_partners, ['steadfast'])


class UpdateSettingsTest(TestCase):

    def setUp(self):
        self.admin = make_user()

    def test_partial_update_ignores_unknown_keys(self):
        instance = services.update_settings(
            'general',
            {'site_name': 'Dhaka Mart', 'not_a_field': 'x'},
            actor=self.admin,
        )
        self.assertEqual(instance.site_name, 'Dhaka Mart')
        self.assertEqual(instance.currency, 'BDT')

    def test_update_is_audited_with_diff(self):
        services.update_settings('general', {'site_name': 'Dhaka Mart'}, actor=self.admin)
        log = AuditLog.objects.get(action=AuditAction.UPDATE_SETTINGS)
        self.assertEqual(log.resource, 'GeneralSettings')
        self.assertEqual(log.metadata, {'kind': 'general'})
        self.assertEqual(log.changes, [
            {'field': 'site_name', 'old_value': 'Storefront', 'new_value': 'Dhaka Mart'},
        ])

    def test_no_change_writes_no_audit_entry(self):
        services.update_settings('general', {'site_name': 'Storefront'}, actor=self.admin)
        self.assertFalse(AuditLog.objects.filter(action=AuditAction.UPDATE_SETTINGS).exists())

    def test_secret_changes_are_masked_in_audit(self):
        services.update_settings(
            'payment',
            {'sslcommerz_store_id': 'store1', 'sslcommerz_store_password': 'hunter2'},
            actor=self.admin,
        )
        log = AuditLog.objects.get(action=AuditAction.UPDATE_SETTINGS)
        password_change = next(c for c in log.changes if c['field'] == 'sslcommerz_store_password')
        self.assertEqual(password_change['old_value'], MASK)
        self.assertEqual(password_change['new_value'], MASK)
        self.assertNotIn('hunter2', json.dumps(log.changes))

    def test_mask_placeholder_keeps_stored_secret(self):
        services.update_settings('payment', {'sslcommerz_store_password': 'hunter2'})
        services.update_settings('payment', {'sslcommerz_store_password': MASK, 'sslcommerz_sandbox': False})
        payment = services.get_payment_settings()
        self.assertEqual(payment.sslcommerz_store_password, 'hunter2')
        self.assertFalse(payment.sslcommerz_sandbox)

    def test_settings_to_dict_masks_secrets(self):
        services.update_settings('payment', {'sslcommerz_store_password': 'hunter2'})
        data = services.settings_to_dict(services.get_payment_settings())
        self.assertEqual(data['sslcommerz_store_password'], MASK)

    def test_json_documents_are_merged(self):
        services.update_settings('courier', {'delivery_charges': {'regular_within_dhaka': 80}})
        charges = services.get_courier_settings().delivery_charges
        self.assertEqual(charges['regular_within_dhaka'], 80)
        self.assertEqual(charges['regular_outside_dhaka'], 120)

    def test_decimal_values_are_coerced(self):
        services.update_settings('courier', {'free_delivery_threshold': '1500.50'})
        courier = CourierSettings.objects.get()
        self.assertEqual(courier.free_delivery_threshold, Decimal('1500.50'))

    def test_invalid_values_rejected(self):
        with self.assertRaises(SettingsError):
            services.update_settings('courier', {'default_courier_partners': []})
        with self.assertRaises(SettingsError):
            services.update_settings('auth', {'password_min_length': 3})
        with self.assertRaises(SettingsError):
            services.update_settings('courier', {'free_delivery_threshold': 'abc'})

    def test_public_payment_settings_require_credentials(self):
        services.update_settings('payment', {'gateway_enabled': True})
        self.assertFalse(services.get_public_payment_settings()['gateway_enabled'])

        services.update_settings('payment', {'sslcommerz_store_id': 's', 'sslcommerz_store_password': 'p'})
        self.assertTrue(services.get_public_payment_settings()['gateway_enabled'])


class SettingsAPITest(TestCase):

    def setUp(self):
        self.client = Client()
        self.admin = make_user(UserRole.ADMIN)
        self.manager = make_user(UserRole.MANAGER)
        self.staff = make_user(UserRole.STAFF)

    def test_admin_reads_payment_settings_masked(self):
        services.update_settings('payment', {'sslcommerz_store_password': 'hunter2'})
        self.client.force_login(self.admin)
        response = self.client.get('/api/admin/settings/payment')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['sslcommerz_store_password'], MASK)

    def test_manager_can_read_general_but_not_payment(self):
        self.client.force_login(self.manager)
        self.assertEqual(self.client.get('/api/admin/settings/general').status_code, 200)
        self.assertEqual(self.client.get('/api/admin/settings/payment').status_code, 403)

    def test_staff_cannot_read_settings(self):
        self.client.force_login(self.staff)
        self.assertEqual(self.client.get('/api/admin/settings/general').status_code, 403)

    def test_unknown_kind_returns_404(self):
        self.client.force_login(self.admin)
        self.assertEqual(self.client.get('/api/admin/settings/shipping').status_code, 404)

    def test_put_updates_and_audits(self):
        self.client.force_login(self.admin)
        response = self.client.put(
            '/api/admin/settings/general',
            data=json.dumps({'site_name': 'Dhaka Mart'}),
            content_type='application/json',
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['site_name'], 'Dhaka Mart')

        log = AuditLog.objects.get(action=AuditAction.UPDATE_SETTINGS)
        self.assertEqual(log.actor, self.admin)

    def test_put_succeeds_when_audit_write_fails(self):
        self.client.force_login(self.admin)
        with patch.object(AuditLog.objects, 'create', side_effect=RuntimeError("audit table locked")):
            response = self.client.put(
                '/api/admin/settings/general',
                data=json.dumps({'site_name': 'Dhaka Mart'}),
                content_type='application/json',
            )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(services.get_general_settings().site_name, 'Dhaka Mart')

    def test_put_rejects_invalid_value(self):
        self.client.force_login(self.admin)
        response = self.client.put(
            '/api/admin/settings/auth',
            data=json.dumps({'password_min_length': 2}),
            content_type='application/json',
        )
        self.assertEqual(response.status_code, 400)

    def test_manager_cannot_update(self):
        self.client.force_login(self.manager)
        response = self.client.put(
            '/api/admin/settings/general',
            data=json.dumps({'site_name': 'X'}),
            content_type='application/json',
        )
        self.assertEqual(response.status_code, 403)

    def test_public_general_settings_are_cacheable(self):
        response = self.client.get('/api/settings/general')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response['Cache-Control'], 'public, max-age=300')
        self.assertEqual(response.json()['site_name'], 'Storefront')
        self.assertNotIn('contact_person', response.json())

    def test_public_payment_settings(self):
        response = self.client.get('/api/payment/settings')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {'gateway_enabled': False, 'cod_enabled': True, 'sandbox': True})

    def test_public_auth_settings(self):
        response = self.client.get('/api/auth-settings')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['password_min_length'], 8)
