"""
Tests for the audit trail.

Covers:
1. log_action() and diff_fields() helpers
2. Immutability of stored entries
3. GET /api/audit-logs list and detail endpoints
"""
from unittest.mock import patch
from uuid import uuid4
from decimal import Decimal

from django.test import TestCase, Client, RequestFactory
from django.contrib.auth import get_user_model

from apps.identity.models import UserRole
from apps.audit.models import AuditLog, AuditLogImmutableError
from apps.audit.audit_service import (
    log_action, diff_fields, get_client_ip, request_context, AuditAction, MASK,
)


User = get_user_model()


def make_user(role=UserRole.ADMIN, username=None):
    username = username or f"user_{uuid4().hex[:8]}"
    return User.objects.create_user(
        username=username,
        email=f"{username}@test.com",
        password="testpass123",
        role=role,
    )


class AuditServiceTest(TestCase):

    def setUp(self):
        self.user = make_user()

    def test_log_action_creates_entry(self):
        order_id = uuid4()
        log = log_action(
            actor=self.user,
            action=AuditAction.UPDATE_ORDER_STATUS,
            resource="Order",
            resource_id=order_id,
            changes=[{"field": "order_status", "old_value": "pending", "new_value": "shipped"}],
            metadata={"total": Decimal("1250.00")},
            ip_address="10.0.0.1",
            user_agent="pytest",
        )
        self.assertIsNotNone(log)
        self.assertEqual(log.actor, self.user)
        self.assertEqual(log.resource_id, str(order_id))
        self.assertEqual(log.metadata["total"], "1250.00")
        self.assertEqual(log.ip_address, "10.0.0.1")

    def test_log_action_never_raises(self):
        with patch.object(AuditLog.objects, 'create', side_effect=RuntimeError("db down")):
            result = log_action(
                actor=self.user,
                action=AuditAction.UPDATE_SETTINGS,
                resource="PaymentSettings",
            )
        self.assertIsNone(result)

    def test_system_actions_have_no_actor(self):
        log = log_action(actor=None, action=AuditAction.PAYMENT_STATUS_CHANGE, resource="Order")
        self.assertIsNone(log.actor)
        self.assertEqual(log.resource_id, "")

    def test_entries_cannot_be_modified(self):
        log = log_action(actor=self.user, action=AuditAction.CREATE_ORDER, resource="Order")
        log.action = "SOMETHING_ELSE"
        with self.assertRaises(AuditLogImmutableError):
            log.save()
        with self.assertRaises(AuditLogImmutableError):
            log.delete()

    def test_diff_fields_skips_unchanged_and_masks_secrets(self):
        changes = diff_fields(
            {"site_name": "Old", "currency": "BDT", "sslcommerz_store_password": "a"},
            {"site_name": "New", "currency": "BDT", "sslcommerz_store_password": "b"},
            masked=["sslcommerz_store_password"],
        )
        self.assertEqual(changes, [
            {"field": "site_name", "old_value": "Old", "new_value": "New"},
            {"field": "sslcommerz_store_password", "old_value": MASK, "new_value": MASK},
        ])


class ClientIpTest(TestCase):

    def setUp(self):
        self.factory = RequestFactory()

    def test_forwarded_for_first_hop(self):
        request = self.factory.get('/', HTTP_X_FORWARDED_FOR="203.0.113.5, 10.0.0.1")
        self.assertEqual(get_client_ip(request), "203.0.113.5")

    def test_real_ip_header(self):
        request = self.factory.get('/', HTTP_X_REAL_IP="198.51.100.7")
        self.assertEqual(get_client_ip(request), "198.51.100.7")

    def test_no_request(self):
        self.assertEqual(request_context(None), {"ip_address": "127.0.0.1", "user_agent": ""})


class AuditLogAPITest(TestCase):

    def setUp(self):
        self.client = Client()
        self.admin = make_user(UserRole.ADMIN, username="boss")
        self.staff = make_user(UserRole.STAFF)

        for _ in range(3):
            log_action(actor=self.admin, action=AuditAction.UPDATE_SETTINGS, resource="GeneralSettings")
        log_action(actor=self.staff, action=AuditAction.UPDATE_ORDER_STATUS, resource="Order")

    def test_requires_auth(self):
        response = self.client.get('/api/audit-logs')
        self.assertEqual(response.status_code, 401)

    def test_requires_audit_permission(self):
        self.client.force_login(self.staff)
        response = self.client.get('/api/audit-logs')
        self.assertEqual(response.status_code, 403)

    def test_filter_by_action_and_paginate(self):
        self.client.force_login(self.admin)
        response = self.client.get('/api/audit-logs', {
            "action": AuditAction.UPDATE_SETTINGS,
            "limit": 2,
            "page": 2,
        })
        self.assertEqual(response.status_code, 200)

        data = response.json()
        self.assertEqual(data["pagination"], {"page": 2, "limit": 2, "total": 3, "pages": 2})
        self.assertEqual(len(data["logs"]), 1)
        self.assertEqual(data["logs"][0]["actor"]["email"], "boss@test.com")

    def test_filter_by_resource(self):
        self.client.force_login(self.admin)
        response = self.client.get('/api/audit-logs', {"resource": "Order"})
        data = response.json()
        self.assertEqual(data["pagination"]["total"], 1)
        self.assertEqual(data["logs"][0]["action"], AuditAction.UPDATE_ORDER_STATUS)

    def test_detail(self):
        log = AuditLog.objects.filter(resource="Order").first()
        self.client.force_login(self.admin)
        response = self.client.get(f'/api/audit-logs/{log.id}')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["resource"], "Order")

    def test_detail_not_found(self):
        self.client.force_login(self.admin)
        response = self.client.get(f'/api/audit-logs/{uuid4()}')
        self.assertEqual(response.status_code, 404)
