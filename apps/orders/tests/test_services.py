"""
Unit tests for order services: pricing, placement, listing and status changes.
"""
from decimal import Decimal
from unittest.mock import patch
from uuid import uuid4

from django.test import TestCase
from django.contrib.auth import get_user_model

from apps.audit.audit_service import AuditAction
from apps.audit.models import AuditLog
from apps.identity.models import UserRole
from apps.notifications.dispatcher import DispatchError, DispatchResult
from apps.orders import services
from apps.orders.models import Order, OrderStatus, PaymentStatus, DeliveryType
from apps.orders.schemas import OrderCreate


User = get_user_model()


def order_payload(unit_price="250.00", quantity=2, delivery_type="inside_dhaka", email="buyer@test.com"):
    return OrderCreate(**{
        "items": [
            {"product_name": "Cotton Panjabi", "unit_price": unit_price, "quantity": quantity},
        ],
        "shipping_address": {
            "name": "Rahim Uddin",
            "phone": "01711000000",
            "email": email,
            "street": "House 12, Road 5",
            "city": "Dhaka",
            "district": "Dhaka",
        },
        "delivery_type": delivery_type,
    })


@patch('apps.orders.services.notify_new_order')
class PlaceOrderTest(TestCase):

    def test_totals(self, mock_notify):
        order = services.place_order(order_payload())

        self.assertEqual(order.subtotal, Decimal('500.00'))
        self.assertEqual(order.tax, Decimal('25'))
        self.assertEqual(order.shipping_cost, Decimal('60.00'))
        self.assertEqual(order.total, Decimal('585.00'))
        self.assertEqual(order.items.count(), 1)
        self.assertEqual(order.payment_status, PaymentStatus.PENDING)
        self.assertEqual(order.order_status, OrderStatus.PENDING)
        self.assertTrue(order.order_number.startswith('ORD-'))
        mock_notify.assert_called_once_with(order)

    def test_outside_dhaka_shipping(self, mock_notify):
        order = services.place_order(order_payload(delivery_type=DeliveryType.OUTSIDE_DHAKA))
        self.assertEqual(order.shipping_cost, Decimal('120.00'))

    def test_free_delivery_at_threshold(self, mock_notify):
        order = services.place_order(order_payload(unit_price="500.00", quantity=2))
        self.assertEqual(order.shipping_cost, Decimal('0.00'))
        self.assertEqual(order.total, Decimal('1050.00'))

    def test_tax_rounds_to_whole_units(self, mock_notify):
        order = services.place_order(order_payload(unit_price="99.00", quantity=1))
        # 4.95 rounds half up
        self.assertEqual(order.tax, Decimal('5'))

    def test_guest_order_and_audit(self, mock_notify):
        order = services.place_order(order_payload(), customer=None)
        self.assertIsNone(order.customer)

        log = AuditLog.objects.get(action=AuditAction.CREATE_ORDER)
        self.assertEqual(log.resource_id, str(order.id))
        self.assertIsNone(log.actor)


class NotifyNewOrderTest(TestCase):

    def setUp(self):
        with patch('apps.orders.services.notify_new_order'):
            self.order = services.place_order(order_payload())

    @patch('apps.core.task_service.TaskService.new_order_notification')
    @patch('apps.notifications.dispatcher.send_order_confirmation')
    def test_confirmation_and_admin_alert(self, mock_confirm, mock_alert):
        mock_confirm.return_value = DispatchResult(method="direct", email="buyer@test.com")

        services.notify_new_order(self.order)

        mock_confirm.assert_called_once_with(self.order)
        mock_alert.assert_called_once_with(self.order.id, self.order.order_number, str(self.order.total))

    @patch('apps.core.task_service.TaskService.new_order_notification', side_effect=RuntimeError("queue down"))
    @patch('apps.notifications.dispatcher.send_order_confirmation')
    def test_notification_failures_are_swallowed(self, mock_confirm, mock_alert):
        mock_confirm.side_effect = DispatchError("both failed", direct_error="a", queue_error="b")

        services.notify_new_order(self.order)

        mock_alert.assert_called_once()

    def test_place_order_survives_unconfigured_email(self):
        # No Resend key and no admin address: every notification path fails or is skipped
        order = services.place_order(order_payload())
        self.assertTrue(Order.objects.filter(id=order.id).exists())


class ListOrdersTest(TestCase):

    def setUp(self):
        with patch('apps.orders.services.notify_new_order'):
            self.first = services.place_order(order_payload())
            self.second = services.place_order(order_payload(email=None))
        Order.objects.filter(id=self.second.id).update(order_status=OrderStatus.SHIPPED)

    def test_filter_by_status(self):
        result = services.list_orders(status=OrderStatus.SHIPPED)
        self.assertEqual([o.id for o in result["orders"]], [self.second.id])
        self.assertEqual(result["pagination"], {"page": 1, "limit": 20, "total": 1, "pages": 1})

    def test_search_by_order_number(self):
        result = services.list_orders(search=self.first.order_number)
        self.assertEqual(result["pagination"]["total"], 1)

    def test_pagination(self):
        result = services.list_orders(limit=1, page=2, sort_order="asc")
        self.assertEqual(result["orders"][0].id, self.second.id)
        self.assertEqual(result["pagination"]["pages"], 2)

    def test_lookup_by_number_is_case_insensitive(self):
        found = services.get_order_by_number(self.first.order_number.lower())
        self.assertEqual(found.id, self.first.id)


class UpdateOrderStatusTest(TestCase):

    def setUp(self):
        self.staff = User.objects.create_user(
            username='staff_test', email='staff@test.com', password='testpass123', role=UserRole.STAFF,
        )
        with patch('apps.orders.services.notify_new_order'):
            self.order = services.place_order(order_payload())

    def test_delivered_sets_timestamp_and_audits(self):
        order = services.update_order_status(
            self.order.id,
            OrderStatus.DELIVERED,
            tracking_number="STD-123",
            actor=self.staff,
        )
        self.assertIsNotNone(order.delivered_at)
        self.assertEqual(order.payment_status, PaymentStatus.PENDING)

        log = AuditLog.objects.get(action=AuditAction.UPDATE_ORDER_STATUS)
        self.assertEqual(log.actor, self.staff)
        fields = {c["field"] for c in log.changes}
        self.assertEqual(fields, {"order_status", "tracking_number", "delivered_at"})

    def test_invalid_status(self):
        with self.assertRaises(services.InvalidOrderStatus):
            services.update_order_status(self.order.id, "lost")

    def test_missing_order(self):
        self.assertIsNone(services.update_order_status(uuid4(), OrderStatus.SHIPPED))


class CustomerResolutionTest(TestCase):

    def test_account_email_wins_over_shipping_email(self):
        customer = User.objects.create_user(
            username='shopper', email='account@test.com', password='x', first_name='Karim', last_name='Ahmed',
        )
        with patch('apps.orders.services.notify_new_order'):
            order = services.place_order(order_payload(), customer=customer)

        self.assertEqual(services.resolve_customer_email(order), 'account@test.com')
        self.assertEqual(services.resolve_customer_name(order), 'Karim Ahmed')
        self.assertEqual(services.resolve_customer_phone(order), '01711000000')

    def test_email_payload_is_json_safe(self):
        with patch('apps.orders.services.notify_new_order'):
            order = services.place_order(order_payload())
        data = services.build_order_email_data(services.get_order(order.id))

        self.assertEqual(data["total"], "585.00")
        self.assertEqual(data["items"][0]["total"], "500.00")
        self.assertEqual(data["shipping_address"]["address"], "House 12, Road 5, Dhaka, Dhaka")
        self.assertEqual(data["payment_method"], "Cash on Delivery")
