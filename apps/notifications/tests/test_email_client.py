"""
Tests for the Resend email client. The Resend SDK is patched; nothing
leaves the process.
"""
import base64
from unittest.mock import patch

from django.test import TestCase, override_settings

from apps.notifications import email_client
from apps.notifications.email_client import EmailDeliveryError
from apps.site_settings.services import update_settings


ORDER_DATA = {
    "customer_name": "Rahim Uddin",
    "order_number": "ORD-20260101-ABC123",
    "order_date": "01 Jan 2026",
    "items": [{"name": "Cotton Panjabi", "quantity": 2, "price": "250.00", "total": "500.00"}],
    "subtotal": "500.00",
    "tax": "25",
    "shipping_cost": "60.00",
    "discount_amount": "0.00",
    "total": "585.00",
    "payment_method": "Cash on Delivery",
    "delivery_type": "Inside Dhaka",
    "shipping_address": {"name": "Rahim Uddin", "phone": "01711000000", "address": "Dhaka"},
}


@override_settings(RESEND_API_KEY="re_test", RESEND_FROM_EMAIL="orders@shop.test", FROM_NAME="Shop")
class SendEmailTest(TestCase):

    @patch('apps.notifications.email_client.resend.Emails.send', return_value={"id": "msg_1"})
    def test_sends_with_sender_and_returns_id(self, mock_send):
        message_id = email_client.send_email("buyer@test.com", "Hello", "<p>Hi</p>")

        self.assertEqual(message_id, "msg_1")
        params = mock_send.call_args.args[0]
        self.assertEqual(params["from"], "Shop <orders@shop.test>")
        self.assertEqual(params["to"], ["buyer@test.com"])
        self.assertNotIn("attachments", params)

    @patch('apps.notifications.email_client.resend.Emails.send', return_value={"id": "msg_2"})
    def test_attachments_are_base64(self, mock_send):
        email_client.send_email(
            "buyer@test.com", "Invoice", "<p>Invoice</p>",
            attachments=[{"filename": "invoice.pdf", "content": b"%PDF-1.7"}],
        )
        attachment = mock_send.call_args.args[0]["attachments"][0]
        self.assertEqual(attachment["filename"], "invoice.pdf")
        self.assertEqual(base64.b64decode(attachment["content"]), b"%PDF-1.7")

    @patch('apps.notifications.email_client.resend.Emails.send', side_effect=Exception("422 invalid from"))
    def test_provider_error(self, mock_send):
        with self.assertRaises(EmailDeliveryError):
            email_client.send_email("buyer@test.com", "Hello", "<p>Hi</p>")

    @patch('apps.notifications.email_client.resend.Emails.send', return_value={})
    def test_missing_message_id(self, mock_send):
        with self.assertRaises(EmailDeliveryError):
            email_client.send_email("buyer@test.com", "Hello", "<p>Hi</p>")

    @override_settings(RESEND_API_KEY="")
    @patch('apps.notifications.email_client.resend.Emails.send')
    def test_unconfigured(self, mock_send):
        with self.assertRaises(EmailDeliveryError):
            email_client.send_email("buyer@test.com", "Hello", "<p>Hi</p>")
        mock_send.assert_not_called()


@override_settings(RESEND_API_KEY="re_test")
class TemplatedEmailTest(TestCase):

    @patch('apps.notifications.email_client.resend.Emails.send', return_value={"id": "msg_3"})
    def test_order_confirmation_renders_items_and_branding(self, mock_send):
        update_settings('general', {'site_name': 'Dhaka Mart'})

        email_client.send_order_confirmation("buyer@test.com", ORDER_DATA)

        params = mock_send.call_args.args[0]
        self.assertEqual(params["subject"], "Order Confirmation - ORD-20260101-ABC123 - Dhaka Mart")
        self.assertIn("Cotton Panjabi", params["html"])
        self.assertIn("585.00", params["html"])
        self.assertIn("Dhaka Mart", params["html"])

    @patch('apps.notifications.email_client.resend.Emails.send', return_value={"id": "msg_4"})
    def test_send_by_type_uses_given_subject(self, mock_send):
        email_client.send_by_type("order_confirmation", "buyer@test.com", "Custom subject", ORDER_DATA)
        self.assertEqual(mock_send.call_args.args[0]["subject"], "Custom subject")

    def test_send_by_type_rejects_unknown_type(self):
        with self.assertRaises(ValueError):
            email_client.send_by_type("newsletter", "buyer@test.com", "Hi", {})

    @override_settings(ADMIN_EMAIL="")
    @patch('apps.notifications.email_client.resend.Emails.send')
    def test_new_order_alert_skipped_without_admin_address(self, mock_send):
        self.assertIsNone(email_client.send_new_order_alert("ORD-1", "585.00"))
        mock_send.assert_not_called()

    @override_settings(ADMIN_EMAIL="owner@shop.test")
    @patch('apps.notifications.email_client.resend.Emails.send', return_value={"id": "msg_5"})
    def test_new_order_alert(self, mock_send):
        self.assertEqual(email_client.send_new_order_alert("ORD-1", "585.00"), "msg_5")
        self.assertEqual(mock_send.call_args.args[0]["to"], ["owner@shop.test"])
