"""SMS delivery through Twilio, configured from IntegrationSettings."""
import logging

from twilio.rest import Client
from twilio.base.exceptions import TwilioRestException

from apps.site_settings.services import get_integration_settings

logger = logging.getLogger(__name__)

MAX_SMS_LENGTH = 1600


class SmsDeliveryError(Exception):
    """Raised when SMS is disabled, unconfigured, or rejected by Twilio."""


def get_twilio_client(integration=None) -> Client:
    integration = integration or get_integration_settings()
    if not integration.twilio_enabled:
        raise SmsDeliveryError("Twilio SMS is disabled")
    if not (integration.twilio_account_sid and integration.twilio_auth_token and integration.twilio_phone_number):
        raise SmsDeliveryError("Twilio credentials are not configured")
    return Client(integration.twilio_account_sid, integration.twilio_auth_token)


def send_sms(to: str, body: str) -> str:
    """Send a text message and return the Twilio message SID."""
    integration = get_integration_settings()
    client = get_twilio_client(integration)
    try:
        message = client.messages.create(
            body=body[:MAX_SMS_LENGTH],
            from_=integration.twilio_phone_number,
            to=to,
        )
    except TwilioRestException as e:
        raise SmsDeliveryError(f"Twilio rejected SMS to {to}: {e.msg}") from e

    logger.info(f"SMS sent to {to} (sid={message.sid})")
    return message.sid
