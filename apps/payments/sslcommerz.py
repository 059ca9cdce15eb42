"""
SSLCommerz HTTP client.

Initiation is a form-encoded POST returning the hosted payment page URL;
validation is a GET against the validator API keyed by val_id.
"""
import logging
import secrets
import string
import time
from typing import Any, Dict

import requests
from django.conf import settings

logger = logging.getLogger(__name__)

SANDBOX_URL = 'https://sandbox.sslcommerz.com'
LIVE_URL = 'https://securepay.sslcommerz.com'
INITIATE_PATH = '/gwprocess/v4/api.php'
VALIDATE_PATH = '/validator/api/validationserverAPI.php'

VALID_STATUSES = {'VALID', 'VALIDATED'}

_BASE36 = string.digits + string.ascii_lowercase


class PaymentGatewayError(Exception):
    """Raised when SSLCommerz is unreachable or rejects a request."""


def generate_transaction_id() -> str:
    """TXN_<epoch ms>_<9 random base36 chars>"""
    suffix = ''.join(secrets.choice(_BASE36) for _ in range(9))
    return f"TXN_{int(time.time() * 1000)}_{suffix}"


class SSLCommerzClient:
    def __init__(self, store_id: str, store_password: str, sandbox: bool = True, timeout: int = None):
        self.store_id = store_id
        self.store_password = store_password
        self.sandbox = sandbox
        self.base_url = SANDBOX_URL if sandbox else LIVE_URL
        self.timeout = timeout or settings.SSLCOMMERZ_TIMEOUT

    @classmethod
    def from_settings(cls, payment_settings) -> "SSLCommerzClient":
        return cls(
            payment_settings.sslcommerz_store_id,
            payment_settings.sslcommerz_store_password,
            payment_settings.sslcommerz_sandbox,
        )

    def initiate(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Open a payment session.

        Returns the gateway response; GatewayPageURL is the redirect target.

        Raises:
            PaymentGatewayError: Network failure or status other than SUCCESS
        """
        data = {
            **payload,
            'store_id': self.store_id,
            'store_passwd': self.store_password,
        }
        try:
            response = requests.post(f"{self.base_url}{INITIATE_PATH}", data=data, timeout=self.timeout)
            response.raise_for_status()
            result = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"SSLCommerz initiation request failed: {e}")
            raise PaymentGatewayError("Payment gateway is unreachable") from e

        if (result.get('status') or '').upper() != 'SUCCESS' or not result.get('GatewayPageURL'):
            reason = result.get('failedreason') or 'Payment initiation failed'
            logger.warning(f"SSLCommerz rejected initiation for {payload.get('tran_id')}: {reason}")
            raise PaymentGatewayError(reason)

        return result

    def validate(self, val_id: str) -> Dict[str, Any]:
        """
        Ask the gateway about a transaction by val_id.

        Returns the raw validation response; callers check 'status'
        against VALID_STATUSES.

        Raises:
            PaymentGatewayError: Network failure or malformed response
        """
        params = {
            'val_id': val_id,
            'store_id': self.store_id,
            'store_passwd': self.store_password,
            'format': 'json',
        }
        try:
            response = requests.get(f"{self.base_url}{VALIDATE_PATH}", params=params, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"SSLCommerz validation request for {val_id} failed: {e}")
            raise PaymentGatewayError("Payment validation request failed") from e


def is_valid(validation: Dict[str, Any]) -> bool:
    return (validation.get('status') or '').upper() in VALID_STATUSES
