"""
Razorpay payment gateway client
Creates orders over the REST API and verifies checkout signatures
"""
import hashlib
import hmac
import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from ..config import Settings
from ..exceptions import DependencyError

logger = logging.getLogger(__name__)


@dataclass
class Order:
    """Order created on the gateway side"""
    id: str
    amount: int  # minor units (paise)
    currency: str
    receipt: Optional[str] = None


def compute_signature(secret: str, order_id: str, payment_id: str) -> str:
    """HMAC-SHA256 of "order_id|payment_id" as lowercase hex"""
    payload = f"{order_id}|{payment_id}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


class RazorpayGateway:
    """Thin client for the Razorpay Orders API"""

    def __init__(
        self,
        key_id: Optional[str],
        key_secret: Optional[str],
        api_url: str = "https://api.razorpay.com/v1",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.key_id = key_id
        self.key_secret = key_secret
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> "RazorpayGateway":
        return cls(
            key_id=settings.RAZORPAY_KEY_ID,
            key_secret=settings.RAZORPAY_KEY_SECRET,
            api_url=settings.RAZORPAY_API_URL,
            timeout=settings.RAZORPAY_TIMEOUT_SECONDS,
        )

    async def create_order(self, amount: int, currency: str, receipt: str) -> Order:
        """
        Create a payment order

        Args:
            amount: Amount in minor units (paise for INR)
            currency: ISO currency code
            receipt: Unique receipt reference

        Returns:
            Order: id, amount and currency as confirmed by the gateway
        """
        if not self.key_id or not self.key_secret:
            logger.error("Razorpay credentials are not configured")
            raise DependencyError("payment gateway unavailable")

        payload = {
            "amount": amount,
            "currency": currency,
            "receipt": receipt,
            "payment_capture": 1,
        }

        try:
            async with httpx.AsyncClient(
                auth=(self.key_id, self.key_secret),
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                response = await client.post(f"{self.api_url}/orders", json=payload)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"Razorpay rejected order {receipt}: {e.response.status_code} - {e.response.text[:200]}")
            raise DependencyError("payment gateway unavailable")
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Razorpay order request failed for {receipt}: {e}")
            raise DependencyError("payment gateway unavailable")

        if not data.get("id"):
            logger.error(f"Razorpay response for {receipt} has no order id")
            raise DependencyError("payment gateway unavailable")

        logger.info(f"Razorpay order {data['id']} created for receipt {receipt}")
        return Order(
            id=data["id"],
            amount=data.get("amount", amount),
            currency=data.get("currency", currency),
            receipt=data.get("receipt", receipt),
        )

    def verify_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        """Constant-time check of a checkout signature"""
        if not self.key_secret:
            logger.error("Razorpay key secret is not configured, cannot verify payments")
            raise DependencyError("payment gateway unavailable")
        expected = compute_signature(self.key_secret, order_id, payment_id)
        return hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8"))
