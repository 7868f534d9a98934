"""
Payment Gateway Integration (Razorpay-compatible REST API)

Orders are created server-side; the browser checkout then returns
``order_id``, ``payment_id`` and an HMAC-SHA256 ``signature`` which is
verified here before any purchase is granted.

Without API keys (outside production) orders and refunds are mocked
(``order_mock_`` and ``rfnd_mock_`` ids) so the checkout flow can run locally.
"""
import hashlib
import hmac
import secrets
import time
from typing import Any

import httpx

from notevault.core.config import settings
from notevault.core.exceptions import ServiceUnavailableError
from notevault.core.logging import get_logger

logger = get_logger(__name__)

MOCK_ORDER_PREFIX = "order_mock_"
MOCK_REFUND_PREFIX = "rfnd_mock_"
MOCK_PUBLIC_KEY = "rzp_test_mock_key"


class PaymentGateway:
    """
    Razorpay order API client.

    Usage:
        gateway = PaymentGateway()
        order = await gateway.create_order(amount_paise=14900, receipt="rcpt_1f2e")
        ok = gateway.verify_signature(order["id"], payment_id, signature)
    """

    def __init__(
        self,
        key_id: str | None = None,
        key_secret: str | None = None,
        api_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.key_id = settings.razorpay_key_id if key_id is None else key_id
        self.key_secret = settings.razorpay_key_secret if key_secret is None else key_secret
        self.api_url = (api_url or settings.razorpay_api_url).rstrip("/")
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def is_configured(self) -> bool:
        return bool(self.key_id and self.key_secret)

    @property
    def public_key(self) -> str:
        return self.key_id or MOCK_PUBLIC_KEY

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.api_url,
                auth=httpx.BasicAuth(self.key_id, self.key_secret),
                timeout=15.0,
                headers={"Accept": "application/json"},
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def create_order(
        self,
        amount_paise: int,
        receipt: str,
        notes: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """
        Create a gateway order.

        Args:
            amount_paise: Amount in the smallest currency unit
            receipt: Our reference for the order
            notes: Free-form key/values stored with the order

        Returns:
            Gateway order payload (``id``, ``amount``, ``currency``, ``status``)
        """
        if not self.is_configured:
            if settings.is_production:
                logger.error("Payment order attempted without gateway keys in production")
                raise ServiceUnavailableError(
                    "Payment service",
                    "Payment gateway is not configured",
                    code="PAYMENT_SERVICE_UNAVAILABLE",
                )
            logger.warning("Payment gateway keys missing, using mock order", receipt=receipt)
            return {
                "id": f"{MOCK_ORDER_PREFIX}{int(time.time() * 1000)}_{secrets.token_hex(4)}",
                "amount": amount_paise,
                "currency": "INR",
                "receipt": receipt,
                "status": "created",
            }

        client = await self._get_client()
        try:
            response = await client.post(
                "/orders",
                json={
                    "amount": amount_paise,
                    "currency": "INR",
                    "receipt": receipt,
                    "notes": notes or {},
                },
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("Payment gateway order creation failed", receipt=receipt, error=str(e))
            raise ServiceUnavailableError(
                "Payment gateway",
                "Could not create payment order, please retry",
                code="PAYMENT_GATEWAY_ERROR",
            )

        order = response.json()
        logger.info("Gateway order created", order_id=order.get("id"), amount_paise=amount_paise)
        return order

    async def refund_payment(
        self,
        payment_id: str,
        amount_paise: int,
        notes: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """
        Refund (part of) a captured payment.

        Returns the gateway refund payload (``id``, ``amount``, ``status``).
        """
        if not self.is_configured:
            if settings.is_production:
                logger.error("Refund attempted without gateway keys in production")
                raise ServiceUnavailableError(
                    "Payment service",
                    "Payment gateway is not configured",
                    code="PAYMENT_SERVICE_UNAVAILABLE",
                )
            logger.warning("Payment gateway keys missing, using mock refund", payment_id=payment_id)
            return {
                "id": f"{MOCK_REFUND_PREFIX}{int(time.time() * 1000)}_{secrets.token_hex(4)}",
                "payment_id": payment_id,
                "amount": amount_paise,
                "status": "processed",
            }

        client = await self._get_client()
        try:
            response = await client.post(
                f"/payments/{payment_id}/refund",
                json={"amount": amount_paise, "speed": "normal", "notes": notes or {}},
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("Payment gateway refund failed", payment_id=payment_id, error=str(e))
            raise ServiceUnavailableError(
                "Payment gateway",
                "Could not process refund, please retry",
                code="REFUND_GATEWAY_ERROR",
            )

        refund = response.json()
        logger.info("Gateway refund created", refund_id=refund.get("id"), payment_id=payment_id)
        return refund

    def verify_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        """
        Check the checkout signature: hex HMAC-SHA256 of ``order_id|payment_id``
        keyed with the API secret, compared in constant time.
        """
        if order_id.startswith(MOCK_ORDER_PREFIX):
            return not settings.is_production

        if not self.is_configured:
            logger.error("Payment verification attempted without gateway keys")
            return False

        expected = hmac.new(
            self.key_secret.encode("utf-8"),
            f"{order_id}|{payment_id}".encode("utf-8"),
            hashlib.sha256,
        ).hexdigest()
        return hmac.compare_digest(expected, signature or "")


_gateway: PaymentGateway | None = None


def get_payment_gateway() -> PaymentGateway:
    """Process-wide gateway client (FastAPI dependency)."""
    global _gateway
    if _gateway is None:
        _gateway = PaymentGateway()
    return _gateway
