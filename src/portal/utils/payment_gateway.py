"""
Razorpay gateway client.

Creates orders over the Razorpay REST API and checks the HMAC-SHA256
signatures Razorpay attaches to checkout callbacks and webhooks.
"""
import hashlib
import hmac
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import httpx
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from src.portal.config import razorpay_config
from src.portal.utils.exceptions import PaymentGatewayException

logger = logging.getLogger(__name__)


@dataclass
class GatewayOrder:
    id: str
    amount: int  # minor units (paise)
    currency: str
    receipt: str
    status: str = "created"
    notes: Dict[str, Any] = field(default_factory=dict)


def _hmac_hex(secret: str, message: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


class RazorpayGateway:
    def __init__(
        self,
        key_id: Optional[str] = None,
        key_secret: Optional[str] = None,
        webhook_secret: Optional[str] = None,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: Optional[float] = None,
    ):
        self.key_id = key_id if key_id is not None else razorpay_config.RAZORPAY_KEY_ID
        self.key_secret = key_secret if key_secret is not None else razorpay_config.RAZORPAY_KEY_SECRET
        self.webhook_secret = (
            webhook_secret if webhook_secret is not None else razorpay_config.RAZORPAY_WEBHOOK_SECRET
        )
        self.base_url = (base_url or razorpay_config.RAZORPAY_API_BASE).rstrip("/")
        self.timeout = timeout or razorpay_config.RAZORPAY_TIMEOUT_SECONDS
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            auth=(self.key_id or "", self.key_secret or ""),
            timeout=self.timeout,
            transport=self._transport,
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=4),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True,
    )
    async def _post_order(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        async with self._client() as client:
            response = await client.post("/orders", json=payload)
            response.raise_for_status()
            return response.json()

    async def create_order(
        self,
        amount_minor: int,
        currency: str,
        receipt: str,
        notes: Optional[Dict[str, Any]] = None,
    ) -> GatewayOrder:
        if not self.key_id or not self.key_secret:
            raise PaymentGatewayException("Payment gateway is not configured")

        payload = {
            "amount": amount_minor,
            "currency": currency,
            "receipt": receipt,
            "notes": notes or {},
        }
        try:
            data = await self._post_order(payload)
        except httpx.HTTPStatusError as e:
            logger.error(
                f"Razorpay rejected order for receipt {receipt}: "
                f"{e.response.status_code} {e.response.text}"
            )
            raise PaymentGatewayException(
                "Payment gateway rejected the order",
                details={"gateway_status": e.response.status_code},
            ) from e
        except httpx.RequestError as e:
            logger.error(f"Razorpay unreachable while creating order for receipt {receipt}: {e}", exc_info=True)
            raise PaymentGatewayException("Payment gateway is unreachable") from e

        logger.info(f"Razorpay order {data.get('id')} created for receipt {receipt}")
        return GatewayOrder(
            id=data["id"],
            amount=data.get("amount", amount_minor),
            currency=data.get("currency", currency),
            receipt=data.get("receipt", receipt),
            status=data.get("status", "created"),
            notes=data.get("notes") or {},
        )

    def verify_payment_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        if not self.key_secret or not signature:
            return False
        expected = _hmac_hex(self.key_secret, f"{order_id}|{payment_id}".encode("utf-8"))
        return hmac.compare_digest(expected, signature)

    def verify_webhook_signature(self, raw_body: bytes, signature: Optional[str]) -> bool:
        if not self.webhook_secret or not signature:
            return False
        expected = _hmac_hex(self.webhook_secret, raw_body)
        return hmac.compare_digest(expected, signature)
