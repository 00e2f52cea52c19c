"""Razorpay gateway adapter over its REST API."""

import httpx

from fulfillment.gateway.port import GatewayError, GatewayOrder, PaymentGateway
from fulfillment.payment.signature import signature_matches
from fulfillment.utils.logging import get_logger

logger = get_logger(__name__)

RAZORPAY_API_URL = "https://api.razorpay.com/v1"


class RazorpayGateway(PaymentGateway):
    name = "razorpay"

    def __init__(self, key_id: str, key_secret: str, timeout: float = 10.0, client: httpx.Client | None = None) -> None:
        self.key_id = key_id
        self.key_secret = key_secret
        self._client = client or httpx.Client(
            base_url=RAZORPAY_API_URL,
            auth=(key_id, key_secret),
            timeout=timeout,
        )

    def create_order(self, amount: int, currency: str, receipt: str, notes: dict | None = None) -> GatewayOrder:
        if not self.key_id or not self.key_secret:
            raise GatewayError("Razorpay keys are not configured")

        payload = {
            "amount": amount,
            "currency": currency,
            "receipt": receipt,
            "notes": notes or {},
            "payment_capture": 1,
        }
        try:
            response = self._client.post("/orders", json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error("Razorpay rejected order creation", receipt=receipt, status_code=e.response.status_code)
            raise GatewayError(f"Razorpay API error: {e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.error("Razorpay unreachable", receipt=receipt, error=str(e))
            raise GatewayError("Razorpay unreachable") from e

        try:
            body = response.json()
        except ValueError as e:
            logger.error("Razorpay returned a non-JSON body", receipt=receipt, status_code=response.status_code)
            raise GatewayError("Invalid response from Razorpay") from e
        if not isinstance(body, dict) or not body.get("id"):
            raise GatewayError("Invalid response from Razorpay: no order id returned")
        return GatewayOrder(
            gateway_order_id=body["id"],
            amount=body.get("amount", amount),
            currency=body.get("currency", currency),
            receipt=body.get("receipt", receipt),
            status=body.get("status", "created"),
        )

    def verify_signature(self, gateway_order_id: str, gateway_payment_id: str, signature: str) -> bool:
        return signature_matches(self.key_secret, gateway_order_id, gateway_payment_id, signature)

    def client_config(self) -> dict:
        return {"key_id": self.key_id, "name": "razorpay"}
