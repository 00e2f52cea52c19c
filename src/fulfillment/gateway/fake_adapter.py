"""Configurable fake payment gateway for development and testing.

Creates gateway orders without any external call and signs completions with
the same HMAC scheme as the real gateway, so verification runs unchanged.
"""

from uuid import uuid4

from fulfillment.gateway.port import GatewayError, GatewayOrder, PaymentGateway
from fulfillment.payment.signature import compute_signature, signature_matches


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    name = "fake"

    def __init__(self, key_id: str = "rzp_test_key", key_secret: str = "test-secret") -> None:
        self.key_id = key_id
        self.key_secret = key_secret
        self.should_succeed: bool = True
        self.failure_reason: str = "Gateway unavailable"
        self.calls: list[dict] = []

    def configure(self, should_succeed: bool, failure_reason: str = "Gateway unavailable") -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def create_order(self, amount: int, currency: str, receipt: str, notes: dict | None = None) -> GatewayOrder:
        self.calls.append(
            {
                "method": "create_order",
                "amount": amount,
                "currency": currency,
                "receipt": receipt,
                "notes": notes or {},
            }
        )
        if not self.should_succeed:
            raise GatewayError(self.failure_reason)
        return GatewayOrder(
            gateway_order_id=f"order_fake_{uuid4().hex[:14]}",
            amount=amount,
            currency=currency,
            receipt=receipt,
        )

    def verify_signature(self, gateway_order_id: str, gateway_payment_id: str, signature: str) -> bool:
        return signature_matches(self.key_secret, gateway_order_id, gateway_payment_id, signature)

    def client_config(self) -> dict:
        return {"key_id": self.key_id, "name": "fake"}

    def complete_payment(self, gateway_order_id: str) -> tuple[str, str]:
        """Simulate the customer paying: returns ``(payment_id, signature)``."""
        payment_id = f"pay_fake_{uuid4().hex[:14]}"
        return payment_id, compute_signature(self.key_secret, gateway_order_id, payment_id)
