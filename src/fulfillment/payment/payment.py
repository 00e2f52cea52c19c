"""PaymentAttempt aggregate (CQRS): one gateway order for one online-paid order.

State Machine:
    INITIATED → VERIFIED
    INITIATED → FAILED
    FAILED → VERIFIED  (late capture recovered while the order still waits)

An order may collect several attempts over time (a failed attempt followed
by a payment retry) but at most one of them is ever VERIFIED.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, Identifier, String

from fulfillment.domain import fulfillment
from fulfillment.payment.events import (
    PaymentAttemptFailed,
    PaymentAttemptInitiated,
    PaymentAttemptVerified,
    PaymentCapturedOnClosedAttempt,
)


class PaymentAttemptStatus(Enum):
    INITIATED = "initiated"
    VERIFIED = "verified"
    FAILED = "failed"


@fulfillment.aggregate
class PaymentAttempt:
    order_id = Identifier(required=True)
    gateway_order_id = String(required=True, max_length=100, unique=True)
    gateway_payment_id = String(max_length=100)
    signature = String(max_length=128)
    amount = Float(required=True, min_value=0.0)
    currency = String(max_length=3, default="INR")
    status = String(choices=PaymentAttemptStatus, default=PaymentAttemptStatus.INITIATED.value)
    failure_reason = String(max_length=500)
    gateway_name = String(required=True, max_length=50)
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def initiate(cls, order_id, gateway_order_id, amount, currency, gateway_name):
        now = datetime.now(UTC)
        attempt = cls(
            order_id=order_id,
            gateway_order_id=gateway_order_id,
            amount=amount,
            currency=currency,
            gateway_name=gateway_name,
            created_at=now,
            updated_at=now,
        )
        attempt.raise_(
            PaymentAttemptInitiated(
                attempt_id=str(attempt.id),
                order_id=str(order_id),
                gateway_order_id=gateway_order_id,
                gateway_name=gateway_name,
                amount=amount,
                currency=currency,
                initiated_at=now,
            )
        )
        return attempt

    def _assert_initiated(self):
        if PaymentAttemptStatus(self.status) != PaymentAttemptStatus.INITIATED:
            raise ValidationError({"status": [f"Payment attempt is already {self.status}"]})

    def mark_verified(self, gateway_payment_id, signature):
        self._assert_initiated()
        self._verify(gateway_payment_id, signature)

    def recover(self, gateway_payment_id, signature):
        """Verify a failed attempt whose gateway order was paid after all."""
        if PaymentAttemptStatus(self.status) != PaymentAttemptStatus.FAILED:
            raise ValidationError({"status": [f"Payment attempt is {self.status}, not failed"]})
        self.failure_reason = None
        self._verify(gateway_payment_id, signature)

    def _verify(self, gateway_payment_id, signature):
        now = datetime.now(UTC)
        self.status = PaymentAttemptStatus.VERIFIED.value
        self.gateway_payment_id = gateway_payment_id
        self.signature = signature
        self.updated_at = now
        self.raise_(
            PaymentAttemptVerified(
                attempt_id=str(self.id),
                order_id=str(self.order_id),
                gateway_order_id=self.gateway_order_id,
                gateway_payment_id=gateway_payment_id,
                verified_at=now,
            )
        )

    def record_late_capture(self, gateway_payment_id):
        """A closed attempt was paid anyway and the order cannot take it. Kept for refund."""
        now = datetime.now(UTC)
        self.gateway_payment_id = gateway_payment_id
        self.updated_at = now
        self.raise_(
            PaymentCapturedOnClosedAttempt(
                attempt_id=str(self.id),
                order_id=str(self.order_id),
                gateway_order_id=self.gateway_order_id,
                gateway_payment_id=gateway_payment_id,
                amount=self.amount,
                captured_at=now,
            )
        )

    def mark_failed(self, reason, gateway_payment_id=None):
        self._assert_initiated()
        now = datetime.now(UTC)
        self.status = PaymentAttemptStatus.FAILED.value
        self.failure_reason = reason
        self.gateway_payment_id = gateway_payment_id
        self.updated_at = now
        self.raise_(
            PaymentAttemptFailed(
                attempt_id=str(self.id),
                order_id=str(self.order_id),
                gateway_order_id=self.gateway_order_id,
                reason=reason,
                failed_at=now,
            )
        )


@fulfillment.repository(part_of=PaymentAttempt)
class PaymentAttemptRepository:
    def find_by_gateway_order_id(self, gateway_order_id) -> PaymentAttempt | None:
        results = self._dao.query.filter(gateway_order_id=gateway_order_id).all().items
        return results[0] if results else None

    def for_order(self, order_id) -> list[PaymentAttempt]:
        """All attempts for an order, oldest first."""
        attempts = self._dao.query.filter(order_id=str(order_id)).all().items
        return sorted(attempts, key=lambda a: a.created_at)

    def latest_for_order(self, order_id) -> PaymentAttempt | None:
        attempts = self.for_order(order_id)
        return attempts[-1] if attempts else None
