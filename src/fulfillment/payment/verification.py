"""Payment reconciliation: verify a gateway completion callback.

The attempt is found by its gateway order id and must belong to the order.
The signature is recomputed with the gateway secret and compared in constant
time. A match verifies the attempt and accepts the order in the same unit of
work; a mismatch fails the attempt and leaves the order ``pending`` so the
customer can retry. Replaying the exact verified payload succeeds without a
second transition; any other payload against a verified attempt is rejected.

A customer may still complete a gateway order that a retry superseded. If the
order is waiting for payment, that attempt is recovered and the order
accepted; otherwise the capture is recorded on the attempt and logged as an
error for refund.

Every rejection returns the same generic reason; the details only go to the
audit log.
"""

from dataclasses import dataclass
from enum import Enum

from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from fulfillment import hooks
from fulfillment.domain import fulfillment
from fulfillment.errors import InvalidTransition, SignatureMismatch
from fulfillment.gateway import get_gateway
from fulfillment.order.order import Order, OrderStatus
from fulfillment.order.transitions import order_lock
from fulfillment.payment.payment import PaymentAttempt, PaymentAttemptStatus
from fulfillment.utils.logging import get_logger

logger = get_logger(__name__)

REJECTED_REASON = "Payment could not be verified"


class VerificationOutcome(Enum):
    CONFIRMED = "confirmed"
    RECOVERED = "recovered"
    ALREADY_VERIFIED = "already_verified"
    REPLAY_MISMATCH = "replay_mismatch"
    SIGNATURE_MISMATCH = "signature_mismatch"
    UNKNOWN_ATTEMPT = "unknown_attempt"
    GATEWAY_ORDER_MISMATCH = "gateway_order_mismatch"
    CAPTURED_ON_CLOSED_ATTEMPT = "captured_on_closed_attempt"


@dataclass(frozen=True)
class PaymentVerification:
    confirmed: bool
    reason: str
    already_verified: bool = False


@fulfillment.command(part_of="PaymentAttempt")
class VerifyPayment:
    order_id = Identifier(required=True)
    gateway_order_id = String(required=True, max_length=100)
    gateway_payment_id = String(required=True, max_length=100)
    signature = String(required=True, max_length=128)


@fulfillment.command_handler(part_of=PaymentAttempt)
class VerifyPaymentHandler:
    @handle(VerifyPayment)
    def verify_payment(self, command):
        attempt_repo = current_domain.repository_for(PaymentAttempt)
        attempt = attempt_repo.find_by_gateway_order_id(command.gateway_order_id)
        if attempt is None:
            return VerificationOutcome.UNKNOWN_ATTEMPT.value
        if str(attempt.order_id) != str(command.order_id):
            return VerificationOutcome.GATEWAY_ORDER_MISMATCH.value

        signature_valid = get_gateway().verify_signature(
            command.gateway_order_id, command.gateway_payment_id, command.signature
        )
        status = PaymentAttemptStatus(attempt.status)

        if status == PaymentAttemptStatus.VERIFIED:
            if signature_valid and command.gateway_payment_id == attempt.gateway_payment_id:
                return VerificationOutcome.ALREADY_VERIFIED.value
            if signature_valid:
                # A second payment against an already paid gateway order
                return VerificationOutcome.CAPTURED_ON_CLOSED_ATTEMPT.value
            return VerificationOutcome.REPLAY_MISMATCH.value

        if not signature_valid:
            if status == PaymentAttemptStatus.INITIATED:
                attempt.mark_failed("Signature mismatch", gateway_payment_id=command.gateway_payment_id)
                attempt_repo.add(attempt)
            return VerificationOutcome.SIGNATURE_MISMATCH.value

        order_repo = current_domain.repository_for(Order)
        order = order_repo.get(attempt.order_id)

        if status == PaymentAttemptStatus.INITIATED:
            attempt.mark_verified(command.gateway_payment_id, command.signature)
            order.confirm_payment(command.gateway_order_id, command.gateway_payment_id)
            attempt_repo.add(attempt)
            order_repo.add(order)
            return VerificationOutcome.CONFIRMED.value

        # Failed (superseded) attempt that the customer paid anyway
        if order.status != OrderStatus.PENDING.value:
            attempt.record_late_capture(command.gateway_payment_id)
            attempt_repo.add(attempt)
            return VerificationOutcome.CAPTURED_ON_CLOSED_ATTEMPT.value

        for other in attempt_repo.for_order(order.id):
            if other.id != attempt.id and other.status == PaymentAttemptStatus.INITIATED.value:
                other.mark_failed("Superseded by a verified payment")
                attempt_repo.add(other)
        attempt.recover(command.gateway_payment_id, command.signature)
        order.confirm_payment(command.gateway_order_id, command.gateway_payment_id)
        attempt_repo.add(attempt)
        order_repo.add(order)
        return VerificationOutcome.RECOVERED.value


def _rejected():
    return PaymentVerification(confirmed=False, reason=REJECTED_REASON)


def verify_payment(order_id, gateway_order_id, gateway_payment_id, signature) -> PaymentVerification:
    """Reconcile a client-side payment completion against its order.

    Raises ``InvalidTransition`` only when the signature is valid for the
    open attempt but the order has already left ``pending`` (for example,
    cancelled while the customer was paying).
    """
    if not all([order_id, gateway_order_id, gateway_payment_id, signature]):
        logger.warning("Payment verification rejected", order_id=order_id, reason="missing fields")
        return _rejected()

    with order_lock(order_id):
        try:
            command = VerifyPayment(
                order_id=order_id,
                gateway_order_id=gateway_order_id,
                gateway_payment_id=gateway_payment_id,
                signature=signature,
            )
            outcome = VerificationOutcome(current_domain.process(command, asynchronous=False))
        except InvalidTransition:
            logger.error(
                "Verified payment for an order that is no longer pending",
                order_id=str(order_id),
                gateway_order_id=gateway_order_id,
                gateway_payment_id=gateway_payment_id,
            )
            raise
        except (ObjectNotFoundError, ValidationError) as e:
            logger.warning(
                "Payment verification rejected",
                order_id=str(order_id),
                gateway_order_id=gateway_order_id,
                error=type(e).__name__,
            )
            return _rejected()

    if outcome in (VerificationOutcome.CONFIRMED, VerificationOutcome.RECOVERED):
        order = current_domain.repository_for(Order).get(order_id)
        logger.info(
            "Payment verified",
            order_id=str(order_id),
            gateway_order_id=gateway_order_id,
            recovered=outcome == VerificationOutcome.RECOVERED,
        )
        hooks.fire("OrderAccepted", order)
        return PaymentVerification(confirmed=True, reason="Payment verified")

    if outcome == VerificationOutcome.ALREADY_VERIFIED:
        logger.info("Duplicate payment callback ignored", order_id=str(order_id), gateway_order_id=gateway_order_id)
        return PaymentVerification(confirmed=True, reason="Payment already verified", already_verified=True)

    if outcome == VerificationOutcome.CAPTURED_ON_CLOSED_ATTEMPT:
        logger.error(
            "Captured payment on superseded attempt",
            order_id=str(order_id),
            gateway_order_id=gateway_order_id,
            gateway_payment_id=gateway_payment_id,
        )
        return _rejected()

    if outcome in (VerificationOutcome.SIGNATURE_MISMATCH, VerificationOutcome.REPLAY_MISMATCH):
        mismatch = SignatureMismatch(str(order_id), gateway_order_id)
        logger.warning(
            str(mismatch),
            order_id=mismatch.order_id,
            gateway_order_id=mismatch.gateway_order_id,
            replay=outcome == VerificationOutcome.REPLAY_MISMATCH,
        )
        return _rejected()

    logger.warning(
        "Payment verification rejected",
        order_id=str(order_id),
        gateway_order_id=gateway_order_id,
        reason=outcome.value,
    )
    return _rejected()
