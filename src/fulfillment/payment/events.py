"""Domain events for the PaymentAttempt aggregate."""

from protean.fields import DateTime, Float, Identifier, String

from fulfillment.domain import fulfillment


@fulfillment.event(part_of="PaymentAttempt")
class PaymentAttemptInitiated:
    __version__ = 1

    attempt_id = Identifier(required=True)
    order_id = Identifier(required=True)
    gateway_order_id = String(required=True)
    gateway_name = String(required=True)
    amount = Float(required=True)
    currency = String(required=True)
    initiated_at = DateTime(required=True)


@fulfillment.event(part_of="PaymentAttempt")
class PaymentAttemptVerified:
    __version__ = 1

    attempt_id = Identifier(required=True)
    order_id = Identifier(required=True)
    gateway_order_id = String(required=True)
    gateway_payment_id = String(required=True)
    verified_at = DateTime(required=True)


@fulfillment.event(part_of="PaymentAttempt")
class PaymentAttemptFailed:
    __version__ = 1

    attempt_id = Identifier(required=True)
    order_id = Identifier(required=True)
    gateway_order_id = String(required=True)
    reason = String(required=True)
    failed_at = DateTime(required=True)


@fulfillment.event(part_of="PaymentAttempt")
class PaymentCapturedOnClosedAttempt:
    """The gateway captured money against an attempt the order no longer accepts."""

    __version__ = 1

    attempt_id = Identifier(required=True)
    order_id = Identifier(required=True)
    gateway_order_id = String(required=True)
    gateway_payment_id = String(required=True)
    amount = Float(required=True)
    captured_at = DateTime(required=True)
