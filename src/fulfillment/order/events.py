"""Domain events for the Order aggregate.

Every lifecycle transition raises exactly one status event carrying the
actor that performed it. Payment events track the gateway side of an order
paid online; the order itself only moves when payment is confirmed.
"""

from protean.fields import DateTime, Float, Identifier, String, Text

from fulfillment.domain import fulfillment


@fulfillment.event(part_of="Order")
class OrderPlaced:
    """A checkout was accepted and the order persisted in ``pending``."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    shop_id = Identifier(required=True)
    user_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of line dicts
    subtotal = Float(required=True)
    delivery_fee = Float(required=True)
    tax = Float(required=True)
    total_amount = Float(required=True)
    currency = String(required=True)
    payment_method = String(required=True)
    placed_at = DateTime(required=True)


@fulfillment.event(part_of="Order")
class OrderAccepted:
    __version__ = 1

    order_id = Identifier(required=True)
    accepted_by = String(required=True)  # actor role
    actor_id = Identifier()
    accepted_at = DateTime(required=True)


@fulfillment.event(part_of="Order")
class RiderAssigned:
    __version__ = 1

    order_id = Identifier(required=True)
    rider_id = Identifier(required=True)
    assigned_by = Identifier()
    assigned_at = DateTime(required=True)


@fulfillment.event(part_of="Order")
class OrderOutForDelivery:
    __version__ = 1

    order_id = Identifier(required=True)
    dispatched_by = String(required=True)
    actor_id = Identifier()
    dispatched_at = DateTime(required=True)


@fulfillment.event(part_of="Order")
class OrderDelivered:
    __version__ = 1

    order_id = Identifier(required=True)
    delivered_by = String(required=True)
    actor_id = Identifier()
    delivered_at = DateTime(required=True)


@fulfillment.event(part_of="Order")
class OrderCancelled:
    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    cancelled_by = String(required=True)
    actor_id = Identifier()
    reason = String()
    cancelled_at = DateTime(required=True)


@fulfillment.event(part_of="Order")
class OrderPaymentInitiated:
    __version__ = 1

    order_id = Identifier(required=True)
    gateway_order_id = String(required=True)
    amount = Float(required=True)
    initiated_at = DateTime(required=True)


@fulfillment.event(part_of="Order")
class OrderPaymentConfirmed:
    __version__ = 1

    order_id = Identifier(required=True)
    gateway_order_id = String(required=True)
    gateway_payment_id = String(required=True)
    confirmed_at = DateTime(required=True)
