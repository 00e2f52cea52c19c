"""Order aggregate (CQRS): a single shop's grocery order.

Prices, delivery fee, tax and totals are computed at checkout and frozen on
the order; nothing after placement recalculates them.

State Machine:
    pending → accepted_by_shopkeeper → assigned_to_rider → out_for_delivery → delivered
    {pending, accepted_by_shopkeeper, assigned_to_rider} → cancelled

``delivered`` and ``cancelled`` are terminal. Each transition is allowed only
for specific actors, and the actor's identity must match the order (the
shop's owner, the customer who placed it, or the assigned rider).
"""

import json
import secrets
import string
import time
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String, Text, ValueObject

from fulfillment.domain import fulfillment
from fulfillment.errors import ActorNotPermitted, InvalidTransition
from fulfillment.order.events import (
    OrderAccepted,
    OrderCancelled,
    OrderDelivered,
    OrderOutForDelivery,
    OrderPaymentConfirmed,
    OrderPaymentInitiated,
    OrderPlaced,
    RiderAssigned,
)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    ACCEPTED_BY_SHOPKEEPER = "accepted_by_shopkeeper"
    ASSIGNED_TO_RIDER = "assigned_to_rider"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentMethod(Enum):
    CASH = "cash"
    GATEWAY = "gateway"


class OrderPaymentStatus(Enum):
    INITIATED = "initiated"
    VERIFIED = "verified"


class ActorRole(Enum):
    SHOPKEEPER = "shopkeeper"
    RIDER = "rider"
    CUSTOMER = "customer"
    SYSTEM = "system"


_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.ACCEPTED_BY_SHOPKEEPER, OrderStatus.CANCELLED},
    OrderStatus.ACCEPTED_BY_SHOPKEEPER: {OrderStatus.ASSIGNED_TO_RIDER, OrderStatus.CANCELLED},
    OrderStatus.ASSIGNED_TO_RIDER: {OrderStatus.OUT_FOR_DELIVERY, OrderStatus.CANCELLED},
    OrderStatus.OUT_FOR_DELIVERY: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),  # terminal
    OrderStatus.CANCELLED: set(),  # terminal
}

# Who may move an order into each target state
_ALLOWED_ACTORS = {
    OrderStatus.ACCEPTED_BY_SHOPKEEPER: {ActorRole.SHOPKEEPER, ActorRole.SYSTEM},
    OrderStatus.ASSIGNED_TO_RIDER: {ActorRole.SHOPKEEPER},
    OrderStatus.OUT_FOR_DELIVERY: {ActorRole.SHOPKEEPER, ActorRole.RIDER},
    OrderStatus.DELIVERED: {ActorRole.SHOPKEEPER, ActorRole.RIDER},
    OrderStatus.CANCELLED: {ActorRole.SHOPKEEPER, ActorRole.CUSTOMER},
}

_ACTION_NAMES = {
    OrderStatus.ACCEPTED_BY_SHOPKEEPER: "accept the order",
    OrderStatus.ASSIGNED_TO_RIDER: "assign a rider",
    OrderStatus.OUT_FOR_DELIVERY: "mark the order out for delivery",
    OrderStatus.DELIVERED: "mark the order delivered",
    OrderStatus.CANCELLED: "cancel the order",
}

_BASE36 = string.digits + string.ascii_uppercase


def generate_order_number() -> str:
    """Human-facing order number: ``MM`` + epoch milliseconds + 4 base36 characters."""
    suffix = "".join(secrets.choice(_BASE36) for _ in range(4))
    return f"MM{int(time.time() * 1000)}{suffix}"


@dataclass(frozen=True)
class Actor:
    """Who is asking for a transition."""

    role: ActorRole
    actor_id: str | None = None

    @classmethod
    def shopkeeper(cls, actor_id):
        return cls(ActorRole.SHOPKEEPER, str(actor_id))

    @classmethod
    def rider(cls, actor_id):
        return cls(ActorRole.RIDER, str(actor_id))

    @classmethod
    def customer(cls, actor_id):
        return cls(ActorRole.CUSTOMER, str(actor_id))

    @classmethod
    def system(cls):
        return cls(ActorRole.SYSTEM)


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@fulfillment.value_object(part_of="Order")
class DeliveryAddress:
    street = String(required=True, max_length=255)
    city = String(required=True, max_length=100)
    pincode = String(required=True, max_length=10)
    state = String(required=True, max_length=100)
    lat = Float()
    lng = Float()


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@fulfillment.entity(part_of="Order")
class OrderItem:
    """A cart line priced from the catalogue at checkout time."""

    product_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    unit_price = Float(required=True, min_value=0.0)
    quantity = Integer(required=True, min_value=1)
    total_price = Float(required=True, min_value=0.0)


# ---------------------------------------------------------------------------
# Aggregate Root (CQRS)
# ---------------------------------------------------------------------------
@fulfillment.aggregate
class Order:
    order_number = String(required=True, max_length=32, unique=True)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    shop_id = Identifier(required=True)
    shopkeeper_id = Identifier(required=True)
    user_id = Identifier(required=True)
    rider_id = Identifier()
    items = HasMany(OrderItem)
    subtotal = Float(required=True, min_value=0.0)
    delivery_fee = Float(required=True, min_value=0.0)
    tax = Float(required=True, min_value=0.0)
    total_amount = Float(required=True, min_value=0.0)
    zone_name = String(max_length=100)
    distance_km = Float()
    currency = String(max_length=3, default="INR")
    delivery_address = ValueObject(DeliveryAddress)
    payment_method = String(choices=PaymentMethod, required=True)
    payment_status = String(choices=OrderPaymentStatus)
    cancellation_reason = String(max_length=500)
    cancelled_by = String(max_length=20)
    notes = Text()
    eta_min_minutes = Integer()
    eta_max_minutes = Integer()
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        shop_id,
        shopkeeper_id,
        user_id,
        lines,
        delivery_address,
        payment_method,
        delivery_fee,
        tax,
        currency="INR",
        zone_name=None,
        distance_km=None,
        eta=None,
        notes=None,
    ):
        """Create a ``pending`` order from priced cart lines.

        Args:
            lines: List of dicts with product_id, name, unit_price, quantity.
            delivery_address: Dict with street, city, pincode, state and optional lat/lng.
            eta: Optional ``EtaWindow`` quoted to the customer.
        """
        if not lines:
            raise ValidationError({"items": ["Order must contain at least one item"]})

        items = [
            OrderItem(
                product_id=line["product_id"],
                name=line["name"],
                unit_price=line["unit_price"],
                quantity=line["quantity"],
                total_price=round(line["unit_price"] * line["quantity"], 2),
            )
            for line in lines
        ]
        subtotal = round(sum(item.total_price for item in items), 2)
        total_amount = round(subtotal + delivery_fee + tax, 2)
        now = datetime.now(UTC)

        order = cls(
            order_number=generate_order_number(),
            shop_id=shop_id,
            shopkeeper_id=shopkeeper_id,
            user_id=user_id,
            items=items,
            subtotal=subtotal,
            delivery_fee=delivery_fee,
            tax=tax,
            total_amount=total_amount,
            zone_name=zone_name,
            distance_km=distance_km,
            currency=currency,
            delivery_address=DeliveryAddress(**delivery_address),
            payment_method=payment_method,
            notes=notes,
            eta_min_minutes=eta.min_eta if eta else None,
            eta_max_minutes=eta.max_eta if eta else None,
            created_at=now,
            updated_at=now,
        )
        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                order_number=order.order_number,
                shop_id=str(shop_id),
                user_id=str(user_id),
                items=json.dumps([{**line, "product_id": str(line["product_id"])} for line in lines]),
                subtotal=subtotal,
                delivery_fee=delivery_fee,
                tax=tax,
                total_amount=total_amount,
                currency=currency,
                payment_method=order.payment_method,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Guards
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target_status):
        current = OrderStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise InvalidTransition(current.value, target_status.value)

    def _assert_actor(self, actor, target_status):
        """Role first, then identity against the order's parties."""
        action = _ACTION_NAMES[target_status]
        if actor.role not in _ALLOWED_ACTORS[target_status]:
            raise ActorNotPermitted(actor.role.value, action)

        owner = {
            ActorRole.SHOPKEEPER: self.shopkeeper_id,
            ActorRole.CUSTOMER: self.user_id,
            ActorRole.RIDER: self.rider_id,
        }.get(actor.role)
        if actor.role is not ActorRole.SYSTEM and (owner is None or str(owner) != str(actor.actor_id)):
            raise ActorNotPermitted(
                actor.role.value,
                action,
                reason=f"This order does not belong to the {actor.role.value}",
            )

    def _stamp(self, target_status):
        now = datetime.now(UTC)
        self.status = target_status.value
        self.updated_at = now
        return now

    @property
    def is_terminal(self) -> bool:
        return not _VALID_TRANSITIONS[OrderStatus(self.status)]

    # -------------------------------------------------------------------
    # Lifecycle transitions
    # -------------------------------------------------------------------
    def accept(self, actor):
        target = OrderStatus.ACCEPTED_BY_SHOPKEEPER
        self._assert_actor(actor, target)
        self._assert_can_transition(target)
        if (
            self.payment_method == PaymentMethod.GATEWAY.value
            and self.payment_status != OrderPaymentStatus.VERIFIED.value
        ):
            raise ValidationError({"payment": ["Order is awaiting payment"]})

        now = self._stamp(target)
        self.raise_(
            OrderAccepted(
                order_id=str(self.id),
                accepted_by=actor.role.value,
                actor_id=actor.actor_id,
                accepted_at=now,
            )
        )

    def assign_rider(self, actor, rider_id):
        target = OrderStatus.ASSIGNED_TO_RIDER
        self._assert_actor(actor, target)
        self._assert_can_transition(target)

        now = self._stamp(target)
        self.rider_id = rider_id
        self.raise_(
            RiderAssigned(
                order_id=str(self.id),
                rider_id=str(rider_id),
                assigned_by=actor.actor_id,
                assigned_at=now,
            )
        )

    def dispatch(self, actor):
        target = OrderStatus.OUT_FOR_DELIVERY
        self._assert_actor(actor, target)
        self._assert_can_transition(target)

        now = self._stamp(target)
        self.raise_(
            OrderOutForDelivery(
                order_id=str(self.id),
                dispatched_by=actor.role.value,
                actor_id=actor.actor_id,
                dispatched_at=now,
            )
        )

    def deliver(self, actor):
        target = OrderStatus.DELIVERED
        self._assert_actor(actor, target)
        self._assert_can_transition(target)

        now = self._stamp(target)
        self.raise_(
            OrderDelivered(
                order_id=str(self.id),
                delivered_by=actor.role.value,
                actor_id=actor.actor_id,
                delivered_at=now,
            )
        )

    def cancel(self, actor, reason=None):
        target = OrderStatus.CANCELLED
        self._assert_actor(actor, target)
        self._assert_can_transition(target)

        previous_status = self.status
        now = self._stamp(target)
        self.cancellation_reason = reason
        self.cancelled_by = actor.role.value
        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                previous_status=previous_status,
                cancelled_by=actor.role.value,
                actor_id=actor.actor_id,
                reason=reason,
                cancelled_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Payment tracking (gateway orders)
    # -------------------------------------------------------------------
    def _assert_gateway_order(self):
        if self.payment_method != PaymentMethod.GATEWAY.value:
            raise ValidationError({"payment_method": ["Order is not paid online"]})

    def record_payment_initiated(self, gateway_order_id):
        self._assert_gateway_order()
        if OrderStatus(self.status) != OrderStatus.PENDING:
            raise ValidationError({"status": ["Payment can only be started for a pending order"]})
        if self.payment_status == OrderPaymentStatus.VERIFIED.value:
            raise ValidationError({"payment": ["Order is already paid"]})

        now = datetime.now(UTC)
        self.payment_status = OrderPaymentStatus.INITIATED.value
        self.updated_at = now
        self.raise_(
            OrderPaymentInitiated(
                order_id=str(self.id),
                gateway_order_id=gateway_order_id,
                amount=self.total_amount,
                initiated_at=now,
            )
        )

    def confirm_payment(self, gateway_order_id, gateway_payment_id):
        """Payment verified: the order moves to ``accepted_by_shopkeeper`` on the system's behalf."""
        self._assert_gateway_order()
        self._assert_can_transition(OrderStatus.ACCEPTED_BY_SHOPKEEPER)

        now = datetime.now(UTC)
        self.payment_status = OrderPaymentStatus.VERIFIED.value
        self.raise_(
            OrderPaymentConfirmed(
                order_id=str(self.id),
                gateway_order_id=gateway_order_id,
                gateway_payment_id=gateway_payment_id,
                confirmed_at=now,
            )
        )
        self.accept(Actor.system())
