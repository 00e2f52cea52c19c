"""Rider domain events."""

from protean.fields import Boolean, DateTime, Float, Identifier, String

from fulfillment.domain import fulfillment


@fulfillment.event(part_of="Rider")
class RiderRegistered:
    __version__ = 1

    rider_id = Identifier(required=True)
    name = String(required=True)
    phone = String(required=True)
    registered_at = DateTime(required=True)


@fulfillment.event(part_of="Rider")
class RiderAvailabilityChanged:
    __version__ = 1

    rider_id = Identifier(required=True)
    is_online = Boolean(required=True)
    changed_at = DateTime(required=True)


@fulfillment.event(part_of="Rider")
class RiderLocationUpdated:
    __version__ = 1

    rider_id = Identifier(required=True)
    lat = Float(required=True)
    lng = Float(required=True)
    updated_at = DateTime(required=True)


@fulfillment.event(part_of="Rider")
class RiderReserved:
    """The rider was assigned to an order and is now busy."""

    __version__ = 1

    rider_id = Identifier(required=True)
    order_id = Identifier(required=True)
    reserved_at = DateTime(required=True)


@fulfillment.event(part_of="Rider")
class RiderReleased:
    """The rider's order was delivered or cancelled; the rider is free again."""

    __version__ = 1

    rider_id = Identifier(required=True)
    order_id = Identifier(required=True)
    released_at = DateTime(required=True)
