"""Rider aggregate (CQRS): the delivery rider pool.

A rider is *available* when online and not busy. Assigning an order reserves
the rider (busy, ``assigned_order_id`` set); delivering or cancelling that
order releases them. A rider carries at most one order at a time.
"""

from datetime import UTC, datetime

from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Identifier, String, ValueObject

from fulfillment.domain import fulfillment
from fulfillment.errors import RiderUnavailable
from fulfillment.rider.events import (
    RiderAvailabilityChanged,
    RiderLocationUpdated,
    RiderRegistered,
    RiderReleased,
    RiderReserved,
)


@fulfillment.value_object(part_of="Rider")
class RiderLocation:
    lat = Float(required=True, min_value=-90.0, max_value=90.0)
    lng = Float(required=True, min_value=-180.0, max_value=180.0)


@fulfillment.aggregate
class Rider:
    name = String(required=True, max_length=100)
    phone = String(required=True, max_length=20)
    location = ValueObject(RiderLocation)
    is_online = Boolean(default=False)
    is_busy = Boolean(default=False)
    assigned_order_id = Identifier()
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def register(cls, name, phone, location=None):
        now = datetime.now(UTC)
        rider = cls(
            name=name,
            phone=phone,
            location=RiderLocation(**location) if location else None,
            created_at=now,
            updated_at=now,
        )
        rider.raise_(RiderRegistered(rider_id=str(rider.id), name=name, phone=phone, registered_at=now))
        return rider

    @property
    def is_available(self) -> bool:
        return bool(self.is_online) and not self.is_busy

    def set_online(self, is_online):
        if not is_online and self.is_busy:
            raise ValidationError({"is_online": ["Cannot go offline while carrying an order"]})
        now = datetime.now(UTC)
        self.is_online = is_online
        self.updated_at = now
        self.raise_(RiderAvailabilityChanged(rider_id=str(self.id), is_online=is_online, changed_at=now))

    def update_location(self, lat, lng):
        now = datetime.now(UTC)
        self.location = RiderLocation(lat=lat, lng=lng)
        self.updated_at = now
        self.raise_(RiderLocationUpdated(rider_id=str(self.id), lat=lat, lng=lng, updated_at=now))

    def reserve(self, order_id):
        if not self.is_available:
            raise RiderUnavailable(str(self.id))
        now = datetime.now(UTC)
        self.is_busy = True
        self.assigned_order_id = order_id
        self.updated_at = now
        self.raise_(RiderReserved(rider_id=str(self.id), order_id=str(order_id), reserved_at=now))

    def release(self, order_id):
        """Free the rider if they are still carrying ``order_id``. Returns whether anything changed."""
        if not self.is_busy or str(self.assigned_order_id) != str(order_id):
            return False
        now = datetime.now(UTC)
        self.is_busy = False
        self.assigned_order_id = None
        self.updated_at = now
        self.raise_(RiderReleased(rider_id=str(self.id), order_id=str(order_id), released_at=now))
        return True
