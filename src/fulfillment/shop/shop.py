"""Shop aggregate (CQRS): a shop's delivery geography and delivery profile.

The shop owns its delivery configuration: a fixed location, an optional hard
serviceability radius, an ordered list of distance zones and the profile used
for ETA estimates. Zones are matched first-in-declaration-order, so
``position`` is persisted alongside each zone.

Each zone must be well formed (non-negative span, non-negative fee). Gaps and
overlaps between zones are allowed but reported back to the owner as
warnings when settings are saved.
"""

import json
from datetime import UTC, datetime

from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String, ValueObject

from fulfillment.domain import fulfillment
from fulfillment.geo import Coordinate
from fulfillment.pricing import ShopDeliveryConfig, ZoneRule, find_zone_gaps, find_zone_overlaps, zone_errors
from fulfillment.shop.events import DeliverySettingsUpdated, ShopRegistered
from fulfillment.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_DELIVERY_PROFILE = {
    "base_prep_minutes": 5.0,
    "max_parallel_orders": 3,
    "buffer_minutes": 5.0,
    "avg_rider_speed_kmph": 20.0,
}


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@fulfillment.value_object(part_of="Shop")
class Coordinates:
    lat = Float(required=True, min_value=-90.0, max_value=90.0)
    lng = Float(required=True, min_value=-180.0, max_value=180.0)


@fulfillment.value_object(part_of="Shop")
class DeliveryProfile:
    """Inputs to the ETA estimate. All values are positive."""

    base_prep_minutes = Float(required=True)
    max_parallel_orders = Integer(required=True)
    buffer_minutes = Float(required=True)
    avg_rider_speed_kmph = Float(required=True)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@fulfillment.entity(part_of="Shop")
class DeliveryZone:
    position = Integer(required=True, min_value=0)
    name = String(required=True, max_length=100)
    min_distance = Float(required=True)
    max_distance = Float(required=True)
    delivery_fee = Float(required=True)
    min_order_value = Float()

    def to_rule(self) -> ZoneRule:
        return ZoneRule(
            name=self.name,
            min_distance=self.min_distance,
            max_distance=self.max_distance,
            delivery_fee=self.delivery_fee,
            min_order_value=self.min_order_value,
        )


def _profile_errors(profile: dict) -> list[str]:
    return [f"{key} must be positive" for key, value in profile.items() if value is None or value <= 0]


# ---------------------------------------------------------------------------
# Aggregate Root (CQRS)
# ---------------------------------------------------------------------------
@fulfillment.aggregate
class Shop:
    name = String(required=True, max_length=255)
    owner_id = Identifier(required=True)
    coordinates = ValueObject(Coordinates)
    radius_km = Float()
    zones = HasMany(DeliveryZone)
    delivery_profile = ValueObject(DeliveryProfile)
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def create(cls, name, owner_id, coordinates=None, radius_km=None, delivery_profile=None):
        """Register a shop. ``coordinates`` is a ``{lat, lng}`` dict; the profile falls back to defaults."""
        if radius_km is not None and radius_km <= 0:
            raise ValidationError({"radius_km": ["Delivery radius must be positive"]})

        profile = {**DEFAULT_DELIVERY_PROFILE, **(delivery_profile or {})}
        errors = _profile_errors(profile)
        if errors:
            raise ValidationError({"delivery_profile": errors})

        now = datetime.now(UTC)
        shop = cls(
            name=name,
            owner_id=owner_id,
            coordinates=Coordinates(**coordinates) if coordinates else None,
            radius_km=radius_km,
            delivery_profile=DeliveryProfile(**profile),
            created_at=now,
            updated_at=now,
        )
        shop.raise_(
            ShopRegistered(
                shop_id=str(shop.id),
                name=name,
                owner_id=str(owner_id),
                registered_at=now,
            )
        )
        return shop

    def update_delivery_settings(
        self, zones_data, radius_km=None, delivery_profile=None, coordinates=None, clear_radius=False
    ):
        """Replace the zone list (and optionally radius, profile, location).

        An omitted ``radius_km`` keeps the current radius; ``clear_radius``
        removes the hard cutoff.

        Returns the configuration warnings (gaps, overlaps) for the owner.
        Zone well-formedness problems are rejected outright.
        """
        rules = [
            ZoneRule(
                name=z["name"],
                min_distance=float(z["min_distance"]),
                max_distance=float(z["max_distance"]),
                delivery_fee=float(z["delivery_fee"]),
                min_order_value=z.get("min_order_value"),
            )
            for z in zones_data
        ]
        errors = [error for rule in rules for error in zone_errors(rule)]
        if radius_km is not None and radius_km <= 0:
            errors.append("Delivery radius must be positive")
        if errors:
            raise ValidationError({"zones": errors})

        if delivery_profile is not None:
            profile = {**DEFAULT_DELIVERY_PROFILE, **delivery_profile}
            profile_errors = _profile_errors(profile)
            if profile_errors:
                raise ValidationError({"delivery_profile": profile_errors})
            self.delivery_profile = DeliveryProfile(**profile)

        if coordinates is not None:
            self.coordinates = Coordinates(**coordinates)

        for zone in list(self.zones or []):
            self.remove_zones(zone)
        for position, rule in enumerate(rules):
            self.add_zones(
                DeliveryZone(
                    position=position,
                    name=rule.name,
                    min_distance=rule.min_distance,
                    max_distance=rule.max_distance,
                    delivery_fee=rule.delivery_fee,
                    min_order_value=rule.min_order_value,
                )
            )
        if clear_radius:
            self.radius_km = None
        elif radius_km is not None:
            self.radius_km = radius_km

        warnings = find_zone_overlaps(rules) + find_zone_gaps(rules, self.radius_km)
        if warnings:
            logger.warning("Delivery zone configuration has warnings", shop_id=str(self.id), warnings=warnings)

        now = datetime.now(UTC)
        self.updated_at = now
        self.raise_(
            DeliverySettingsUpdated(
                shop_id=str(self.id),
                radius_km=self.radius_km,
                zone_count=len(rules),
                warnings=json.dumps(warnings),
                updated_at=now,
            )
        )
        return warnings

    def delivery_config(self) -> ShopDeliveryConfig:
        """Snapshot of the configuration the pricing engine resolves against."""
        zones = sorted(self.zones or [], key=lambda z: z.position)
        return ShopDeliveryConfig(
            coordinates=Coordinate(self.coordinates.lat, self.coordinates.lng) if self.coordinates else None,
            radius_km=self.radius_km,
            zones=tuple(zone.to_rule() for zone in zones),
        )
