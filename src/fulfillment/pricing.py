"""Delivery pricing engine: fee, serviceability and matched zone for a cart.

Resolution order (first matching rule wins):

1. No customer coordinate, or the shop has no coordinates → flat-fee rule.
   A customer is never blocked purely for missing geolocation.
2. Customer beyond ``radius_km`` → unserviceable.
3. First zone, in declared order, with ``min_distance <= d <= max_distance``.
4. In radius but no zone matches (a configuration gap) → flat-fee rule,
   with a distance-aware reason.

``resolve_delivery`` is a pure query. Checkout calls it for the quote shown
to the customer and again, with the same inputs, when the order is placed,
so the quoted fee is the charged fee.
"""

from dataclasses import dataclass, field

from fulfillment.config import Settings, get_settings
from fulfillment.geo import Coordinate, distance_km


@dataclass(frozen=True)
class ZoneRule:
    name: str
    min_distance: float
    max_distance: float
    delivery_fee: float
    min_order_value: float | None = None

    def covers(self, distance: float) -> bool:
        return self.min_distance <= distance <= self.max_distance


@dataclass(frozen=True)
class ShopDeliveryConfig:
    coordinates: Coordinate | None = None
    radius_km: float | None = None
    zones: tuple[ZoneRule, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class DeliveryQuote:
    fee: float
    unserviceable: bool
    reason: str
    zone_name: str | None = None
    min_order_value: float | None = None
    distance_km: float | None = None

    def shortfall(self, subtotal: float) -> float:
        """Amount still needed to reach the zone's minimum order value (0 if met)."""
        if self.min_order_value is None or subtotal >= self.min_order_value:
            return 0.0
        return round(self.min_order_value - subtotal, 2)


def _flat_fee(subtotal: float, settings: Settings) -> tuple[float, str]:
    if subtotal >= settings.free_delivery_threshold:
        return 0.0, f"Free delivery on orders of {settings.free_delivery_threshold:g} or more"
    return settings.flat_fee, f"Flat delivery fee of {settings.flat_fee:g} applies"


def resolve_delivery(
    config: ShopDeliveryConfig,
    customer_coordinate: Coordinate | None,
    subtotal: float,
    settings: Settings | None = None,
) -> DeliveryQuote:
    settings = settings or get_settings()

    if customer_coordinate is None or config.coordinates is None:
        fee, rule = _flat_fee(subtotal, settings)
        return DeliveryQuote(fee=fee, unserviceable=False, reason=f"Delivery location unknown. {rule}")

    distance = distance_km(config.coordinates, customer_coordinate)

    if config.radius_km is not None and distance > config.radius_km:
        return DeliveryQuote(
            fee=0.0,
            unserviceable=True,
            reason=f"Shop delivers within {config.radius_km:g} km; your location is {distance:.2f} km away",
            distance_km=distance,
        )

    zone = next((z for z in config.zones if z.covers(distance)), None)
    if zone is None:
        fee, rule = _flat_fee(subtotal, settings)
        return DeliveryQuote(
            fee=fee,
            unserviceable=False,
            reason=f"No delivery zone covers {distance:.2f} km. {rule}",
            distance_km=distance,
        )

    min_order_value = zone.min_order_value if zone.min_order_value and zone.min_order_value > 0 else None
    return DeliveryQuote(
        fee=zone.delivery_fee,
        unserviceable=False,
        reason=f"{zone.name} zone ({zone.min_distance:g}-{zone.max_distance:g} km)",
        zone_name=zone.name,
        min_order_value=min_order_value,
        distance_km=distance,
    )


# ---------------------------------------------------------------------------
# Configuration checks
# ---------------------------------------------------------------------------
def zone_errors(zone: ZoneRule) -> list[str]:
    """Well-formedness problems with a single zone."""
    errors = []
    if zone.min_distance < 0:
        errors.append(f"Zone '{zone.name}': min_distance must not be negative")
    if zone.max_distance <= zone.min_distance:
        errors.append(f"Zone '{zone.name}': max_distance must be greater than min_distance")
    if zone.delivery_fee < 0:
        errors.append(f"Zone '{zone.name}': delivery_fee must not be negative")
    if zone.min_order_value is not None and zone.min_order_value < 0:
        errors.append(f"Zone '{zone.name}': min_order_value must not be negative")
    return errors


def find_zone_overlaps(zones) -> list[str]:
    """Pairs of zones sharing more than a boundary point. The earlier zone wins at charge time."""
    warnings = []
    for i, earlier in enumerate(zones):
        for later in zones[i + 1 :]:
            if max(earlier.min_distance, later.min_distance) < min(earlier.max_distance, later.max_distance):
                warnings.append(
                    f"Zones '{earlier.name}' and '{later.name}' overlap; '{earlier.name}' takes precedence"
                )
    return warnings


def find_zone_gaps(zones, radius_km: float | None) -> list[str]:
    """Distance ranges inside the radius that no zone covers (the flat fee applies there)."""
    if not zones:
        return []

    warnings = []
    covered_to = 0.0
    for zone in sorted(zones, key=lambda z: z.min_distance):
        if zone.min_distance > covered_to:
            warnings.append(f"No zone covers {covered_to:g}-{zone.min_distance:g} km; the flat fee applies there")
        covered_to = max(covered_to, zone.max_distance)

    if radius_km is not None and covered_to < radius_km:
        warnings.append(f"No zone covers {covered_to:g}-{radius_km:g} km; the flat fee applies there")
    return warnings
