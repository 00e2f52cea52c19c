"""Shop domain events: delivery configuration changes."""

from protean.fields import DateTime, Float, Identifier, Integer, String, Text

from fulfillment.domain import fulfillment


@fulfillment.event(part_of="Shop")
class ShopRegistered:
    """A shop was registered with its delivery configuration."""

    __version__ = 1

    shop_id = Identifier(required=True)
    name = String(required=True)
    owner_id = Identifier(required=True)
    registered_at = DateTime(required=True)


@fulfillment.event(part_of="Shop")
class DeliverySettingsUpdated:
    """The shop owner saved new delivery radius, zones or profile."""

    __version__ = 1

    shop_id = Identifier(required=True)
    radius_km = Float()
    zone_count = Integer(required=True)
    warnings = Text()  # JSON list of configuration warnings
    updated_at = DateTime(required=True)
