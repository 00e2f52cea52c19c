"""Shop management: register a shop and save its delivery settings."""

import json

from protean import handle
from protean.fields import Boolean, Float, Identifier, String, Text
from protean.utils.globals import current_domain

from fulfillment.domain import fulfillment
from fulfillment.shop.shop import Shop
from fulfillment.utils.logging import get_logger

logger = get_logger(__name__)


@fulfillment.command(part_of="Shop")
class RegisterShop:
    name = String(required=True, max_length=255)
    owner_id = Identifier(required=True)
    lat = Float()
    lng = Float()
    radius_km = Float()
    delivery_profile = Text()  # JSON object, merged over the defaults


@fulfillment.command(part_of="Shop")
class UpdateDeliverySettings:
    """Replace a shop's zones. Zones are matched in the order given."""

    shop_id = Identifier(required=True)
    zones = Text(required=True)  # JSON list of zone dicts
    radius_km = Float()
    delivery_profile = Text()
    lat = Float()
    lng = Float()
    clear_radius = Boolean(default=False)


def _coordinates(command):
    if command.lat is None or command.lng is None:
        return None
    return {"lat": command.lat, "lng": command.lng}


@fulfillment.command_handler(part_of=Shop)
class ShopManagementHandler:
    @handle(RegisterShop)
    def register_shop(self, command):
        shop = Shop.create(
            name=command.name,
            owner_id=command.owner_id,
            coordinates=_coordinates(command),
            radius_km=command.radius_km,
            delivery_profile=json.loads(command.delivery_profile) if command.delivery_profile else None,
        )
        current_domain.repository_for(Shop).add(shop)
        logger.info("Shop registered", shop_id=str(shop.id), owner_id=str(command.owner_id))
        return str(shop.id)

    @handle(UpdateDeliverySettings)
    def update_delivery_settings(self, command):
        repo = current_domain.repository_for(Shop)
        shop = repo.get(command.shop_id)
        warnings = shop.update_delivery_settings(
            zones_data=json.loads(command.zones),
            radius_km=command.radius_km,
            delivery_profile=json.loads(command.delivery_profile) if command.delivery_profile else None,
            coordinates=_coordinates(command),
            clear_radius=bool(command.clear_radius),
        )
        repo.add(shop)
        return warnings
