"""Rider suggestion for a shop's next pickup.

Advisory only: the shopkeeper still assigns the rider explicitly.
"""

from dataclasses import dataclass
from functools import cmp_to_key

from protean.utils.globals import current_domain

from fulfillment.config import get_settings
from fulfillment.geo import distance_km
from fulfillment.rider.rider import Rider
from fulfillment.shop.shop import Shop

PICKUP_SPEED_KMPH = 20.0
DISTANCE_TIE_KM = 0.1


@dataclass(frozen=True)
class RiderSuggestion:
    rider_id: str
    rider_name: str
    distance_to_shop_km: float
    estimated_pickup_minutes: int


def rank_riders(riders, shop_coordinate, search_radius_km):
    """Available riders within ``search_radius_km`` of the shop, best first.

    Closest first; riders within 0.1 km of each other are ordered by most
    recent update.
    """
    candidates = []
    for rider in riders:
        if not rider.is_available or rider.location is None:
            continue
        distance = distance_km(rider.location, shop_coordinate)
        if distance <= search_radius_km:
            candidates.append((rider, distance))

    def compare(a, b):
        if abs(a[1] - b[1]) > DISTANCE_TIE_KM:
            return -1 if a[1] < b[1] else 1
        a_updated, b_updated = a[0].updated_at, b[0].updated_at
        if a_updated == b_updated:
            return 0
        return -1 if a_updated > b_updated else 1

    return sorted(candidates, key=cmp_to_key(compare))


def suggest_rider(shop_id, settings=None) -> RiderSuggestion | None:
    """Nearest available rider for ``shop_id``, or ``None`` when nobody is close enough."""
    settings = settings or get_settings()
    shop = current_domain.repository_for(Shop).get(shop_id)
    if shop.coordinates is None:
        return None

    riders = current_domain.repository_for(Rider)._dao.query.filter(is_online=True, is_busy=False).all().items
    ranked = rank_riders(riders, shop.coordinates, settings.rider_search_radius_km)
    if not ranked:
        return None

    rider, distance = ranked[0]
    return RiderSuggestion(
        rider_id=str(rider.id),
        rider_name=rider.name,
        distance_to_shop_km=round(distance, 2),
        estimated_pickup_minutes=round(distance / PICKUP_SPEED_KMPH * 60),
    )
