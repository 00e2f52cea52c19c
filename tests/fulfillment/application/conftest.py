import json

import pytest
from fulfillment.checkout.checkout import CartLine, CheckoutOrchestrator, CheckoutRequest
from fulfillment.geo import Coordinate
from fulfillment.shop.management import RegisterShop, UpdateDeliverySettings
from protean import current_domain

SHOP_LOCATION = Coordinate(12.9716, 77.5946)
KM_PER_DEGREE_LAT = 111.19492664455873
ADDRESS = {"street": "1 MG Road", "city": "Bengaluru", "pincode": "560001", "state": "Karnataka"}


def _km_north(km):
    return Coordinate(SHOP_LOCATION.lat + km / KM_PER_DEGREE_LAT, SHOP_LOCATION.lng)


@pytest.fixture()
def km_north():
    """Coordinate `km` kilometres due north of the shop."""
    return _km_north


@pytest.fixture()
def shop_id():
    """A shop 5 km radius with a single "Near" zone (0-3 km, fee 20)."""
    shop_id = current_domain.process(
        RegisterShop(
            name="Corner Kirana",
            owner_id="owner-1",
            lat=SHOP_LOCATION.lat,
            lng=SHOP_LOCATION.lng,
            radius_km=5.0,
        ),
        asynchronous=False,
    )
    current_domain.process(
        UpdateDeliverySettings(
            shop_id=shop_id,
            radius_km=5.0,
            zones=json.dumps([{"name": "Near", "min_distance": 0, "max_distance": 3, "delivery_fee": 20}]),
        ),
        asynchronous=False,
    )
    return shop_id


@pytest.fixture()
def stocked(directory, shop_id):
    directory.add_user("user-1", name="Asha")
    directory.add_product("prod-milk", shop_id, "Milk", 50.0)
    directory.add_product("prod-rice", shop_id, "Rice", 100.0)
    return directory


@pytest.fixture()
def orchestrator(stocked, gateway):
    return CheckoutOrchestrator(directory=stocked, gateway=gateway)


@pytest.fixture()
def checkout_request():
    """Build a request for a ₹250 cart, 2.1 km from the shop."""

    def _build(**overrides):
        kwargs = {
            "user_id": "user-1",
            "items": [CartLine("prod-milk", 3), CartLine("prod-rice", 1)],
            "delivery_address": dict(ADDRESS),
            "payment_method": "cash",
            "customer_coordinate": _km_north(2.1),
        }
        kwargs.update(overrides)
        return CheckoutRequest(**kwargs)

    return _build


@pytest.fixture()
def place_order(orchestrator, checkout_request):
    def _place(**overrides):
        return orchestrator.submit_checkout(checkout_request(**overrides))

    return _place
