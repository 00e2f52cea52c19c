"""Tests for the Shop aggregate's delivery configuration."""

import pytest
from fulfillment.shop.events import DeliverySettingsUpdated, ShopRegistered
from fulfillment.shop.shop import Shop
from protean.exceptions import ValidationError


def _make_shop(**overrides):
    kwargs = {
        "name": "Corner Kirana",
        "owner_id": "owner-1",
        "coordinates": {"lat": 12.9716, "lng": 77.5946},
        "radius_km": 5.0,
    }
    kwargs.update(overrides)
    return Shop.create(**kwargs)


def _zone(name, lo, hi, fee, min_order_value=None):
    return {"name": name, "min_distance": lo, "max_distance": hi, "delivery_fee": fee, "min_order_value": min_order_value}


class TestCreateShop:
    def test_default_delivery_profile(self):
        shop = _make_shop()
        profile = shop.delivery_profile
        assert profile.base_prep_minutes == 5.0
        assert profile.max_parallel_orders == 3
        assert profile.buffer_minutes == 5.0
        assert profile.avg_rider_speed_kmph == 20.0

    def test_raises_shop_registered(self):
        shop = _make_shop()
        assert isinstance(shop._events[0], ShopRegistered)

    def test_location_is_optional(self):
        shop = _make_shop(coordinates=None, radius_km=None)
        assert shop.delivery_config().coordinates is None

    def test_non_positive_radius_rejected(self):
        with pytest.raises(ValidationError):
            _make_shop(radius_km=0)

    def test_non_positive_profile_rejected(self):
        with pytest.raises(ValidationError):
            _make_shop(delivery_profile={"avg_rider_speed_kmph": 0})


class TestUpdateDeliverySettings:
    def test_zones_kept_in_declared_order(self):
        shop = _make_shop()
        shop.update_delivery_settings([_zone("Wide", 0, 5, 30), _zone("Near", 0, 2, 10)], radius_km=5)
        config = shop.delivery_config()
        assert [z.name for z in config.zones] == ["Wide", "Near"]

    def test_overlap_and_gap_returned_as_warnings(self):
        shop = _make_shop()
        warnings = shop.update_delivery_settings(
            [_zone("A", 0, 3, 10), _zone("B", 2, 4, 20)],
            radius_km=5,
        )
        assert any("overlap" in w for w in warnings)
        assert any("4-5 km" in w for w in warnings)

    def test_clean_configuration_has_no_warnings(self):
        shop = _make_shop()
        assert shop.update_delivery_settings([_zone("A", 0, 2, 10), _zone("B", 2, 5, 20)], radius_km=5) == []

    def test_malformed_zone_rejected(self):
        shop = _make_shop()
        with pytest.raises(ValidationError) as exc:
            shop.update_delivery_settings([_zone("Bad", 3, 1, 10)], radius_km=5)
        assert "zones" in exc.value.messages

    def test_replaces_previous_zones(self):
        shop = _make_shop()
        shop.update_delivery_settings([_zone("A", 0, 2, 10), _zone("B", 2, 5, 20)], radius_km=5)
        shop.update_delivery_settings([_zone("Only", 0, 5, 15)], radius_km=5)
        assert [z.name for z in shop.delivery_config().zones] == ["Only"]

    def test_profile_and_location_updates(self):
        shop = _make_shop()
        shop.update_delivery_settings(
            [],
            radius_km=3,
            delivery_profile={"base_prep_minutes": 8},
            coordinates={"lat": 12.98, "lng": 77.6},
        )
        assert shop.delivery_profile.base_prep_minutes == 8
        assert shop.delivery_profile.max_parallel_orders == 3
        assert shop.coordinates.lat == 12.98
        assert shop.radius_km == 3

    def test_raises_settings_updated(self):
        shop = _make_shop()
        shop.update_delivery_settings([_zone("A", 0, 3, 10)], radius_km=5)
        event = shop._events[-1]
        assert isinstance(event, DeliverySettingsUpdated)
        assert event.zone_count == 1

    def test_zone_only_update_keeps_radius(self):
        shop = _make_shop(radius_km=5.0)
        warnings = shop.update_delivery_settings([_zone("A", 0, 3, 10)])
        assert shop.radius_km == 5.0
        assert shop._events[-1].radius_km == 5.0
        assert any("3-5 km" in w for w in warnings)

    def test_clear_radius_removes_cutoff(self):
        shop = _make_shop(radius_km=5.0)
        shop.update_delivery_settings([_zone("A", 0, 3, 10)], clear_radius=True)
        assert shop.radius_km is None
