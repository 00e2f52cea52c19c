"""Application tests for the rider pool and rider suggestions."""

import pytest
from fulfillment.config import Settings
from fulfillment.rider.dispatch import suggest_rider
from fulfillment.rider.management import RegisterRider, SetRiderOnline, UpdateRiderLocation
from fulfillment.rider.rider import Rider
from protean import current_domain
from protean.exceptions import ValidationError

SHOP_LAT, SHOP_LNG = 12.9716, 77.5946
KM_PER_DEGREE_LAT = 111.19492664455873


def _register_rider(name="Ravi", km=1.0, online=True):
    rider_id = current_domain.process(
        RegisterRider(name=name, phone="9999999999", lat=SHOP_LAT + km / KM_PER_DEGREE_LAT, lng=SHOP_LNG),
        asynchronous=False,
    )
    if online:
        current_domain.process(SetRiderOnline(rider_id=rider_id, is_online=True), asynchronous=False)
    return rider_id


class TestRiderCommands:
    def test_register_persists_offline_rider(self):
        rider = current_domain.repository_for(Rider).get(_register_rider(online=False))
        assert not rider.is_online
        assert rider.location is not None

    def test_set_online(self):
        rider = current_domain.repository_for(Rider).get(_register_rider())
        assert rider.is_available

    def test_update_location(self):
        rider_id = _register_rider()
        current_domain.process(UpdateRiderLocation(rider_id=rider_id, lat=13.0, lng=77.6), asynchronous=False)
        rider = current_domain.repository_for(Rider).get(rider_id)
        assert (rider.location.lat, rider.location.lng) == (13.0, 77.6)

    def test_invalid_latitude_rejected(self):
        rider_id = _register_rider()
        with pytest.raises(ValidationError):
            current_domain.process(UpdateRiderLocation(rider_id=rider_id, lat=123.0, lng=77.6), asynchronous=False)


class TestSuggestRider:
    def test_nearest_available_rider(self, shop_id):
        _register_rider("Far", km=2.5)
        near_id = _register_rider("Near", km=0.6)
        _register_rider("Offline", km=0.1, online=False)

        suggestion = suggest_rider(shop_id)
        assert suggestion.rider_id == near_id
        assert suggestion.rider_name == "Near"
        assert suggestion.distance_to_shop_km == pytest.approx(0.6, abs=0.01)
        # 0.6 km at 20 km/h
        assert suggestion.estimated_pickup_minutes == 2

    def test_nobody_within_search_radius(self, shop_id):
        _register_rider(km=4.0)
        assert suggest_rider(shop_id) is None

    def test_search_radius_from_settings(self, shop_id):
        _register_rider(km=4.0)
        assert suggest_rider(shop_id, settings=Settings(rider_search_radius_km=5.0)) is not None
