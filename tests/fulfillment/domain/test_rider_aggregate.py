"""Tests for the Rider aggregate and rider ranking."""

from datetime import UTC, datetime, timedelta

import pytest
from fulfillment.errors import RiderUnavailable
from fulfillment.geo import Coordinate
from fulfillment.rider.dispatch import rank_riders
from fulfillment.rider.rider import Rider
from protean.exceptions import ValidationError

SHOP = Coordinate(12.9716, 77.5946)


def _make_rider(name="Ravi", km_north=0.5, online=True):
    rider = Rider.register(name, "9999999999", location={"lat": SHOP.lat + km_north / 111.19492664455873, "lng": SHOP.lng})
    if online:
        rider.set_online(True)
    return rider


class TestAvailability:
    def test_new_rider_is_offline(self):
        rider = Rider.register("Ravi", "9999999999")
        assert not rider.is_available

    def test_online_rider_is_available(self):
        assert _make_rider().is_available

    def test_reserve_makes_rider_busy(self):
        rider = _make_rider()
        rider.reserve("order-1")
        assert rider.is_busy
        assert rider.assigned_order_id == "order-1"
        assert not rider.is_available

    def test_busy_rider_cannot_be_reserved_again(self):
        rider = _make_rider()
        rider.reserve("order-1")
        with pytest.raises(RiderUnavailable):
            rider.reserve("order-2")

    def test_offline_rider_cannot_be_reserved(self):
        with pytest.raises(RiderUnavailable):
            _make_rider(online=False).reserve("order-1")

    def test_release_frees_rider(self):
        rider = _make_rider()
        rider.reserve("order-1")
        assert rider.release("order-1")
        assert rider.is_available
        assert rider.assigned_order_id is None

    def test_release_for_other_order_is_ignored(self):
        rider = _make_rider()
        rider.reserve("order-1")
        assert not rider.release("order-2")
        assert rider.is_busy

    def test_cannot_go_offline_while_busy(self):
        rider = _make_rider()
        rider.reserve("order-1")
        with pytest.raises(ValidationError):
            rider.set_online(False)


class TestRankRiders:
    def test_closest_first(self):
        near, far = _make_rider("Near", 0.5), _make_rider("Far", 2.0)
        ranked = rank_riders([far, near], SHOP, 3.0)
        assert [r.name for r, _ in ranked] == ["Near", "Far"]

    def test_outside_search_radius_excluded(self):
        assert rank_riders([_make_rider(km_north=3.5)], SHOP, 3.0) == []

    def test_unavailable_excluded(self):
        busy = _make_rider()
        busy.reserve("order-1")
        assert rank_riders([busy, _make_rider(online=False)], SHOP, 3.0) == []

    def test_near_tie_prefers_most_recent_update(self):
        stale, fresh = _make_rider("Stale", 1.0), _make_rider("Fresh", 1.05)
        stale.updated_at = datetime.now(UTC) - timedelta(minutes=10)
        ranked = rank_riders([stale, fresh], SHOP, 3.0)
        assert ranked[0][0].name == "Fresh"
