"""Tests for the delivery ETA estimate."""

from fulfillment.eta import EtaWindow, estimate_eta, eta_for_shop


class _Profile:
    base_prep_minutes = 5.0
    max_parallel_orders = 3
    buffer_minutes = 5.0
    avg_rider_speed_kmph = 20.0


class TestEstimateEta:
    def test_core_formula(self):
        # travel = 4 km at 20 km/h = 12 min; estimate = 5 + 12 = 17
        assert estimate_eta(5, 4, 20, 5) == EtaWindow(min_eta=12, max_eta=27)

    def test_minimum_is_floored_at_ten(self):
        window = estimate_eta(5, 0.5, 20, 5)
        assert window.min_eta == 10

    def test_unknown_distance_returns_none(self):
        assert estimate_eta(5, None, 20, 5) is None

    def test_whole_minutes(self):
        window = estimate_eta(5, 2.1016, 20, 5)
        assert isinstance(window.min_eta, int)
        assert isinstance(window.max_eta, int)

    def test_half_minutes_round_up(self):
        # 2.5 km at 20 km/h = 7.5 min; estimate = 10 + 7.5 = 17.5
        assert estimate_eta(10, 2.5, 20, 5) == EtaWindow(min_eta=13, max_eta=28)
        # estimate = 5 + 7.5 = 12.5, max = 22.5
        assert estimate_eta(5, 2.5, 20, 5).max_eta == 23

    def test_excess_pending_orders_add_prep_time(self):
        base = estimate_eta(5, 4, 20, 5, pending_orders=3, max_parallel_orders=3)
        loaded = estimate_eta(5, 4, 20, 5, pending_orders=5, max_parallel_orders=3)
        assert loaded.max_eta - base.max_eta == 4

    def test_peak_hour_stretches_travel(self):
        normal = estimate_eta(5, 4, 20, 5)
        peak = estimate_eta(5, 4, 20, 5, peak_hour=True)
        # 12 min travel becomes 15
        assert peak.max_eta - normal.max_eta == 3


class TestEtaForShop:
    def test_uses_profile(self):
        assert eta_for_shop(_Profile(), 4) == EtaWindow(min_eta=12, max_eta=27)

    def test_profile_capacity_applies(self):
        assert eta_for_shop(_Profile(), 4, pending_orders=4).max_eta == 29
