"""Tests for settings loading."""

from fulfillment.config import Settings, get_settings, reset_settings, set_settings


class TestSettings:
    def test_defaults(self):
        settings = Settings()
        assert (settings.flat_fee, settings.free_delivery_threshold, settings.tax_rate) == (40.0, 199.0, 0.05)
        assert settings.currency == "INR"
        assert settings.rider_search_radius_km == 3.0

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("FULFILLMENT_FLAT_FEE", "30")
        monkeypatch.setenv("FULFILLMENT_TAX_RATE", "0.18")
        monkeypatch.setenv("PAYMENT_GATEWAY_ADAPTER", "razorpay")
        monkeypatch.setenv("RAZORPAY_KEY_SECRET", "live-secret")
        settings = Settings.from_env()
        assert settings.flat_fee == 30.0
        assert settings.tax_rate == 0.18
        assert settings.gateway_adapter == "razorpay"
        assert settings.gateway_key_secret == "live-secret"

    def test_overrides_are_copies(self):
        base = Settings()
        changed = base.with_overrides(flat_fee=10.0)
        assert changed.flat_fee == 10.0
        assert base.flat_fee == 40.0

    def test_set_and_reset(self, monkeypatch):
        monkeypatch.delenv("FULFILLMENT_FLAT_FEE", raising=False)
        set_settings(Settings(flat_fee=99.0))
        assert get_settings().flat_fee == 99.0
        reset_settings()
        assert get_settings().flat_fee == 40.0
