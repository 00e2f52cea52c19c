"""Runtime settings for the fulfillment pipeline.

Pricing constants and gateway credentials are supplied at construction time,
never hard-coded into the pricing or checkout code. Values default to the
storefront's published rules and can be overridden through environment
variables.
"""

import os
from dataclasses import dataclass, replace

DEFAULT_FLAT_FEE = 40.0
DEFAULT_FREE_DELIVERY_THRESHOLD = 199.0
DEFAULT_TAX_RATE = 0.05
DEFAULT_CURRENCY = "INR"
DEFAULT_RIDER_SEARCH_RADIUS_KM = 3.0


@dataclass(frozen=True)
class Settings:
    flat_fee: float = DEFAULT_FLAT_FEE
    free_delivery_threshold: float = DEFAULT_FREE_DELIVERY_THRESHOLD
    tax_rate: float = DEFAULT_TAX_RATE
    currency: str = DEFAULT_CURRENCY
    gateway_adapter: str = "fake"
    gateway_key_id: str = "rzp_test_key"
    gateway_key_secret: str = "test-secret"
    rider_search_radius_km: float = DEFAULT_RIDER_SEARCH_RADIUS_KM

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from ``FULFILLMENT_*`` / ``RAZORPAY_*`` environment variables."""
        env = os.environ
        return cls(
            flat_fee=float(env.get("FULFILLMENT_FLAT_FEE", DEFAULT_FLAT_FEE)),
            free_delivery_threshold=float(
                env.get("FULFILLMENT_FREE_DELIVERY_THRESHOLD", DEFAULT_FREE_DELIVERY_THRESHOLD)
            ),
            tax_rate=float(env.get("FULFILLMENT_TAX_RATE", DEFAULT_TAX_RATE)),
            currency=env.get("FULFILLMENT_CURRENCY", DEFAULT_CURRENCY),
            gateway_adapter=env.get("PAYMENT_GATEWAY_ADAPTER", "fake"),
            gateway_key_id=env.get("RAZORPAY_KEY_ID", "rzp_test_key"),
            gateway_key_secret=env.get("RAZORPAY_KEY_SECRET", "test-secret"),
            rider_search_radius_km=float(
                env.get("FULFILLMENT_RIDER_SEARCH_RADIUS_KM", DEFAULT_RIDER_SEARCH_RADIUS_KM)
            ),
        )

    def with_overrides(self, **changes) -> "Settings":
        return replace(self, **changes)


_current_settings: Settings | None = None


def get_settings() -> Settings:
    """Return the active settings. Defaults to ``Settings.from_env()``."""
    global _current_settings
    if _current_settings is None:
        _current_settings = Settings.from_env()
    return _current_settings


def set_settings(settings: Settings) -> None:
    """Override the active settings (useful for tests)."""
    global _current_settings
    _current_settings = settings


def reset_settings() -> None:
    """Reset to settings read from the environment."""
    global _current_settings
    _current_settings = None
