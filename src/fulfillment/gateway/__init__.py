"""Payment gateway factory.

Provides get_gateway() / set_gateway() to swap implementations:
- FakeGateway for development and testing
- RazorpayGateway when ``PAYMENT_GATEWAY_ADAPTER=razorpay``
"""

from fulfillment.config import get_settings
from fulfillment.gateway.fake_adapter import FakeGateway
from fulfillment.gateway.port import PaymentGateway
from fulfillment.gateway.razorpay_adapter import RazorpayGateway

_current_gateway: PaymentGateway | None = None


def _build_gateway() -> PaymentGateway:
    settings = get_settings()
    if settings.gateway_adapter == "fake":
        return FakeGateway(settings.gateway_key_id, settings.gateway_key_secret)
    if settings.gateway_adapter == "razorpay":
        return RazorpayGateway(settings.gateway_key_id, settings.gateway_key_secret)
    raise ValueError(f"Unknown payment gateway adapter: {settings.gateway_adapter}")


def get_gateway() -> PaymentGateway:
    """Return the current payment gateway, built from settings on first use."""
    global _current_gateway
    if _current_gateway is None:
        _current_gateway = _build_gateway()
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    """Override the active payment gateway (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    """Reset to default gateway."""
    global _current_gateway
    _current_gateway = None
