"""Payment gateway port (abstract interface).

Defines the contract every gateway adapter implements, so checkout and
reconciliation code never depends on a specific provider. Amounts cross
this boundary in the currency's smallest unit (paise).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


class GatewayError(Exception):
    """The gateway could not be reached or refused the request."""


@dataclass(frozen=True)
class GatewayOrder:
    """A gateway-side order the customer completes payment against."""

    gateway_order_id: str
    amount: int  # paise
    currency: str
    receipt: str
    status: str = "created"


def to_minor_units(amount: float) -> int:
    return int(round(amount * 100))


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    name = "gateway"

    @abstractmethod
    def create_order(self, amount: int, currency: str, receipt: str, notes: dict | None = None) -> GatewayOrder:
        """Create a gateway order for ``amount`` (paise). Raises ``GatewayError``."""
        ...

    @abstractmethod
    def verify_signature(self, gateway_order_id: str, gateway_payment_id: str, signature: str) -> bool:
        """Check a client-side completion signature in constant time."""
        ...

    @abstractmethod
    def client_config(self) -> dict:
        """Public parameters the client needs to open the checkout widget."""
        ...
