"""Checkout orchestrator: validate a cart and create an order exactly once.

Validation runs fail-fast in a fixed order and never writes anything:

1. identity resolves to a persisted user record
2. every cart line resolves to an existing product with a positive quantity
3. all products come from one shop
4. the delivery address is complete
5. the shop delivers to the customer and any zone minimum is met
6. tax and total are computed from catalogue prices

Only then is the order persisted (one unit of work). For gateway payments the
gateway is called after the order exists and outside any lock; if it fails
the order stays ``pending`` with no payment attempt and the caller is told to
retry payment, never to resubmit the cart.
"""

import json
from dataclasses import dataclass, field

from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from fulfillment.config import Settings, get_settings
from fulfillment.directory import get_directory
from fulfillment.directory.port import Directory
from fulfillment.errors import (
    ActorNotPermitted,
    ExternalDependencyError,
    NotAuthenticated,
    UnserviceableError,
    UserNotReady,
)
from fulfillment.eta import EtaWindow, eta_for_shop
from fulfillment.gateway import get_gateway
from fulfillment.gateway.port import GatewayError, PaymentGateway, to_minor_units
from fulfillment.geo import Coordinate
from fulfillment.order.order import Order, OrderPaymentStatus, OrderStatus, PaymentMethod
from fulfillment.order.placement import PlaceOrder
from fulfillment.order.transitions import order_lock
from fulfillment.payment.initiation import InitiatePayment
from fulfillment.pricing import DeliveryQuote, resolve_delivery
from fulfillment.shop.shop import Shop
from fulfillment.utils.logging import get_logger

logger = get_logger(__name__)

ADDRESS_FIELDS = ("street", "city", "pincode", "state")

# Orders the shop is still preparing, for the ETA load adjustment
_ACTIVE_STATUSES = (OrderStatus.PENDING.value, OrderStatus.ACCEPTED_BY_SHOPKEEPER.value)


@dataclass(frozen=True)
class CartLine:
    product_id: str
    quantity: int
    unit_price: float | None = None  # client display price, ignored


@dataclass(frozen=True)
class CheckoutRequest:
    user_id: str | None
    items: list[CartLine]
    delivery_address: dict = field(default_factory=dict)
    payment_method: str = PaymentMethod.CASH.value
    customer_coordinate: Coordinate | None = None
    notes: str | None = None
    peak_hour: bool = False


@dataclass(frozen=True)
class CheckoutQuote:
    shop_id: str
    lines: list[dict]
    subtotal: float
    delivery_fee: float
    tax: float
    total: float
    delivery: DeliveryQuote
    eta: EtaWindow | None
    shortfall: float = 0.0

    @property
    def serviceable(self) -> bool:
        return not self.delivery.unserviceable and self.shortfall == 0


@dataclass(frozen=True)
class GatewayParameters:
    """What the client needs to open the gateway's checkout widget."""

    key_id: str
    gateway_order_id: str
    amount: int  # paise
    currency: str
    gateway_name: str


@dataclass(frozen=True)
class CheckoutResult:
    order_id: str
    order_number: str
    status: str
    total_amount: float
    payment_method: str
    tracking_url: str
    payment: GatewayParameters | None = None


class CheckoutOrchestrator:
    def __init__(
        self,
        settings: Settings | None = None,
        directory: Directory | None = None,
        gateway: PaymentGateway | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.directory = directory or get_directory()
        self.gateway = gateway or get_gateway()

    # -------------------------------------------------------------------
    # Validation (steps 1-6, read-only)
    # -------------------------------------------------------------------
    def _resolve_user(self, user_id):
        if not user_id:
            raise NotAuthenticated()
        user = self.directory.get_user(str(user_id))
        if user is None:
            logger.info("Checkout before user record synced", user_id=str(user_id))
            raise UserNotReady(str(user_id))
        return user

    def _price_lines(self, items):
        if not items:
            raise ValidationError({"items": ["Your cart is empty"]})
        for line in items:
            if line.quantity is None or line.quantity <= 0:
                raise ValidationError({"items": [f"Quantity for product {line.product_id} must be positive"]})

        products = self.directory.get_products([str(line.product_id) for line in items])
        priced = []
        for line in items:
            product = products.get(str(line.product_id))
            if product is None or not product.is_available:
                raise ValidationError({"items": [f"Product {line.product_id} is no longer available"]})
            priced.append(
                {
                    "product_id": product.product_id,
                    "shop_id": product.shop_id,
                    "name": product.name,
                    "unit_price": product.price,
                    "quantity": line.quantity,
                }
            )
        return priced

    def _resolve_shop(self, priced):
        shop_ids = {line["shop_id"] for line in priced}
        if len(shop_ids) > 1:
            raise ValidationError({"items": ["All items must come from the same shop"]})
        try:
            return current_domain.repository_for(Shop).get(shop_ids.pop())
        except ObjectNotFoundError as exc:
            raise ValidationError({"shop_id": ["Shop not found"]}) from exc

    @staticmethod
    def _check_address(address):
        blank = [name for name in ADDRESS_FIELDS if not str((address or {}).get(name) or "").strip()]
        if blank:
            raise ValidationError({"delivery_address": [f"{name} is required" for name in blank]})

    def _pending_orders(self, shop_id) -> int:
        orders = current_domain.repository_for(Order).for_shop(shop_id)
        return sum(1 for order in orders if order.status in _ACTIVE_STATUSES)

    def _build_quote(self, request, shop, priced) -> CheckoutQuote:
        subtotal = round(sum(line["unit_price"] * line["quantity"] for line in priced), 2)
        delivery = resolve_delivery(shop.delivery_config(), request.customer_coordinate, subtotal, self.settings)
        fee = delivery.fee
        tax = round(subtotal * self.settings.tax_rate, 2)
        eta = eta_for_shop(
            shop.delivery_profile,
            delivery.distance_km,
            pending_orders=self._pending_orders(shop.id),
            peak_hour=request.peak_hour,
        )
        return CheckoutQuote(
            shop_id=str(shop.id),
            lines=[{k: v for k, v in line.items() if k != "shop_id"} for line in priced],
            subtotal=subtotal,
            delivery_fee=fee,
            tax=tax,
            total=round(subtotal + fee + tax, 2),
            delivery=delivery,
            eta=eta,
            shortfall=delivery.shortfall(subtotal),
        )

    def quote(self, request: CheckoutRequest) -> CheckoutQuote:
        """Preview fee, tax, total and ETA for a cart. Unserviceable carts are reported, not raised."""
        self._resolve_user(request.user_id)
        priced = self._price_lines(request.items)
        shop = self._resolve_shop(priced)
        return self._build_quote(request, shop, priced)

    def validate(self, request: CheckoutRequest) -> tuple[Shop, CheckoutQuote]:
        self._resolve_user(request.user_id)
        priced = self._price_lines(request.items)
        shop = self._resolve_shop(priced)
        self._check_address(request.delivery_address)
        if request.payment_method not in {method.value for method in PaymentMethod}:
            raise ValidationError({"payment_method": [f"Unsupported payment method {request.payment_method}"]})

        quote = self._build_quote(request, shop, priced)
        if quote.delivery.unserviceable:
            raise UnserviceableError(quote.delivery.reason)
        if quote.shortfall > 0:
            raise UnserviceableError(
                f"Add {quote.shortfall:.2f} more to reach the minimum order of "
                f"{quote.delivery.min_order_value:g} for the {quote.delivery.zone_name} zone",
                shortfall=quote.shortfall,
            )
        return shop, quote

    # -------------------------------------------------------------------
    # Submission (steps 7-8)
    # -------------------------------------------------------------------
    def submit_checkout(self, request: CheckoutRequest) -> CheckoutResult:
        shop, quote = self.validate(request)

        address = {name: str(request.delivery_address[name]).strip() for name in ADDRESS_FIELDS}
        if request.customer_coordinate is not None:
            address.update(lat=request.customer_coordinate.lat, lng=request.customer_coordinate.lng)

        command = PlaceOrder(
            shop_id=quote.shop_id,
            shopkeeper_id=str(shop.owner_id),
            user_id=str(request.user_id),
            items=json.dumps(quote.lines),
            delivery_address=json.dumps(address),
            payment_method=request.payment_method,
            delivery_fee=quote.delivery_fee,
            tax=quote.tax,
            currency=self.settings.currency,
            zone_name=quote.delivery.zone_name,
            distance_km=quote.delivery.distance_km,
            eta_min_minutes=quote.eta.min_eta if quote.eta else None,
            eta_max_minutes=quote.eta.max_eta if quote.eta else None,
            notes=request.notes,
        )
        order_id = current_domain.process(command, asynchronous=False)
        order = current_domain.repository_for(Order).get(order_id)
        logger.info(
            "Order placed",
            order_id=order_id,
            order_number=order.order_number,
            shop_id=quote.shop_id,
            total_amount=order.total_amount,
            payment_method=order.payment_method,
        )

        payment = None
        if request.payment_method == PaymentMethod.GATEWAY.value:
            payment = self._start_payment(order)

        return CheckoutResult(
            order_id=order_id,
            order_number=order.order_number,
            status=order.status,
            total_amount=order.total_amount,
            payment_method=order.payment_method,
            tracking_url=f"/track/{order_id}",
            payment=payment,
        )

    def _start_payment(self, order) -> GatewayParameters:
        order_id = str(order.id)
        try:
            gateway_order = self.gateway.create_order(
                to_minor_units(order.total_amount),
                order.currency,
                receipt=order.order_number,
                notes={"order_id": order_id},
            )
        except GatewayError as e:
            logger.error("Payment could not start", order_id=order_id, error=str(e))
            raise ExternalDependencyError(
                "Payment could not start. Your order was saved, please retry payment.",
                order_id=order_id,
                order_created=True,
                payment_started=False,
            ) from e

        with order_lock(order_id):
            current_domain.process(
                InitiatePayment(
                    order_id=order_id,
                    gateway_order_id=gateway_order.gateway_order_id,
                    amount=order.total_amount,
                    currency=order.currency,
                    gateway_name=self.gateway.name,
                ),
                asynchronous=False,
            )
        logger.info("Payment initiated", order_id=order_id, gateway_order_id=gateway_order.gateway_order_id)

        return GatewayParameters(
            key_id=self.gateway.client_config()["key_id"],
            gateway_order_id=gateway_order.gateway_order_id,
            amount=gateway_order.amount,
            currency=gateway_order.currency,
            gateway_name=self.gateway.name,
        )

    def retry_payment(self, order_id, user_id) -> GatewayParameters:
        """Start a fresh gateway order for a saved order whose payment did not complete."""
        order = current_domain.repository_for(Order).get(order_id)
        if str(order.user_id) != str(user_id):
            raise ActorNotPermitted("customer", "retry payment", reason="This order does not belong to the customer")
        if order.payment_method != PaymentMethod.GATEWAY.value:
            raise ValidationError({"payment_method": ["Order is not paid online"]})
        if order.payment_status == OrderPaymentStatus.VERIFIED.value:
            raise ValidationError({"payment": ["Order is already paid"]})
        if order.status != OrderStatus.PENDING.value:
            raise ValidationError({"status": ["Payment can only be retried for a pending order"]})
        return self._start_payment(order)
