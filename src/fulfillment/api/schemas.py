"""Pydantic API schemas for the fulfillment pipeline.

These are the external API contracts, separate from domain commands.
The API layer translates between these schemas and domain commands.
Prices, fees and totals are never accepted from clients.
"""

from typing import Literal

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------
class CoordinateRequest(BaseModel):
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)


class CartLineRequest(BaseModel):
    product_id: str
    quantity: int
    unit_price: float | None = None


class DeliveryAddressRequest(BaseModel):
    street: str = ""
    city: str = ""
    pincode: str = ""
    state: str = ""


class CheckoutRequestBody(BaseModel):
    user_id: str | None = None
    items: list[CartLineRequest]
    delivery_address: DeliveryAddressRequest = DeliveryAddressRequest()
    payment_method: Literal["cash", "gateway"] = "cash"
    customer_location: CoordinateRequest | None = None
    notes: str | None = None
    peak_hour: bool = False


class RetryPaymentRequest(BaseModel):
    user_id: str


class ActorRequest(BaseModel):
    actor_role: Literal["shopkeeper", "rider", "customer"]
    actor_id: str


class AssignRiderRequest(ActorRequest):
    rider_id: str


class CancelOrderRequest(ActorRequest):
    reason: str | None = None


class VerifyPaymentRequest(BaseModel):
    order_id: str | None = None
    gateway_order_id: str | None = None
    gateway_payment_id: str | None = None
    signature: str | None = None


class DeliveryProfileRequest(BaseModel):
    base_prep_minutes: float = 5.0
    max_parallel_orders: int = 3
    buffer_minutes: float = 5.0
    avg_rider_speed_kmph: float = 20.0


class RegisterShopRequest(BaseModel):
    name: str
    owner_id: str
    location: CoordinateRequest | None = None
    radius_km: float | None = None
    delivery_profile: DeliveryProfileRequest | None = None


class DeliveryZoneRequest(BaseModel):
    name: str
    min_distance: float
    max_distance: float
    delivery_fee: float
    min_order_value: float | None = None


class DeliverySettingsRequest(BaseModel):
    zones: list[DeliveryZoneRequest] = []
    radius_km: float | None = None
    clear_radius: bool = False
    location: CoordinateRequest | None = None
    delivery_profile: DeliveryProfileRequest | None = None


class RegisterRiderRequest(BaseModel):
    name: str
    phone: str
    location: CoordinateRequest | None = None


class RiderOnlineRequest(BaseModel):
    is_online: bool


class ConfigureGatewayRequest(BaseModel):
    should_succeed: bool = True
    failure_reason: str = "Gateway unavailable"


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------
class StatusResponse(BaseModel):
    status: str


class EtaResponse(BaseModel):
    min_eta: int
    max_eta: int


class QuoteResponse(BaseModel):
    shop_id: str
    subtotal: float
    delivery_fee: float
    tax: float
    total: float
    zone_name: str | None = None
    distance_km: float | None = None
    unserviceable: bool
    reason: str
    shortfall: float = 0.0
    eta: EtaResponse | None = None


class GatewayParametersResponse(BaseModel):
    key_id: str
    gateway_order_id: str
    amount: int
    currency: str
    gateway_name: str


class CheckoutResponse(BaseModel):
    order_id: str
    order_number: str
    status: str
    total_amount: float
    payment_method: str
    tracking_url: str
    payment: GatewayParametersResponse | None = None


class OrderItemResponse(BaseModel):
    product_id: str
    name: str
    unit_price: float
    quantity: int
    total_price: float


class OrderResponse(BaseModel):
    order_id: str
    order_number: str
    status: str
    shop_id: str
    user_id: str
    rider_id: str | None = None
    items: list[OrderItemResponse]
    subtotal: float
    delivery_fee: float
    tax: float
    total_amount: float
    currency: str
    zone_name: str | None = None
    distance_km: float | None = None
    payment_method: str
    payment_status: str | None = None
    cancellation_reason: str | None = None
    cancelled_by: str | None = None
    eta: EtaResponse | None = None


class PaymentVerificationResponse(BaseModel):
    confirmed: bool
    reason: str
    already_verified: bool = False


class ShopIdResponse(BaseModel):
    shop_id: str


class DeliverySettingsResponse(BaseModel):
    status: str
    warnings: list[str]


class OrderStatsResponse(BaseModel):
    total_orders: int
    by_status: dict[str, int]
    revenue: float
    average_order_value: float


class RiderSuggestionResponse(BaseModel):
    rider_id: str
    rider_name: str
    distance_to_shop_km: float
    estimated_pickup_minutes: int


class RiderIdResponse(BaseModel):
    rider_id: str


class GatewayConfigResponse(BaseModel):
    gateway: str
    should_succeed: bool
    failure_reason: str
