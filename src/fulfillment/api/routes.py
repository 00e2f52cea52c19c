"""FastAPI routes for the fulfillment pipeline."""

import json
import os

from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse
from protean.utils.globals import current_domain

from fulfillment.api.schemas import (
    ActorRequest,
    AssignRiderRequest,
    CancelOrderRequest,
    CheckoutRequestBody,
    CheckoutResponse,
    ConfigureGatewayRequest,
    CoordinateRequest,
    DeliverySettingsRequest,
    DeliverySettingsResponse,
    EtaResponse,
    GatewayConfigResponse,
    GatewayParametersResponse,
    OrderItemResponse,
    OrderResponse,
    OrderStatsResponse,
    PaymentVerificationResponse,
    QuoteResponse,
    RegisterRiderRequest,
    RegisterShopRequest,
    RetryPaymentRequest,
    RiderIdResponse,
    RiderOnlineRequest,
    RiderSuggestionResponse,
    ShopIdResponse,
    StatusResponse,
    VerifyPaymentRequest,
)
from fulfillment.checkout.checkout import CartLine, CheckoutOrchestrator, CheckoutRequest
from fulfillment.gateway import get_gateway
from fulfillment.gateway.fake_adapter import FakeGateway
from fulfillment.geo import Coordinate
from fulfillment.order import transitions
from fulfillment.order.order import Actor, ActorRole, Order
from fulfillment.order.repository import order_stats
from fulfillment.payment.verification import verify_payment
from fulfillment.rider.dispatch import suggest_rider
from fulfillment.rider.management import RegisterRider, SetRiderOnline, UpdateRiderLocation
from fulfillment.shop.management import RegisterShop, UpdateDeliverySettings


def _actor(body: ActorRequest) -> Actor:
    return Actor(ActorRole(body.actor_role), body.actor_id)


def _gateway_response(params) -> GatewayParametersResponse | None:
    if params is None:
        return None
    return GatewayParametersResponse(
        key_id=params.key_id,
        gateway_order_id=params.gateway_order_id,
        amount=params.amount,
        currency=params.currency,
        gateway_name=params.gateway_name,
    )


def _checkout_request(body: CheckoutRequestBody) -> CheckoutRequest:
    location = body.customer_location
    return CheckoutRequest(
        user_id=body.user_id,
        items=[CartLine(line.product_id, line.quantity, line.unit_price) for line in body.items],
        delivery_address=body.delivery_address.model_dump(),
        payment_method=body.payment_method,
        customer_coordinate=Coordinate(location.lat, location.lng) if location else None,
        notes=body.notes,
        peak_hour=body.peak_hour,
    )


def _order_response(order: Order) -> OrderResponse:
    eta = None
    if order.eta_min_minutes is not None and order.eta_max_minutes is not None:
        eta = EtaResponse(min_eta=order.eta_min_minutes, max_eta=order.eta_max_minutes)
    return OrderResponse(
        order_id=str(order.id),
        order_number=order.order_number,
        status=order.status,
        shop_id=str(order.shop_id),
        user_id=str(order.user_id),
        rider_id=str(order.rider_id) if order.rider_id else None,
        items=[
            OrderItemResponse(
                product_id=str(item.product_id),
                name=item.name,
                unit_price=item.unit_price,
                quantity=item.quantity,
                total_price=item.total_price,
            )
            for item in order.items
        ],
        subtotal=order.subtotal,
        delivery_fee=order.delivery_fee,
        tax=order.tax,
        total_amount=order.total_amount,
        currency=order.currency,
        zone_name=order.zone_name,
        distance_km=order.distance_km,
        payment_method=order.payment_method,
        payment_status=order.payment_status,
        cancellation_reason=order.cancellation_reason,
        cancelled_by=order.cancelled_by,
        eta=eta,
    )


# ---------------------------------------------------------------------------
# Checkout Router
# ---------------------------------------------------------------------------
checkout_router = APIRouter(prefix="/checkout", tags=["checkout"])


@checkout_router.post("", status_code=201, response_model=CheckoutResponse)
async def submit_checkout(body: CheckoutRequestBody) -> CheckoutResponse:
    """Validate the cart and place the order. Gateway orders also start payment."""
    result = CheckoutOrchestrator().submit_checkout(_checkout_request(body))
    return CheckoutResponse(
        order_id=result.order_id,
        order_number=result.order_number,
        status=result.status,
        total_amount=result.total_amount,
        payment_method=result.payment_method,
        tracking_url=result.tracking_url,
        payment=_gateway_response(result.payment),
    )


@checkout_router.post("/quote", response_model=QuoteResponse)
async def quote_checkout(body: CheckoutRequestBody) -> QuoteResponse:
    """Preview fee, tax, total and ETA without placing an order."""
    quote = CheckoutOrchestrator().quote(_checkout_request(body))
    return QuoteResponse(
        shop_id=quote.shop_id,
        subtotal=quote.subtotal,
        delivery_fee=quote.delivery_fee,
        tax=quote.tax,
        total=quote.total,
        zone_name=quote.delivery.zone_name,
        distance_km=quote.delivery.distance_km,
        unserviceable=quote.delivery.unserviceable,
        reason=quote.delivery.reason,
        shortfall=quote.shortfall,
        eta=EtaResponse(min_eta=quote.eta.min_eta, max_eta=quote.eta.max_eta) if quote.eta else None,
    )


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str) -> OrderResponse:
    return _order_response(current_domain.repository_for(Order).get(order_id))


@order_router.post("/{order_id}/payment/retry", response_model=GatewayParametersResponse)
async def retry_payment(order_id: str, body: RetryPaymentRequest) -> GatewayParametersResponse:
    """Start a new gateway order for a saved order whose payment did not complete."""
    params = CheckoutOrchestrator().retry_payment(order_id, body.user_id)
    return _gateway_response(params)


@order_router.put("/{order_id}/accept", response_model=OrderResponse)
async def accept_order(order_id: str, body: ActorRequest) -> OrderResponse:
    return _order_response(transitions.accept_order(order_id, _actor(body)))


@order_router.put("/{order_id}/assign-rider", response_model=OrderResponse)
async def assign_rider(order_id: str, body: AssignRiderRequest) -> OrderResponse:
    return _order_response(transitions.assign_rider(order_id, body.rider_id, _actor(body)))


@order_router.put("/{order_id}/dispatch", response_model=OrderResponse)
async def dispatch_order(order_id: str, body: ActorRequest) -> OrderResponse:
    return _order_response(transitions.advance_to_out_for_delivery(order_id, _actor(body)))


@order_router.put("/{order_id}/deliver", response_model=OrderResponse)
async def deliver_order(order_id: str, body: ActorRequest) -> OrderResponse:
    return _order_response(transitions.mark_delivered(order_id, _actor(body)))


@order_router.put("/{order_id}/cancel", response_model=OrderResponse)
async def cancel_order(order_id: str, body: CancelOrderRequest) -> OrderResponse:
    return _order_response(transitions.cancel_order(order_id, _actor(body), reason=body.reason))


# ---------------------------------------------------------------------------
# Payment Router
# ---------------------------------------------------------------------------
payment_router = APIRouter(prefix="/payments", tags=["payments"])


@payment_router.post("/verify", response_model=PaymentVerificationResponse)
async def verify_payment_callback(body: VerifyPaymentRequest):
    """Reconcile the gateway's client-side completion. Rejections are deliberately generic."""
    result = verify_payment(body.order_id, body.gateway_order_id, body.gateway_payment_id, body.signature)
    response = PaymentVerificationResponse(
        confirmed=result.confirmed,
        reason=result.reason,
        already_verified=result.already_verified,
    )
    if not result.confirmed:
        return JSONResponse(status_code=400, content=response.model_dump())
    return response


@payment_router.post("/gateway/configure", response_model=GatewayConfigResponse)
async def configure_gateway(body: ConfigureGatewayRequest) -> GatewayConfigResponse:
    """Configure the FakeGateway behavior (non-production only)."""
    if os.environ.get("PROTEAN_ENV") == "production":
        raise HTTPException(status_code=403, detail="Gateway configuration not available in production")

    gateway = get_gateway()
    if not isinstance(gateway, FakeGateway):
        raise HTTPException(status_code=400, detail="Gateway configuration only available for FakeGateway")

    gateway.configure(should_succeed=body.should_succeed, failure_reason=body.failure_reason)
    return GatewayConfigResponse(
        gateway=type(gateway).__name__,
        should_succeed=gateway.should_succeed,
        failure_reason=gateway.failure_reason,
    )


# ---------------------------------------------------------------------------
# Shop Router
# ---------------------------------------------------------------------------
shop_router = APIRouter(prefix="/shops", tags=["shops"])


@shop_router.post("", status_code=201, response_model=ShopIdResponse)
async def register_shop(body: RegisterShopRequest) -> ShopIdResponse:
    command = RegisterShop(
        name=body.name,
        owner_id=body.owner_id,
        lat=body.location.lat if body.location else None,
        lng=body.location.lng if body.location else None,
        radius_km=body.radius_km,
        delivery_profile=json.dumps(body.delivery_profile.model_dump()) if body.delivery_profile else None,
    )
    result = current_domain.process(command, asynchronous=False)
    return ShopIdResponse(shop_id=result)


@shop_router.put("/{shop_id}/delivery-settings", response_model=DeliverySettingsResponse)
async def update_delivery_settings(shop_id: str, body: DeliverySettingsRequest) -> DeliverySettingsResponse:
    """Save zones (matched in the order given). Gaps and overlaps come back as warnings."""
    command = UpdateDeliverySettings(
        shop_id=shop_id,
        zones=json.dumps([zone.model_dump() for zone in body.zones]),
        radius_km=body.radius_km,
        delivery_profile=json.dumps(body.delivery_profile.model_dump()) if body.delivery_profile else None,
        lat=body.location.lat if body.location else None,
        lng=body.location.lng if body.location else None,
        clear_radius=body.clear_radius,
    )
    warnings = current_domain.process(command, asynchronous=False)
    return DeliverySettingsResponse(status="delivery_settings_updated", warnings=warnings)


@shop_router.get("/{shop_id}/orders/stats", response_model=OrderStatsResponse)
async def shop_order_stats(shop_id: str) -> OrderStatsResponse:
    stats = order_stats(shop_id=shop_id)
    return OrderStatsResponse(
        total_orders=stats.total_orders,
        by_status=stats.by_status,
        revenue=stats.revenue,
        average_order_value=stats.average_order_value,
    )


@shop_router.get("/{shop_id}/rider-suggestion", response_model=RiderSuggestionResponse)
async def rider_suggestion(shop_id: str) -> RiderSuggestionResponse:
    suggestion = suggest_rider(shop_id)
    if suggestion is None:
        raise HTTPException(status_code=404, detail="No available rider near this shop")
    return RiderSuggestionResponse(
        rider_id=suggestion.rider_id,
        rider_name=suggestion.rider_name,
        distance_to_shop_km=suggestion.distance_to_shop_km,
        estimated_pickup_minutes=suggestion.estimated_pickup_minutes,
    )


# ---------------------------------------------------------------------------
# Rider Router
# ---------------------------------------------------------------------------
rider_router = APIRouter(prefix="/riders", tags=["riders"])


@rider_router.post("", status_code=201, response_model=RiderIdResponse)
async def register_rider(body: RegisterRiderRequest) -> RiderIdResponse:
    command = RegisterRider(
        name=body.name,
        phone=body.phone,
        lat=body.location.lat if body.location else None,
        lng=body.location.lng if body.location else None,
    )
    result = current_domain.process(command, asynchronous=False)
    return RiderIdResponse(rider_id=result)


@rider_router.put("/{rider_id}/online", response_model=StatusResponse)
async def set_rider_online(rider_id: str, body: RiderOnlineRequest) -> StatusResponse:
    current_domain.process(SetRiderOnline(rider_id=rider_id, is_online=body.is_online), asynchronous=False)
    return StatusResponse(status="online" if body.is_online else "offline")


@rider_router.put("/{rider_id}/location", response_model=StatusResponse)
async def update_rider_location(rider_id: str, body: CoordinateRequest) -> StatusResponse:
    current_domain.process(
        UpdateRiderLocation(rider_id=rider_id, lat=body.lat, lng=body.lng),
        asynchronous=False,
    )
    return StatusResponse(status="location_updated")
