"""Order placement: command and handler.

The checkout orchestrator prices and validates the cart; this command only
persists the result, so it is the single atomic write of a checkout.
"""

import json

from protean import handle
from protean.fields import Float, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from fulfillment.domain import fulfillment
from fulfillment.eta import EtaWindow
from fulfillment.order.order import Order


@fulfillment.command(part_of="Order")
class PlaceOrder:
    shop_id = Identifier(required=True)
    shopkeeper_id = Identifier(required=True)
    user_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of priced line dicts
    delivery_address = Text(required=True)  # JSON: address dict
    payment_method = String(required=True, max_length=20)
    delivery_fee = Float(required=True)
    tax = Float(required=True)
    currency = String(max_length=3, default="INR")
    zone_name = String(max_length=100)
    distance_km = Float()
    eta_min_minutes = Integer()
    eta_max_minutes = Integer()
    notes = Text()


@fulfillment.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        eta = None
        if command.eta_min_minutes is not None and command.eta_max_minutes is not None:
            eta = EtaWindow(min_eta=command.eta_min_minutes, max_eta=command.eta_max_minutes)

        order = Order.place(
            shop_id=command.shop_id,
            shopkeeper_id=command.shopkeeper_id,
            user_id=command.user_id,
            lines=json.loads(command.items),
            delivery_address=json.loads(command.delivery_address),
            payment_method=command.payment_method,
            delivery_fee=command.delivery_fee,
            tax=command.tax,
            currency=command.currency or "INR",
            zone_name=command.zone_name,
            distance_km=command.distance_km,
            eta=eta,
            notes=command.notes,
        )
        current_domain.repository_for(Order).add(order)
        return str(order.id)
