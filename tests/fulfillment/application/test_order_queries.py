"""Read-side queries: order lookup, shop/customer listings and statistics."""

from fulfillment.order.order import Actor, Order
from fulfillment.order.repository import order_stats
from fulfillment.order.transitions import (
    accept_order,
    advance_to_out_for_delivery,
    assign_rider,
    cancel_order,
    mark_delivered,
)
from fulfillment.rider.management import RegisterRider, SetRiderOnline
from protean import current_domain

SHOPKEEPER = Actor.shopkeeper("owner-1")


def _repo():
    return current_domain.repository_for(Order)


class TestOrderLookups:
    def test_find_by_order_number(self, place_order):
        result = place_order()
        order = _repo().find_by_order_number(result.order_number)
        assert order.id == result.order_id
        assert _repo().find_by_order_number("MM0000") is None

    def test_shop_orders_newest_first(self, shop_id, place_order):
        first = place_order().order_id
        second = place_order().order_id
        assert [o.id for o in _repo().for_shop(shop_id)] == [second, first]

    def test_shop_orders_by_status(self, shop_id, place_order):
        accepted = place_order().order_id
        place_order()
        accept_order(accepted, SHOPKEEPER)

        orders = _repo().for_shop(shop_id, status="accepted_by_shopkeeper")
        assert [o.id for o in orders] == [accepted]

    def test_customer_orders(self, place_order, stocked):
        mine = place_order().order_id
        stocked.add_user("user-2")
        place_order(user_id="user-2")
        assert [o.id for o in _repo().for_user("user-1")] == [mine]


class TestOrderStats:
    def test_counts_and_revenue(self, shop_id, place_order):
        cancelled = place_order().order_id
        accepted = place_order().order_id
        place_order()
        cancel_order(cancelled, SHOPKEEPER)
        accept_order(accepted, SHOPKEEPER)

        stats = order_stats(shop_id=shop_id)
        assert stats.total_orders == 3
        assert stats.by_status["pending"] == 1
        assert stats.by_status["accepted_by_shopkeeper"] == 1
        assert stats.by_status["cancelled"] == 1
        # nothing delivered yet
        assert stats.revenue == 0.0
        assert stats.average_order_value == 0.0

    def test_empty_shop(self, shop_id):
        stats = order_stats(shop_id=shop_id)
        assert stats.total_orders == 0
        assert stats.by_status["delivered"] == 0

    def test_revenue_counts_delivered_orders_only(self, shop_id, place_order):
        rider_id = current_domain.process(RegisterRider(name="Ravi", phone="9999999999"), asynchronous=False)
        current_domain.process(SetRiderOnline(rider_id=rider_id, is_online=True), asynchronous=False)

        delivered = place_order().order_id
        cancel_order(place_order().order_id, SHOPKEEPER)
        accept_order(delivered, SHOPKEEPER)
        assign_rider(delivered, rider_id, SHOPKEEPER)
        advance_to_out_for_delivery(delivered, SHOPKEEPER)
        mark_delivered(delivered, SHOPKEEPER)

        stats = order_stats(shop_id=shop_id)
        assert stats.revenue == 282.5
        assert stats.average_order_value == 282.5

    def test_customer_stats(self, place_order):
        place_order()
        assert order_stats(user_id="user-1").total_orders == 1
        assert order_stats(user_id="user-2").total_orders == 0
