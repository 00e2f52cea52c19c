"""Repository and read-side queries for the Order aggregate."""

from dataclasses import dataclass, field

from protean.utils.globals import current_domain

from fulfillment.domain import fulfillment
from fulfillment.order.order import Order, OrderStatus


@fulfillment.repository(part_of=Order)
class OrderRepository:
    def find_by_order_number(self, order_number: str) -> Order | None:
        results = self._dao.query.filter(order_number=order_number).all().items
        return results[0] if results else None

    def for_shop(self, shop_id, status: str | None = None) -> list[Order]:
        """A shop's orders, newest first, optionally narrowed to one status."""
        query = self._dao.query.filter(shop_id=str(shop_id))
        if status:
            query = query.filter(status=status)
        return sorted(query.all().items, key=lambda o: o.created_at, reverse=True)

    def for_user(self, user_id, status: str | None = None) -> list[Order]:
        query = self._dao.query.filter(user_id=str(user_id))
        if status:
            query = query.filter(status=status)
        return sorted(query.all().items, key=lambda o: o.created_at, reverse=True)


@dataclass
class OrderStats:
    total_orders: int = 0
    by_status: dict = field(default_factory=dict)
    revenue: float = 0.0
    average_order_value: float = 0.0


def order_stats(shop_id=None, user_id=None) -> OrderStats:
    """Counts per status plus revenue and average order value.

    Revenue counts delivered orders only; cancelled orders are never revenue.
    """
    repo = current_domain.repository_for(Order)
    if shop_id is not None:
        orders = repo.for_shop(shop_id)
    elif user_id is not None:
        orders = repo.for_user(user_id)
    else:
        orders = repo._dao.query.all().items

    by_status = {status.value: 0 for status in OrderStatus}
    for order in orders:
        by_status[order.status] += 1

    delivered = [o for o in orders if o.status == OrderStatus.DELIVERED.value]
    revenue = round(sum(o.total_amount for o in delivered), 2)
    return OrderStats(
        total_orders=len(orders),
        by_status=by_status,
        revenue=revenue,
        average_order_value=round(revenue / len(delivered), 2) if delivered else 0.0,
    )
