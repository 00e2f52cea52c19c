"""Inbound lifecycle operations for shopkeepers, riders and customers.

Every transition is a compare-and-swap on the order's status: the handler's
read-check-write runs under a per-order lock, so of two racing requests only
the first sees the expected prior status. A concurrent writer outside this
process surfaces as Protean's ``ExpectedVersionError`` and is reported as
``InvalidTransition``. Hooks fire only after the unit of work commits.
"""

import threading
from contextlib import contextmanager

from protean.exceptions import ExpectedVersionError
from protean.utils.globals import current_domain

from fulfillment import hooks
from fulfillment.errors import ActorNotPermitted, InvalidTransition
from fulfillment.order.lifecycle import AcceptOrder, AssignRider, CancelOrder, DispatchOrder, MarkDelivered
from fulfillment.order.order import Order, OrderStatus
from fulfillment.utils.logging import get_logger

logger = get_logger(__name__)

# order id -> [lock, number of holders and waiters]
_locks: dict[str, list] = {}
_locks_guard = threading.Lock()


@contextmanager
def order_lock(order_id):
    """Hold the lock serialising transitions on one order.

    The entry is dropped once nobody holds or waits on it, so the map only
    grows with the number of orders in flight.
    """
    key = str(order_id)
    with _locks_guard:
        entry = _locks.setdefault(key, [threading.Lock(), 0])
        entry[1] += 1
    entry[0].acquire()
    try:
        yield
    finally:
        entry[0].release()
        with _locks_guard:
            entry[1] -= 1
            if entry[1] == 0:
                del _locks[key]


def run_transition(order_id, command, requested: OrderStatus, event_name: str) -> Order:
    """Process ``command`` under the order's lock, then fire hooks for ``event_name``."""
    repo = current_domain.repository_for(Order)
    with order_lock(order_id):
        try:
            current_domain.process(command, asynchronous=False)
        except ExpectedVersionError as exc:
            current = repo.get(order_id).status
            logger.info("Stale order write rejected", order_id=str(order_id), current=current, requested=requested.value)
            raise InvalidTransition(current, requested.value) from exc
        except InvalidTransition as exc:
            logger.info(
                "Order transition rejected",
                order_id=str(order_id),
                current=exc.current,
                requested=exc.requested,
            )
            raise
        except ActorNotPermitted as exc:
            logger.warning(
                "Order permissions violation",
                order_id=str(order_id),
                actor_role=exc.actor_role,
                action=exc.action,
            )
            raise
        order = repo.get(order_id)

    logger.info("Order transitioned", order_id=str(order_id), status=order.status)
    hooks.fire(event_name, order)
    return order


def accept_order(order_id, actor) -> Order:
    command = AcceptOrder(order_id=order_id, actor_role=actor.role.value, actor_id=actor.actor_id)
    return run_transition(order_id, command, OrderStatus.ACCEPTED_BY_SHOPKEEPER, "OrderAccepted")


def assign_rider(order_id, rider_id, actor) -> Order:
    command = AssignRider(
        order_id=order_id,
        rider_id=rider_id,
        actor_role=actor.role.value,
        actor_id=actor.actor_id,
    )
    return run_transition(order_id, command, OrderStatus.ASSIGNED_TO_RIDER, "RiderAssigned")


def advance_to_out_for_delivery(order_id, actor) -> Order:
    command = DispatchOrder(order_id=order_id, actor_role=actor.role.value, actor_id=actor.actor_id)
    return run_transition(order_id, command, OrderStatus.OUT_FOR_DELIVERY, "OrderOutForDelivery")


def mark_delivered(order_id, actor) -> Order:
    command = MarkDelivered(order_id=order_id, actor_role=actor.role.value, actor_id=actor.actor_id)
    return run_transition(order_id, command, OrderStatus.DELIVERED, "OrderDelivered")


def cancel_order(order_id, actor, reason=None) -> Order:
    command = CancelOrder(
        order_id=order_id,
        actor_role=actor.role.value,
        actor_id=actor.actor_id,
        reason=reason,
    )
    return run_transition(order_id, command, OrderStatus.CANCELLED, "OrderCancelled")
