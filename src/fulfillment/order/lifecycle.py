"""Order lifecycle: commands and handler for shopkeeper, rider and customer actions.

Each handler re-reads the order inside its unit of work and applies one
transition. Rider reservation and release happen in the same unit of work as
the order change.
"""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from fulfillment.domain import fulfillment
from fulfillment.order.order import Actor, ActorRole, Order
from fulfillment.rider.rider import Rider


@fulfillment.command(part_of="Order")
class AcceptOrder:
    order_id = Identifier(required=True)
    actor_role = String(required=True, choices=ActorRole)
    actor_id = Identifier()


@fulfillment.command(part_of="Order")
class AssignRider:
    order_id = Identifier(required=True)
    rider_id = Identifier(required=True)
    actor_role = String(required=True, choices=ActorRole)
    actor_id = Identifier()


@fulfillment.command(part_of="Order")
class DispatchOrder:
    order_id = Identifier(required=True)
    actor_role = String(required=True, choices=ActorRole)
    actor_id = Identifier()


@fulfillment.command(part_of="Order")
class MarkDelivered:
    order_id = Identifier(required=True)
    actor_role = String(required=True, choices=ActorRole)
    actor_id = Identifier()


@fulfillment.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    actor_role = String(required=True, choices=ActorRole)
    actor_id = Identifier()
    reason = String(max_length=500)


def _actor(command):
    return Actor(ActorRole(command.actor_role), str(command.actor_id) if command.actor_id else None)


def _release_rider(order):
    if not order.rider_id:
        return
    rider_repo = current_domain.repository_for(Rider)
    rider = rider_repo.get(order.rider_id)
    if rider.release(order.id):
        rider_repo.add(rider)


@fulfillment.command_handler(part_of=Order)
class OrderLifecycleHandler:
    @handle(AcceptOrder)
    def accept_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.accept(_actor(command))
        repo.add(order)

    @handle(AssignRider)
    def assign_rider(self, command):
        repo = current_domain.repository_for(Order)
        rider_repo = current_domain.repository_for(Rider)
        order = repo.get(command.order_id)
        rider = rider_repo.get(command.rider_id)

        order.assign_rider(_actor(command), command.rider_id)
        rider.reserve(order.id)

        repo.add(order)
        rider_repo.add(rider)

    @handle(DispatchOrder)
    def dispatch_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.dispatch(_actor(command))
        repo.add(order)

    @handle(MarkDelivered)
    def mark_delivered(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.deliver(_actor(command))
        _release_rider(order)
        repo.add(order)

    @handle(CancelOrder)
    def cancel_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.cancel(_actor(command), reason=command.reason)
        _release_rider(order)
        repo.add(order)
