"""Payment initiation: record a gateway order against an order paid online.

Runs after the gateway has already created its order, so the local commit
(attempt + order payment status) is the only write and happens in one unit
of work.
"""

from protean import handle
from protean.fields import Float, Identifier, String
from protean.utils.globals import current_domain

from fulfillment.domain import fulfillment
from fulfillment.order.order import Order
from fulfillment.payment.payment import PaymentAttempt, PaymentAttemptStatus


@fulfillment.command(part_of="PaymentAttempt")
class InitiatePayment:
    order_id = Identifier(required=True)
    gateway_order_id = String(required=True, max_length=100)
    amount = Float(required=True)
    currency = String(max_length=3, default="INR")
    gateway_name = String(required=True, max_length=50)


@fulfillment.command_handler(part_of=PaymentAttempt)
class InitiatePaymentHandler:
    @handle(InitiatePayment)
    def initiate_payment(self, command):
        order_repo = current_domain.repository_for(Order)
        order = order_repo.get(command.order_id)
        order.record_payment_initiated(command.gateway_order_id)

        attempt_repo = current_domain.repository_for(PaymentAttempt)
        for previous in attempt_repo.for_order(command.order_id):
            if previous.status == PaymentAttemptStatus.INITIATED.value:
                previous.mark_failed("Superseded by a new payment attempt")
                attempt_repo.add(previous)

        attempt = PaymentAttempt.initiate(
            order_id=command.order_id,
            gateway_order_id=command.gateway_order_id,
            amount=command.amount,
            currency=command.currency or "INR",
            gateway_name=command.gateway_name,
        )
        attempt_repo.add(attempt)
        order_repo.add(order)
        return str(attempt.id)
