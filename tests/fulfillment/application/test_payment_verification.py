"""Application tests for reconciling gateway payment callbacks."""

import pytest
from fulfillment import hooks
from fulfillment.errors import InvalidTransition
from fulfillment.order.order import Actor, Order
from fulfillment.order.transitions import _locks, accept_order, cancel_order
from fulfillment.payment.payment import PaymentAttempt
from fulfillment.payment.verification import REJECTED_REASON, verify_payment
from protean import current_domain
from protean.exceptions import ValidationError
from structlog.testing import capture_logs


@pytest.fixture()
def paying(place_order):
    """A gateway order whose payment has started."""
    return place_order(payment_method="gateway")


@pytest.fixture()
def fired():
    seen = []
    hooks.register_hook(lambda name, order: seen.append(name))
    return seen


def _order(order_id):
    return current_domain.repository_for(Order).get(order_id)


def _attempts(order_id):
    return current_domain.repository_for(PaymentAttempt).for_order(order_id)


class TestConfirmedPayment:
    def test_valid_signature_accepts_the_order(self, paying, gateway, fired):
        gateway_order_id = paying.payment.gateway_order_id
        payment_id, signature = gateway.complete_payment(gateway_order_id)

        result = verify_payment(paying.order_id, gateway_order_id, payment_id, signature)

        assert result.confirmed
        assert not result.already_verified
        order = _order(paying.order_id)
        assert order.status == "accepted_by_shopkeeper"
        assert order.payment_status == "verified"
        attempt = _attempts(paying.order_id)[0]
        assert attempt.status == "verified"
        assert attempt.gateway_payment_id == payment_id
        assert fired == ["OrderAccepted"]
        assert str(paying.order_id) not in _locks

    def test_duplicate_callback_is_idempotent(self, paying, gateway, fired):
        gateway_order_id = paying.payment.gateway_order_id
        payment_id, signature = gateway.complete_payment(gateway_order_id)

        verify_payment(paying.order_id, gateway_order_id, payment_id, signature)
        again = verify_payment(paying.order_id, gateway_order_id, payment_id, signature)

        assert again.confirmed
        assert again.already_verified
        assert _order(paying.order_id).status == "accepted_by_shopkeeper"
        assert fired == ["OrderAccepted"]

    def test_forged_replay_after_verification_is_rejected(self, paying, gateway, fired):
        gateway_order_id = paying.payment.gateway_order_id
        payment_id, signature = gateway.complete_payment(gateway_order_id)
        verify_payment(paying.order_id, gateway_order_id, payment_id, signature)

        with capture_logs() as logs:
            forged = verify_payment(paying.order_id, gateway_order_id, "pay_attacker", "not-a-signature")

        assert not forged.confirmed
        assert forged.reason == REJECTED_REASON
        assert any(e["event"] == "Payment signature verification failed" and e["replay"] for e in logs)
        assert _attempts(paying.order_id)[0].gateway_payment_id == payment_id
        assert fired == ["OrderAccepted"]

    def test_replay_with_another_payment_id_is_rejected(self, paying, gateway):
        gateway_order_id = paying.payment.gateway_order_id
        payment_id, signature = gateway.complete_payment(gateway_order_id)
        verify_payment(paying.order_id, gateway_order_id, payment_id, signature)

        result = verify_payment(paying.order_id, gateway_order_id, "pay_other", signature)
        assert not result.confirmed

    def test_shopkeeper_cannot_accept_before_payment(self, paying):
        with pytest.raises(ValidationError) as exc:
            accept_order(paying.order_id, Actor.shopkeeper("owner-1"))
        assert exc.value.messages == {"payment": ["Order is awaiting payment"]}


class TestRejectedPayment:
    def test_signature_mismatch_fails_the_attempt(self, paying, fired):
        gateway_order_id = paying.payment.gateway_order_id

        with capture_logs() as logs:
            result = verify_payment(paying.order_id, gateway_order_id, "pay_forged", "deadbeef")

        assert not result.confirmed
        assert result.reason == REJECTED_REASON
        order = _order(paying.order_id)
        assert order.status == "pending"
        assert order.payment_status == "initiated"
        assert _attempts(paying.order_id)[0].status == "failed"
        assert fired == []

        mismatch = [e for e in logs if e["event"] == "Payment signature verification failed"]
        assert mismatch[0]["log_level"] == "warning"
        assert "deadbeef" not in str(mismatch[0])

    def test_signature_for_another_gateway_order(self, paying, gateway):
        payment_id, signature = gateway.complete_payment("order_someone_else")
        result = verify_payment(paying.order_id, "order_someone_else", payment_id, signature)

        assert result.reason == REJECTED_REASON
        assert _attempts(paying.order_id)[0].status == "initiated"

    def test_missing_fields(self, paying):
        result = verify_payment(paying.order_id, paying.payment.gateway_order_id, "", "")
        assert result.reason == REJECTED_REASON
        assert _attempts(paying.order_id)[0].status == "initiated"

    def test_no_payment_attempt(self, place_order):
        cash = place_order()
        result = verify_payment(cash.order_id, "order_x", "pay_x", "sig")
        assert not result.confirmed

    def test_unknown_order(self):
        result = verify_payment("no-such-order", "order_x", "pay_x", "sig")
        assert result.reason == REJECTED_REASON

    def test_all_rejections_look_the_same(self, paying, place_order):
        forged = verify_payment(paying.order_id, paying.payment.gateway_order_id, "pay_x", "bad")
        unknown = verify_payment(place_order().order_id, "order_x", "pay_x", "sig")
        assert forged == unknown


class TestRetry:
    def test_customer_can_pay_after_a_failed_attempt(self, paying, gateway, orchestrator, fired):
        verify_payment(paying.order_id, paying.payment.gateway_order_id, "pay_forged", "deadbeef")

        retry = orchestrator.retry_payment(paying.order_id, "user-1")
        payment_id, signature = gateway.complete_payment(retry.gateway_order_id)
        result = verify_payment(paying.order_id, retry.gateway_order_id, payment_id, signature)

        assert result.confirmed
        assert [a.status for a in _attempts(paying.order_id)] == ["failed", "verified"]

    def test_retry_supersedes_the_open_attempt(self, paying, gateway, orchestrator):
        retry = orchestrator.retry_payment(paying.order_id, "user-1")

        statuses = {a.gateway_order_id: a.status for a in _attempts(paying.order_id)}
        assert statuses == {paying.payment.gateway_order_id: "failed", retry.gateway_order_id: "initiated"}

        assert _order(paying.order_id).status == "pending"

    def test_paying_the_superseded_gateway_order_still_confirms(self, paying, gateway, orchestrator, fired):
        retry = orchestrator.retry_payment(paying.order_id, "user-1")

        payment_id, signature = gateway.complete_payment(paying.payment.gateway_order_id)
        result = verify_payment(paying.order_id, paying.payment.gateway_order_id, payment_id, signature)

        assert result.confirmed
        assert _order(paying.order_id).status == "accepted_by_shopkeeper"
        statuses = {a.gateway_order_id: a.status for a in _attempts(paying.order_id)}
        assert statuses == {paying.payment.gateway_order_id: "verified", retry.gateway_order_id: "failed"}
        assert fired == ["OrderAccepted"]

    def test_capture_on_superseded_attempt_after_cancellation_is_kept_for_refund(
        self, paying, gateway, orchestrator
    ):
        orchestrator.retry_payment(paying.order_id, "user-1")
        cancel_order(paying.order_id, Actor.customer("user-1"))

        payment_id, signature = gateway.complete_payment(paying.payment.gateway_order_id)
        with capture_logs() as logs:
            result = verify_payment(paying.order_id, paying.payment.gateway_order_id, payment_id, signature)

        assert result.reason == REJECTED_REASON
        assert _order(paying.order_id).status == "cancelled"
        superseded = current_domain.repository_for(PaymentAttempt).find_by_gateway_order_id(
            paying.payment.gateway_order_id
        )
        assert superseded.status == "failed"
        assert superseded.gateway_payment_id == payment_id

        captured = [e for e in logs if e["event"] == "Captured payment on superseded attempt"]
        assert captured[0]["log_level"] == "error"
        assert captured[0]["gateway_payment_id"] == payment_id


class TestCancelledWhilePaying:
    def test_valid_payment_for_a_cancelled_order(self, paying, gateway, fired):
        cancel_order(paying.order_id, Actor.customer("user-1"), reason="Changed my mind")
        gateway_order_id = paying.payment.gateway_order_id
        payment_id, signature = gateway.complete_payment(gateway_order_id)

        with pytest.raises(InvalidTransition):
            verify_payment(paying.order_id, gateway_order_id, payment_id, signature)

        assert _order(paying.order_id).status == "cancelled"
        assert _attempts(paying.order_id)[0].status == "initiated"
        assert fired == ["OrderCancelled"]
