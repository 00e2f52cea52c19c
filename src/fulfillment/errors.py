"""Error taxonomy for the fulfillment pipeline.

Domain rule failures extend Protean's ``ValidationError`` so every error
carries the same ``{field: [message]}`` payload the rest of the domain uses.
Infrastructure failures (gateway, store) are plain exceptions that state
whether an order or payment record was created before the failure.
"""

from protean.exceptions import ValidationError


class NotAuthenticated(ValidationError):
    """No identity accompanied the request."""

    def __init__(self, message="Please log in to place an order"):
        super().__init__({"user": [message]})


class UserNotReady(ValidationError):
    """The session is known but its user record has not synced yet. Retryable."""

    retryable = True

    def __init__(self, user_id):
        self.user_id = user_id
        super().__init__({"user": ["Your account is still loading, please try again in a moment"]})


class UnserviceableError(ValidationError):
    """Geography or zone rules block the order."""

    def __init__(self, reason, shortfall=None):
        self.reason = reason
        self.shortfall = shortfall
        super().__init__({"delivery": [reason]})


class InvalidTransition(ValidationError):
    """The order is not in a state that allows the requested transition."""

    def __init__(self, current, requested):
        self.current = current
        self.requested = requested
        super().__init__({"status": [f"Cannot transition from {current} to {requested}"]})


class ActorNotPermitted(ValidationError):
    """The actor may not perform this transition on this order."""

    def __init__(self, actor_role, action, reason=None):
        self.actor_role = actor_role
        self.action = action
        super().__init__({"actor": [reason or f"{actor_role} is not permitted to {action}"]})


class RiderUnavailable(ValidationError):
    """The rider is offline or already carrying another order."""

    def __init__(self, rider_id):
        self.rider_id = rider_id
        super().__init__({"rider_id": [f"Rider {rider_id} is not available"]})


class ExternalDependencyError(Exception):
    """A gateway or store call failed. Retryable.

    ``order_created`` and ``payment_started`` tell the caller what was
    committed before the failure, so a retry never duplicates an order.
    """

    retryable = True

    def __init__(self, message, *, order_id=None, order_created=False, payment_started=False):
        super().__init__(message)
        self.message = message
        self.order_id = order_id
        self.order_created = order_created
        self.payment_started = payment_started


class SignatureMismatch(Exception):
    """A payment callback signature did not match. Carries no secret material."""

    def __init__(self, order_id, gateway_order_id):
        super().__init__("Payment signature verification failed")
        self.order_id = order_id
        self.gateway_order_id = gateway_order_id
