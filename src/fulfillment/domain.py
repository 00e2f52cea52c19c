"""Fulfillment bounded context: grocery order fulfillment pipeline.

Prices a cart against a shop's delivery zones, places the order exactly once,
drives it through the shopkeeper/rider lifecycle and reconciles online
payments against it. Uses CQRS (not event sourcing): every transition is a
conditional write on the order's status, and downstream side effects run as
post-commit hooks.
"""

from protean.domain import Domain

from fulfillment.utils.logging import configure_logging, get_logger

configure_logging()

logger = get_logger(__name__)

fulfillment = Domain(name="fulfillment")
