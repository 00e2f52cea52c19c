"""Post-commit hooks fired after every successful order transition.

Hooks are fire-and-forget side effects (notifications, analytics). They run
after the transition's unit of work has committed, one at a time. A failing
hook is logged and skipped; it never affects other hooks or the transition.
"""

from fulfillment.utils.logging import get_logger

logger = get_logger(__name__)

_hooks = []


def register_hook(hook):
    """Register ``hook(event_name, order)``. Returns the hook so it can be used as a decorator."""
    _hooks.append(hook)
    return hook


def clear_hooks():
    _hooks.clear()


def fire(event_name, order):
    for hook in list(_hooks):
        try:
            hook(event_name, order)
        except Exception as e:
            logger.error(
                "Post-commit hook failed",
                hook=getattr(hook, "__name__", repr(hook)),
                event_name=event_name,
                order_id=str(order.id),
                error=str(e),
            )
