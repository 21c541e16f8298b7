"""
Order State Machine

All order status transitions are validated here. Endpoints and services
must not change Order.status without going through validate_transition(),
except the DeliveryCompleted handler, which checks can_force_delivered().
"""

from typing import Dict, List

from app.core.exceptions import InvalidStateError
from app.models.order import OrderStatus


# =============================================================================
# TRANSITION RULES
# =============================================================================

# current_status -> [allowed next statuses]
ORDER_TRANSITIONS: Dict[str, List[str]] = {
    OrderStatus.PENDING.value: [
        OrderStatus.CONFIRMED.value,
        OrderStatus.CANCELLED.value,
    ],
    OrderStatus.CONFIRMED.value: [
        OrderStatus.PROCESSING.value,
        OrderStatus.CANCELLED.value,
    ],
    OrderStatus.PROCESSING.value: [
        OrderStatus.SHIPPED.value,
        OrderStatus.CANCELLED.value,
    ],
    OrderStatus.SHIPPED.value: [
        OrderStatus.DELIVERED.value,
    ],
    OrderStatus.DELIVERED.value: [],   # Terminal
    OrderStatus.CANCELLED.value: [],   # Terminal
}


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def can_transition(current_status: str, new_status: str) -> bool:
    """Check if a transition is allowed."""
    return new_status in ORDER_TRANSITIONS.get(current_status, [])


def get_allowed_transitions(current_status: str) -> List[str]:
    return list(ORDER_TRANSITIONS.get(current_status, []))


def validate_transition(current_status: str, new_status: str) -> None:
    """
    Validate a status transition. Raises InvalidStateError if invalid.

    A same-status update is always accepted (no-op).
    """
    if current_status == new_status:
        return

    if new_status not in ORDER_TRANSITIONS:
        raise InvalidStateError(f"Unknown order status '{new_status}'")

    if not can_transition(current_status, new_status):
        allowed = get_allowed_transitions(current_status)
        if not allowed:
            raise InvalidStateError(
                f"Order in '{current_status}' status cannot be modified. This is a terminal state."
            )
        raise InvalidStateError(
            f"Cannot change order from '{current_status}' to '{new_status}'. "
            f"Allowed transitions: {', '.join(allowed)}"
        )


# =============================================================================
# STATUS CHECK HELPERS
# =============================================================================

def can_edit_items(status: str) -> bool:
    """Line items may only change while the order is pending."""
    return status == OrderStatus.PENDING.value


def can_delete(status: str) -> bool:
    """Shipped and delivered orders can't be removed."""
    return status not in (OrderStatus.SHIPPED.value, OrderStatus.DELIVERED.value)


def can_force_delivered(status: str) -> bool:
    return status != OrderStatus.CANCELLED.value


def is_terminal(status: str) -> bool:
    return not ORDER_TRANSITIONS.get(status)
