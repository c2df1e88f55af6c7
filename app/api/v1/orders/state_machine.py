"""
Order state machine for managing order status transitions
"""

from datetime import datetime
from typing import Dict, FrozenSet, List, Optional

from app.core.exceptions import InvalidTransitionException, UncancellableStateException
from app.models.order import Order, OrderStatus, OrderStatusHistory
from app.utils.helpers import utcnow

TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.OUT_FOR_DELIVERY, OrderStatus.CANCELLED}),
    OrderStatus.OUT_FOR_DELIVERY: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

def default_note(status: OrderStatus) -> str:
    return f"Status updated to {OrderStatus(status).value}"

class OrderStateMachine:
    """
    Manages valid order status transitions
    """

    def __init__(self, transitions: Optional[Dict[OrderStatus, FrozenSet[OrderStatus]]] = None):
        self.transitions = transitions or TRANSITIONS

    def can_transition(
        self,
        current_status: OrderStatus,
        new_status: OrderStatus
    ) -> bool:
        """
        Check if transition is valid

        Args:
            current_status: Current order status
            new_status: Desired new status

        Returns:
            True if transition is allowed
        """
        return OrderStatus(new_status) in self.transitions.get(OrderStatus(current_status), frozenset())

    def get_valid_transitions(self, current_status: OrderStatus) -> List[OrderStatus]:
        """Valid next statuses, in lifecycle order"""
        allowed = self.transitions.get(OrderStatus(current_status), frozenset())
        return [status for status in OrderStatus if status in allowed]

    def is_terminal_state(self, status: OrderStatus) -> bool:
        return not self.transitions.get(OrderStatus(status))

    def is_cancellable(self, status: OrderStatus) -> bool:
        return OrderStatus.CANCELLED in self.transitions.get(OrderStatus(status), frozenset())

    def transition(
        self,
        order: Order,
        new_status: OrderStatus,
        note: Optional[str] = None,
        at: Optional[datetime] = None
    ) -> OrderStatusHistory:
        """
        Apply a status change to the order and append it to the history.

        Raises:
            InvalidTransitionException: Pair not in the transition table;
                the order is left untouched
        """
        new_status = OrderStatus(new_status)
        if not self.can_transition(order.status, new_status):
            raise InvalidTransitionException(order.status, new_status)

        return order.record_status(new_status, note or default_note(new_status), at or utcnow())

    def cancel(
        self,
        order: Order,
        reason: Optional[str] = None,
        at: Optional[datetime] = None
    ) -> OrderStatusHistory:
        """
        Move the order to cancelled from any pre-delivery state.

        Stock restoration is the caller's job.

        Raises:
            UncancellableStateException: Order is out for delivery or terminal
        """
        if not self.is_cancellable(order.status):
            raise UncancellableStateException(order.status)

        order.cancellation_reason = reason or None
        return order.record_status(OrderStatus.CANCELLED, reason or "Order cancelled", at or utcnow())

order_state_machine = OrderStateMachine()
