"""Order lifecycle state machine.

Every status change requested by a client is checked here against explicit
transition tables before anything is written. Services call the ``ensure_*``
guards and let the raised ``ConflictError`` propagate to the error middleware.
"""

from typing import Any

from woodart.api.middleware.error_handler import ConflictError, ValidationError
from woodart.models.custom_order import CustomOrderStatus
from woodart.models.order import DeliveryStatus, OrderStatus, PaymentMethod, PaymentStatus

ORDER_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset(
        {OrderStatus.PREPARING, OrderStatus.READY_FOR_DELIVERY, OrderStatus.CANCELLED}
    ),
    OrderStatus.PREPARING: frozenset({OrderStatus.READY_FOR_DELIVERY, OrderStatus.CANCELLED}),
    OrderStatus.READY_FOR_DELIVERY: frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

DELIVERY_TRANSITIONS: dict[DeliveryStatus, frozenset[DeliveryStatus]] = {
    DeliveryStatus.NOT_ASSIGNED: frozenset({DeliveryStatus.ASSIGNED}),
    DeliveryStatus.ASSIGNED: frozenset({DeliveryStatus.PICKED_UP}),
    DeliveryStatus.PICKED_UP: frozenset({DeliveryStatus.IN_TRANSIT, DeliveryStatus.DELIVERED}),
    DeliveryStatus.IN_TRANSIT: frozenset({DeliveryStatus.DELIVERED}),
    DeliveryStatus.DELIVERED: frozenset(),
}

CUSTOM_ORDER_TRANSITIONS: dict[CustomOrderStatus, frozenset[CustomOrderStatus]] = {
    CustomOrderStatus.PENDING: frozenset({CustomOrderStatus.ACCEPTED, CustomOrderStatus.CANCELLED}),
    CustomOrderStatus.ACCEPTED: frozenset(
        {CustomOrderStatus.IN_PROGRESS, CustomOrderStatus.COMPLETED, CustomOrderStatus.CANCELLED}
    ),
    CustomOrderStatus.IN_PROGRESS: frozenset({CustomOrderStatus.COMPLETED, CustomOrderStatus.CANCELLED}),
    CustomOrderStatus.COMPLETED: frozenset(),
    CustomOrderStatus.CANCELLED: frozenset(),
}

TERMINAL_ORDER_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})

# Statuses from which a designer may hand the order to delivery
NOTIFIABLE_ORDER_STATUSES = frozenset({OrderStatus.CONFIRMED, OrderStatus.PREPARING})


def _state_details(order: dict[str, Any]) -> list[dict[str, Any]]:
    return [
        {
            "loc": ["order", order.get("order_id", "")],
            "msg": (
                f"status={order.get('status')}, "
                f"delivery_status={order.get('delivery_status')}, "
                f"payment_status={order.get('payment_status')}"
            ),
            "type": "current_state",
        }
    ]


def parse_enum(enum_cls: type, value: Any, field: str) -> Any:
    """Convert a client-supplied string to an enum member.

    Raises:
        ValidationError: If the value is not a member of ``enum_cls``.
    """
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(f"Invalid {field} '{value}'. Allowed: {allowed}") from None


def ensure_order_transition(order: dict[str, Any], target: OrderStatus) -> None:
    """Raise ConflictError unless ``order`` may move to ``target``."""
    current = OrderStatus(order["status"])
    if current in TERMINAL_ORDER_STATUSES:
        raise ConflictError(
            f"Order {order['order_id']} is already {current.value}",
            details=_state_details(order),
        )
    if target not in ORDER_TRANSITIONS[current]:
        raise ConflictError(
            f"Cannot change order {order['order_id']} from {current.value} to {target.value}",
            details=_state_details(order),
        )


def ensure_can_confirm(order: dict[str, Any]) -> None:
    """A manual confirmation is only valid once payment has been verified."""
    ensure_order_transition(order, OrderStatus.CONFIRMED)
    if order.get("payment_status") != PaymentStatus.PAID.value:
        raise ConflictError(
            f"Order {order['order_id']} cannot be confirmed before payment is verified",
            details=_state_details(order),
        )


def ensure_can_notify_delivery(order: dict[str, Any]) -> None:
    """Check the hand-over to delivery, i.e. the move to ready_for_delivery."""
    current = OrderStatus(order["status"])
    if current in TERMINAL_ORDER_STATUSES:
        raise ConflictError(
            f"Order {order['order_id']} is already {current.value}",
            details=_state_details(order),
        )
    if current not in NOTIFIABLE_ORDER_STATUSES:
        raise ConflictError(
            f"Order {order['order_id']} must be confirmed or preparing to notify delivery, not {current.value}",
            details=_state_details(order),
        )
    if order.get("delivery_status") != DeliveryStatus.NOT_ASSIGNED.value:
        raise ConflictError(
            f"Delivery for order {order['order_id']} has already been notified",
            details=_state_details(order),
        )


def ensure_delivery_transition(order: dict[str, Any], target: DeliveryStatus) -> None:
    """Raise ConflictError unless the delivery sub-state may move to ``target``.

    Delivering a cash-on-delivery order also requires the cash to have been
    collected first.
    """
    current = DeliveryStatus(order.get("delivery_status") or DeliveryStatus.NOT_ASSIGNED.value)
    if "status" in order and order["status"] == OrderStatus.CANCELLED.value:
        raise ConflictError(
            f"Order {order['order_id']} is cancelled",
            details=_state_details(order),
        )
    if target not in DELIVERY_TRANSITIONS[current]:
        raise ConflictError(
            f"Cannot change delivery of {order['order_id']} from {current.value} to {target.value}",
            details=_state_details(order),
        )
    if target == DeliveryStatus.DELIVERED:
        ensure_cash_settled(order)


def ensure_cash_settled(order: dict[str, Any]) -> None:
    """COD orders may not be delivered (or paid out) before cash is collected."""
    if order.get("payment_method") == PaymentMethod.CASH_ON_DELIVERY.value and not order.get("cash_collected"):
        raise ConflictError(
            f"Cash has not been collected for order {order['order_id']}",
            details=_state_details(order),
        )


def ensure_can_collect_cash(order: dict[str, Any]) -> None:
    """Cash is collected once, for a live cash-on-delivery order."""
    if order.get("payment_method") != PaymentMethod.CASH_ON_DELIVERY.value:
        raise ValidationError(f"Order {order['order_id']} is not a cash on delivery order")
    if order.get("status") == OrderStatus.CANCELLED.value:
        raise ConflictError(
            f"Order {order['order_id']} is cancelled",
            details=_state_details(order),
        )
    if order.get("cash_collected"):
        raise ConflictError(
            f"Cash for order {order['order_id']} was already collected",
            details=_state_details(order),
        )


def ensure_custom_order_transition(order: dict[str, Any], target: CustomOrderStatus) -> None:
    """Raise ConflictError unless the custom order may move to ``target``."""
    current = CustomOrderStatus(order["status"])
    if not CUSTOM_ORDER_TRANSITIONS[current]:
        raise ConflictError(
            f"Custom order {order['order_id']} is already {current.value}",
            details=_state_details(order),
        )
    if target not in CUSTOM_ORDER_TRANSITIONS[current]:
        raise ConflictError(
            f"Cannot change custom order {order['order_id']} from {current.value} to {target.value}",
            details=_state_details(order),
        )
    if target == CustomOrderStatus.ACCEPTED and order.get("payment_status") != PaymentStatus.PAID.value:
        raise ConflictError(
            f"Custom order {order['order_id']} cannot be accepted before payment is verified",
            details=_state_details(order),
        )


def ensure_custom_can_notify_delivery(order: dict[str, Any]) -> None:
    """Custom orders go to delivery once the work is completed."""
    if order.get("status") != CustomOrderStatus.COMPLETED.value:
        raise ConflictError(
            f"Custom order {order['order_id']} must be completed before delivery",
            details=_state_details(order),
        )
    if order.get("delivery_status") != DeliveryStatus.NOT_ASSIGNED.value:
        raise ConflictError(
            f"Delivery for custom order {order['order_id']} has already been notified",
            details=_state_details(order),
        )
