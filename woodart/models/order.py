"""Order model type definitions for database operations."""

from datetime import datetime
from enum import Enum
from typing import TypedDict


class OrderStatus(str, Enum):
    """Marketplace order status values."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY_FOR_DELIVERY = "ready_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class DeliveryStatus(str, Enum):
    """Delivery progress shared by marketplace and custom orders."""

    NOT_ASSIGNED = "not_assigned"
    ASSIGNED = "assigned"
    PICKED_UP = "picked_up"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"


class PaymentMethod(str, Enum):
    """How the customer pays."""

    CASH_ON_DELIVERY = "cash_on_delivery"
    BANK_TRANSFER = "bank_transfer"

    @classmethod
    def parse(cls, value: "str | PaymentMethod") -> "PaymentMethod":
        """Accept the short legacy spellings used by the custom order form."""
        if isinstance(value, cls):
            return value
        aliases = {"cash": cls.CASH_ON_DELIVERY, "bank": cls.BANK_TRANSFER}
        return aliases.get(value) or cls(value)


class PaymentStatus(str, Enum):
    """Payment verification state."""

    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


class DeliverySection(str, Enum):
    """Buckets shown on the delivery dashboard."""

    READY = "ready"
    ON = "on"
    COMPLETED = "completed"


class OrderItem(TypedDict):
    """A single line item, stored in the orders.items JSONB array.

    ``item_id`` is the order item id the ledger keys on.
    """

    item_id: str
    design_id: str
    designer_id: str | None
    designer_name: str
    designer_email: str | None
    item_name: str
    quantity: int
    unit_price: float
    subtotal: float
    material: str | None
    board_size: str | None
    board_color: str | None
    board_thickness: str | None
    image_url: str | None


class Order(TypedDict):
    """Orders table row representation."""

    id: str
    order_id: str
    customer_name: str | None
    customer_email: str
    customer_phone: str | None
    customer_address: str | None
    items: list[OrderItem]
    designer_emails: list[str]
    items_total: float
    delivery_fee: float
    total_amount: float
    payment_method: str
    payment_status: str
    status: str
    delivery_status: str
    cash_collected: bool
    cash_collected_at: datetime | None
    cash_collected_by: str | None
    stock_reserved: bool
    unreleased_stock: list[dict] | None  # lines a failed cancellation could not return
    bank_slip_url: str | None
    notes: str | None
    delivered_at: datetime | None
    created_at: datetime
    updated_at: datetime
