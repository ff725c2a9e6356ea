"""Custom order model type definitions for database operations."""

from datetime import datetime
from enum import Enum
from typing import TypedDict


class CustomOrderStatus(str, Enum):
    """Staff-designer driven status of a bespoke order."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class CustomOrderQueue(str, Enum):
    """Work queues shown to staff designers."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    COMPLETED = "completed"


class CustomOrder(TypedDict):
    """custom_orders table row representation."""

    id: str
    order_id: str
    customer_name: str
    customer_email: str
    customer_phone: str | None
    customer_address: str | None
    material: str
    board_color: str
    board_size: str
    board_thickness: str
    description: str | None
    reference_image_path: str
    estimated_price: float
    final_price: float
    delivery_fee: float
    status: str
    staff_designer_id: str | None
    payment_method: str
    payment_status: str
    delivery_status: str
    cash_collected: bool
    cash_collected_at: datetime | None
    bank_slip_url: str | None
    notes: str | None
    delivered_at: datetime | None
    created_at: datetime
    updated_at: datetime
