"""Designer payment (ledger) model type definitions."""

from datetime import datetime
from typing import TypedDict


class DesignerPayment(TypedDict):
    """designer_payments table row representation.

    One row per (order_id, order_item_id), enforced by a unique index.
    """

    id: str
    order_id: str
    order_item_id: str
    design_id: str
    designer_id: str | None
    designer_name: str
    designer_email: str | None
    customer_name: str | None
    customer_email: str
    item_name: str
    quantity: int
    item_price: float
    commission_rate: float
    commission: float
    designer_amount: float
    released: bool
    released_at: datetime | None
    released_by: str | None
    created_at: datetime
