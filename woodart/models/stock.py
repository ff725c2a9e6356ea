"""Raw-material stock model type definitions."""

from datetime import datetime
from typing import TypedDict


class StockItem(TypedDict):
    """stock_items row, unique on (material, board_size, thickness, color)."""

    id: str
    material: str
    board_size: str
    thickness: str
    color: str
    price: float
    available_quantity: int
    reorder_level: int
    updated_at: datetime


class StockRelease(TypedDict):
    """Raw material handed to a staff designer."""

    id: str
    designer_name: str
    designer_email: str
    material: str
    board_size: str
    thickness: str
    color: str
    quantity: int
    notes: str | None
    release_date: datetime
