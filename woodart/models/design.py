"""Design (marketplace listing) and cart model type definitions."""

from datetime import datetime
from typing import TypedDict


class Design(TypedDict):
    """designs table row representation."""

    id: str
    designer_id: str | None
    designer_name: str
    designer_email: str
    item_name: str
    description: str
    price: float
    quantity: int
    material: str
    board_size: str
    board_color: str
    board_thickness: str
    image_url: str | None
    item_code: str
    created_at: datetime
    updated_at: datetime


class CartItem(TypedDict):
    """cart_items table row, unique on (user_email, design_id)."""

    id: str
    user_email: str
    design_id: str
    item_name: str
    price: float
    quantity: int
    designer_name: str
    material: str
    board_size: str
    board_color: str
    board_thickness: str
    image_url: str | None
    added_at: datetime
    available_quantity: int  # joined from designs on read
