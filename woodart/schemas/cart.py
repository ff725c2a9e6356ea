"""Cart Pydantic schemas."""

from datetime import datetime

from pydantic import Field

from woodart.schemas.common import CamelModel


class CartItemSchema(CamelModel):
    """A cart line with current availability."""

    design_id: str
    item_name: str
    price: float
    quantity: int
    available_quantity: int | None = None
    designer_name: str | None = None
    material: str | None = None
    board_size: str | None = None
    board_color: str | None = None
    board_thickness: str | None = None
    image_url: str | None = None
    added_at: datetime | None = None


class CartResponse(CamelModel):
    """Response carrying the whole cart."""

    success: bool = True
    message: str | None = None
    cart: list[CartItemSchema]


class CartItemRequest(CamelModel):
    """Identifies a cart line."""

    user_email: str = Field(min_length=3)
    design_id: str = Field(min_length=1)


class CartUpdateRequest(CartItemRequest):
    """Schema for POST /api/cart/update."""

    quantity: int


class CartClearRequest(CamelModel):
    """Schema for POST /api/cart/clear."""

    user_email: str = Field(min_length=3)
