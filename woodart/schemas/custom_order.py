"""Custom order Pydantic schemas."""

from datetime import datetime

from pydantic import AliasChoices, Field

from woodart.schemas.common import CamelModel


class CustomOrderSchema(CamelModel):
    """A custom order as returned to clients."""

    id: str
    order_id: str = Field(description="Human-readable order id (WA-...)")
    customer_name: str
    customer_email: str
    customer_phone: str | None = None
    customer_address: str | None = None
    material: str
    board_color: str
    board_size: str
    board_thickness: str
    description: str | None = None
    reference_image_path: str
    estimated_price: float
    final_price: float | None = None
    delivery_fee: float
    status: str
    staff_designer_id: str | None = None
    payment_method: str
    payment_status: str
    delivery_status: str
    cash_collected: bool = False
    cash_collected_at: datetime | None = None
    bank_slip_url: str | None = None
    notes: str | None = None
    delivered_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class CustomOrderResponse(CamelModel):
    """Response carrying one custom order."""

    success: bool = True
    message: str | None = None
    order: CustomOrderSchema


class CustomOrderListResponse(CamelModel):
    """Response carrying a list of custom orders."""

    success: bool = True
    orders: list[CustomOrderSchema]
    section: str | None = None


class AcceptCustomOrderRequest(CamelModel):
    """Schema for PUT /api/customOrder/{id}/accept."""

    staff_designer_id: str | None = None
    final_price: float | None = Field(
        default=None,
        ge=0,
        validation_alias=AliasChoices("finalPrice", "estimatedPrice", "final_price"),
        description="Agreed price, if it differs from the estimate",
    )
    notes: str | None = None


class CustomStatusRequest(CamelModel):
    """Schema for PUT /api/customOrder/{id}/status."""

    status: str = Field(min_length=1)
    notes: str | None = None


class CustomDeliveryStatusRequest(CamelModel):
    """Schema for PUT /api/customOrder/{id}/delivery-status."""

    delivery_status: str = Field(min_length=1)
