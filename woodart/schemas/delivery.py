"""Delivery dashboard Pydantic schemas."""

from pydantic import Field

from woodart.schemas.common import CamelModel


class DeliveryOverview(CamelModel):
    """Counters across marketplace and custom orders."""

    ready_to_deliver: int = Field(description="Handed to delivery, not yet picked up")
    on_delivery: int = Field(description="Picked up or in transit")
    delivered_today: int
    month_delivery_revenue: float = Field(description="Delivery fees of orders delivered this month")


class DeliveryOverviewResponse(CamelModel):
    """Response for GET /api/delivery/overview."""

    success: bool = True
    overview: DeliveryOverview
