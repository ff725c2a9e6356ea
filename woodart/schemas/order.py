"""Marketplace order Pydantic schemas for API request/response models."""

from datetime import datetime
from typing import Literal

from pydantic import Field

from woodart.schemas.common import CamelModel


class OrderItemRequest(CamelModel):
    """A line the customer wants to buy.

    The price is always taken from the design listing; a client-sent
    ``unitPrice`` is accepted for compatibility but not trusted.
    """

    design_id: str = Field(min_length=1, description="Design UUID")
    quantity: int = Field(ge=1, description="Units requested")
    unit_price: float | None = Field(default=None, ge=0, description="Price the client displayed (ignored)")


class OrderCreateRequest(CamelModel):
    """Schema for POST /api/orders/create."""

    customer_email: str = Field(min_length=3, description="Buyer email")
    customer_name: str | None = Field(default=None, description="Buyer name")
    customer_phone: str | None = Field(default=None, description="Buyer phone")
    customer_address: str | None = Field(default=None, description="Delivery address")
    items: list[OrderItemRequest] = Field(min_length=1, description="Lines to purchase")
    payment_method: str = Field(description="cash_on_delivery or bank_transfer")
    bank_slip_url: str | None = Field(default=None, description="Previously uploaded bank slip")
    order_type: Literal["cart", "individual"] = Field(default="cart", description="cart clears the cart afterwards")
    notes: str | None = None


class OrderItemSchema(CamelModel):
    """A stored order line."""

    item_id: str = Field(description="Order item id, the ledger key")
    design_id: str
    designer_id: str | None = None
    designer_name: str | None = None
    designer_email: str | None = None
    item_name: str
    quantity: int
    unit_price: float
    subtotal: float
    material: str | None = None
    board_size: str | None = None
    board_color: str | None = None
    board_thickness: str | None = None
    image_url: str | None = None


class OrderSchema(CamelModel):
    """Full marketplace order as returned to clients."""

    order_id: str = Field(description="Human-readable order id (WAG-...)")
    customer_name: str | None = None
    customer_email: str
    customer_phone: str | None = None
    customer_address: str | None = None
    items: list[OrderItemSchema]
    items_total: float
    delivery_fee: float
    total_amount: float
    payment_method: str
    payment_status: str
    status: str
    delivery_status: str
    cash_collected: bool = False
    cash_collected_at: datetime | None = None
    cash_collected_by: str | None = None
    stock_reserved: bool = Field(default=False, description="Units still held for this order")
    bank_slip_url: str | None = None
    notes: str | None = None
    delivered_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class OrderSummary(CamelModel):
    """What the checkout page needs after placing an order."""

    order_id: str
    total_amount: float
    status: str
    payment_status: str
    created_at: datetime | None = None


class OrderCreateResponse(CamelModel):
    """Response for order creation."""

    success: bool = True
    message: str = "Order created successfully"
    order: OrderSummary


class OrderResponse(CamelModel):
    """Response carrying a single order."""

    success: bool = True
    message: str | None = None
    order: OrderSchema


class OrderListResponse(CamelModel):
    """Response carrying a list of orders."""

    success: bool = True
    orders: list[OrderSchema]


class DeliveryOrderListResponse(OrderListResponse):
    """Orders in one delivery-dashboard bucket."""

    section: str


class UpdateStatusRequest(CamelModel):
    """Schema for PUT /api/orders/update-status."""

    order_id: str = Field(min_length=1)
    status: str | None = Field(default=None, description="Target order status")
    delivery_status: str | None = Field(default=None, description="Target delivery status")
    notes: str | None = None


class CancelOrderRequest(CamelModel):
    """Schema for POST /api/orders/cancel."""

    order_id: str = Field(min_length=1)
    reason: str | None = None


class CollectCashRequest(CamelModel):
    """Schema for collect-cash actions."""

    order_id: str = Field(min_length=1)
    collected_by: str | None = Field(default=None, description="Delivery partner, if no token is sent")


class NotifyDeliveryRequest(CamelModel):
    """Schema for POST /api/orders/notify-delivery."""

    order_id: str = Field(min_length=1)
    designer_email: str | None = Field(default=None, description="Designer handing over their items")


class DesignerOrderItemSchema(OrderItemSchema):
    """An order line with the designer's share of it."""

    commission: float
    designer_amount: float
    payment_released: bool = False
    released_at: datetime | None = None


class DesignerOrderSchema(OrderSchema):
    """An order as seen by one designer: only their lines."""

    items: list[DesignerOrderItemSchema]
    designer_total: float = Field(description="Sum of the designer's line subtotals")
    designer_earnings: float = Field(description="Designer's share after commission")


class DesignerOrderListResponse(CamelModel):
    """Response for GET /api/orders/designer/{email}."""

    success: bool = True
    orders: list[DesignerOrderSchema]
