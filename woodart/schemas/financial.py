"""Financial (ledger and income) Pydantic schemas."""

from datetime import datetime

from pydantic import Field, model_validator

from woodart.schemas.common import CamelModel


class ReleasePaymentRequest(CamelModel):
    """Schema for POST /api/financial/release-designer-payment."""

    order_id: str = Field(min_length=1)
    design_id: str | None = Field(default=None, description="Used to find the line when orderItemId is absent")
    order_item_id: str | None = Field(default=None, description="Exact order line to release")

    @model_validator(mode="after")
    def require_line(self) -> "ReleasePaymentRequest":
        """Either the design or the order item must be named."""
        if not self.design_id and not self.order_item_id:
            raise ValueError("designId or orderItemId is required")
        return self


class DesignerPaymentSchema(CamelModel):
    """A designer_payments ledger row."""

    order_id: str
    order_item_id: str
    design_id: str
    designer_id: str | None = None
    designer_name: str
    designer_email: str | None = None
    customer_name: str | None = None
    customer_email: str
    item_name: str
    quantity: int
    item_price: float
    commission_rate: float
    commission: float
    designer_amount: float
    released: bool
    released_at: datetime | None = None
    released_by: str | None = None
    created_at: datetime | None = None


class ReleasePaymentResponse(CamelModel):
    """Response after releasing a designer payment."""

    success: bool = True
    message: str = "Payment released successfully"
    payment: DesignerPaymentSchema


class PaymentHistoryResponse(CamelModel):
    """Released payments for one designer."""

    success: bool = True
    payments: list[DesignerPaymentSchema]


class MarketplaceIncomeRow(CamelModel):
    """One order line on the marketplace income report."""

    order_id: str
    order_item_id: str
    design_id: str
    item_name: str
    quantity: int
    customer_name: str | None = None
    customer_email: str
    designer_name: str | None = None
    designer_email: str | None = None
    payment_method: str
    order_status: str
    item_price: float
    delivery_fee: float
    commission: float
    designer_amount: float
    released: bool
    released_at: datetime | None = None
    payment_record_id: str | None = None


class MarketplaceIncomeTotals(CamelModel):
    """Report totals; delivery is counted once per order."""

    total_price: float
    delivery: float
    item_price: float
    commission: float
    designer_payment: float
    released: float
    unreleased: float


class MarketplaceIncomeResponse(CamelModel):
    """Response for GET /api/financial/marketplace-income."""

    success: bool = True
    rows: list[MarketplaceIncomeRow]
    totals: MarketplaceIncomeTotals


class CustomIncomeRow(CamelModel):
    """One custom order on the custom-order income report."""

    order_id: str
    customer_name: str | None = None
    customer_email: str
    staff_designer_id: str | None = None
    payment_method: str
    total_price: float
    delivery_fee: float
    item_price: float
    status: str
    paid_at: datetime | None = None


class CustomIncomeTotals(CamelModel):
    """Custom-order income totals."""

    total_amount: float
    delivery: float
    item_price: float


class CustomIncomeResponse(CamelModel):
    """Response for GET /api/financial/customize-order-income."""

    success: bool = True
    rows: list[CustomIncomeRow]
    totals: CustomIncomeTotals
    count: int
