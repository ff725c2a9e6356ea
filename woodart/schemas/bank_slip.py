"""Bank slip workflow Pydantic schemas."""

from datetime import datetime

from pydantic import Field

from woodart.schemas.common import CamelModel


class BankSlipUploadResponse(CamelModel):
    """Response after storing a bank slip."""

    success: bool = True
    file_path: str = Field(description="Public URL of the stored slip")
    order_id: str | None = None


class PendingBankSlip(CamelModel):
    """An order of either kind waiting for its bank transfer to be verified."""

    order_id: str
    order_type: str = Field(description="marketplace or custom")
    customer_name: str | None = None
    customer_email: str
    total_amount: float | None = None
    estimated_price: float | None = None
    final_price: float | None = None
    bank_slip_url: str | None = None
    payment_status: str
    status: str
    created_at: datetime | None = None


class BankSlipListResponse(CamelModel):
    """Response for GET /api/bankSlip/pending."""

    success: bool = True
    bank_slips: list[PendingBankSlip]


class BankSlipReviewRequest(CamelModel):
    """Schema for PUT /api/bankSlip/{orderId}/status."""

    payment_status: str = Field(description="paid to approve, failed to deny")
    notes: str | None = None


class BankSlipReviewResponse(CamelModel):
    """Outcome of a bank slip review."""

    success: bool = True
    message: str
    order_id: str
    order_type: str
    payment_status: str
    status: str
