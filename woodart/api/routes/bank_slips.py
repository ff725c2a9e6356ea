"""Bank transfer proof workflow routes."""

from fastapi import APIRouter, File, Form, UploadFile, status

from woodart.api.deps import BankSlipServiceDep
from woodart.schemas.bank_slip import (
    BankSlipListResponse,
    BankSlipReviewRequest,
    BankSlipReviewResponse,
    BankSlipUploadResponse,
)

router = APIRouter(prefix="/bankSlip", tags=["bank-slips"])


@router.post(
    "/upload",
    response_model=BankSlipUploadResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Upload a bank slip",
    responses={
        201: {"description": "Slip stored"},
        413: {"description": "Upload too large"},
        422: {"description": "Empty file or unsupported file type"},
        404: {"description": "Order not found"},
    },
)
async def upload_bank_slip(
    service: BankSlipServiceDep,
    bank_slip: UploadFile = File(..., alias="bankSlip", description="Slip image or PDF"),
    order_id: str | None = Form(default=None, alias="orderId"),
) -> BankSlipUploadResponse:
    """Store a slip and, when an order id is given, attach it to that order.

    Checkout uploads the slip first and passes the returned URL when
    creating the order.
    """
    url = await service.upload_slip(
        await bank_slip.read(),
        bank_slip.filename or "bank-slip",
        bank_slip.content_type,
        order_id=order_id,
    )
    return BankSlipUploadResponse(file_path=url, order_id=order_id)


@router.get("/pending", response_model=BankSlipListResponse, summary="Slips awaiting verification")
async def list_pending(service: BankSlipServiceDep) -> BankSlipListResponse:
    """Marketplace and custom orders with an unverified bank transfer."""
    return BankSlipListResponse(bank_slips=await service.list_pending())


@router.put(
    "/{order_id}/status",
    response_model=BankSlipReviewResponse,
    summary="Approve or deny a bank transfer",
    responses={
        404: {"description": "Order not found"},
        409: {"description": "Payment is not awaiting verification"},
    },
)
async def review_bank_slip(
    order_id: str,
    data: BankSlipReviewRequest,
    service: BankSlipServiceDep,
) -> BankSlipReviewResponse:
    """``paid`` confirms the order, ``failed`` cancels it."""
    order = await service.review(order_id, data.payment_status, data.notes)
    approved = order["payment_status"] == "paid"
    return BankSlipReviewResponse(
        message="Payment approved" if approved else "Payment denied",
        order_id=order["order_id"],
        order_type=order["order_type"],
        payment_status=order["payment_status"],
        status=order["status"],
    )
