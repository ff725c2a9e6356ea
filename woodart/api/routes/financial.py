"""Financial routes: designer payment ledger and income reports."""

from fastapi import APIRouter

from woodart.api.deps import LedgerServiceDep, OptionalUser
from woodart.schemas.financial import (
    CustomIncomeResponse,
    MarketplaceIncomeResponse,
    PaymentHistoryResponse,
    ReleasePaymentRequest,
    ReleasePaymentResponse,
)

router = APIRouter(prefix="/financial", tags=["financial"])


@router.post(
    "/release-designer-payment",
    response_model=ReleasePaymentResponse,
    summary="Release a designer payment",
    description="Marks one ledger entry as paid out. A second release of the same entry is rejected.",
    responses={
        404: {"description": "Order or ledger entry not found"},
        409: {"description": "Already released, or the order is not delivered"},
    },
)
async def release_designer_payment(
    data: ReleasePaymentRequest,
    service: LedgerServiceDep,
    user: OptionalUser,
) -> ReleasePaymentResponse:
    """Release the designer's share of one delivered order line."""
    payment = await service.release_designer_payment(
        order_id=data.order_id,
        design_id=data.design_id,
        order_item_id=data.order_item_id,
        released_by=user.actor if user else None,
    )
    return ReleasePaymentResponse(payment=payment)


@router.get(
    "/marketplace-income",
    response_model=MarketplaceIncomeResponse,
    summary="Marketplace income report",
)
async def marketplace_income(service: LedgerServiceDep) -> MarketplaceIncomeResponse:
    """Ledger rows for recognised orders with commission and payout totals."""
    report = await service.marketplace_income()
    return MarketplaceIncomeResponse(rows=report["rows"], totals=report["totals"])


@router.get(
    "/customize-order-income",
    response_model=CustomIncomeResponse,
    summary="Custom order income report",
)
async def customize_order_income(service: LedgerServiceDep) -> CustomIncomeResponse:
    """Paid custom orders with delivery and item totals."""
    report = await service.customize_order_income()
    return CustomIncomeResponse(rows=report["rows"], totals=report["totals"], count=report["count"])


@router.get(
    "/designer-payment-history/{email}",
    response_model=PaymentHistoryResponse,
    summary="A designer's released payments",
)
async def designer_payment_history(email: str, service: LedgerServiceDep) -> PaymentHistoryResponse:
    """Payments released to a designer, newest first."""
    payments = await service.designer_payment_history(email)
    return PaymentHistoryResponse(payments=payments)
