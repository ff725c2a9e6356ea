"""Delivery team overview route."""

from fastapi import APIRouter

from woodart.api.deps import DeliveryServiceDep
from woodart.schemas.delivery import DeliveryOverview, DeliveryOverviewResponse

router = APIRouter(prefix="/delivery", tags=["delivery"])


@router.get(
    "/overview",
    response_model=DeliveryOverviewResponse,
    summary="Delivery overview",
    description="Ready, on-delivery and delivered-today counts for both order kinds, with this month's delivery revenue.",
)
async def delivery_overview(service: DeliveryServiceDep) -> DeliveryOverviewResponse:
    """Counters for the delivery dashboard."""
    overview = await service.overview()
    return DeliveryOverviewResponse(overview=DeliveryOverview(**overview))
