"""Raw material stock routes."""

from fastapi import APIRouter, Query, status

from woodart.api.deps import InventoryServiceDep
from woodart.schemas.stock import (
    LowStockCountResponse,
    StockItemResponse,
    StockListResponse,
    StockReleaseListResponse,
    StockReleaseRequest,
    StockReleaseResponse,
    StockSummary,
    StockSummaryResponse,
    StockUpdateRequest,
)

router = APIRouter(prefix="/stock", tags=["stock"])


@router.get("", response_model=StockListResponse, summary="List stock combinations")
async def list_stock(
    service: InventoryServiceDep,
    material: str | None = Query(default=None),
    board_size: str | None = Query(default=None, alias="boardSize"),
    thickness: str | None = Query(default=None),
    color: str | None = Query(default=None),
    low_stock: bool = Query(default=False, alias="lowStock", description="Only items at or below reorder level"),
) -> StockListResponse:
    """Stock items, optionally filtered by combination fields."""
    items = await service.list_stock(
        {"material": material, "board_size": board_size, "thickness": thickness, "color": color},
        low_stock=low_stock,
    )
    return StockListResponse(stock=items, total_combinations=len(items))


@router.get("/summary", response_model=StockSummaryResponse, summary="Inventory dashboard counters")
async def get_summary(service: InventoryServiceDep) -> StockSummaryResponse:
    """Totals, low-stock and out-of-stock counts."""
    return StockSummaryResponse(summary=StockSummary(**await service.get_summary()))


@router.get("/low-stock-count", response_model=LowStockCountResponse, summary="Low stock badge count")
async def low_stock_count(service: InventoryServiceDep) -> LowStockCountResponse:
    """Number of items at or below their reorder level."""
    return LowStockCountResponse(count=await service.low_stock_count())


@router.get(
    "/combination",
    response_model=StockItemResponse,
    summary="Look up one combination",
    responses={404: {"description": "Combination not stocked"}},
)
async def get_combination(
    service: InventoryServiceDep,
    material: str = Query(default=""),
    board_size: str = Query(default="", alias="boardSize"),
    thickness: str = Query(default=""),
    color: str = Query(default=""),
) -> StockItemResponse:
    """Fetch the stock item for a material, board size, thickness and color."""
    item = await service.get_combination(material, board_size, thickness, color)
    return StockItemResponse(stock=item)


@router.get("/releases", response_model=StockReleaseListResponse, summary="Release history")
async def list_releases(
    service: InventoryServiceDep,
    designer_email: str | None = Query(default=None, alias="designerEmail"),
    material: str | None = Query(default=None),
) -> StockReleaseListResponse:
    """Recent material releases to staff designers."""
    releases = await service.list_releases(designer_email, material)
    return StockReleaseListResponse(releases=releases, total=len(releases))


@router.post(
    "/release",
    response_model=StockReleaseResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Release material to a staff designer",
    responses={
        404: {"description": "Combination not stocked"},
        422: {"description": "Release would drop stock below the floor"},
    },
)
async def release_stock(data: StockReleaseRequest, service: InventoryServiceDep) -> StockReleaseResponse:
    """Take boards out of stock and record who received them."""
    result = await service.release_to_designer(
        designer_name=data.designer_name,
        designer_email=data.designer_email,
        material=data.material,
        board_size=data.board_size,
        thickness=data.thickness,
        color=data.color,
        quantity=data.quantity,
        notes=data.notes,
    )
    return StockReleaseResponse(stock_release=result["release"], updated_stock=result["stock"])


@router.put(
    "/{item_id}",
    response_model=StockItemResponse,
    summary="Update a stock item",
    responses={404: {"description": "Stock item not found"}},
)
async def update_stock_item(
    item_id: str,
    data: StockUpdateRequest,
    service: InventoryServiceDep,
) -> StockItemResponse:
    """Set the counted quantity or reorder level, or add received boards."""
    item = await service.update_stock_item(
        item_id,
        available_quantity=data.available_quantity,
        reorder_level=data.reorder_level,
        restock=data.restock,
    )
    return StockItemResponse(stock=item)
