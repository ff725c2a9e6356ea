"""Raw-material stock Pydantic schemas."""

from datetime import datetime

from pydantic import Field

from woodart.schemas.common import CamelModel


class StockItemSchema(CamelModel):
    """One (material, board size, thickness, color) combination."""

    id: str
    material: str
    board_size: str
    thickness: str
    color: str
    price: float = 0
    available_quantity: int
    reorder_level: int
    updated_at: datetime | None = None


class StockListResponse(CamelModel):
    """Response for GET /api/stock."""

    success: bool = True
    stock: list[StockItemSchema]
    total_combinations: int


class StockItemResponse(CamelModel):
    """Response carrying one stock item."""

    success: bool = True
    stock: StockItemSchema


class StockSummary(CamelModel):
    """Inventory dashboard counters."""

    total_combinations: int
    low_stock_items: int
    out_of_stock_items: int
    total_quantity: int


class StockSummaryResponse(CamelModel):
    """Response for GET /api/stock/summary."""

    success: bool = True
    summary: StockSummary


class LowStockCountResponse(CamelModel):
    """Response for GET /api/stock/low-stock-count."""

    success: bool = True
    count: int


class StockUpdateRequest(CamelModel):
    """Schema for PUT /api/stock/{id}."""

    available_quantity: int | None = Field(default=None, description="Absolute quantity after a stock count")
    reorder_level: int | None = None
    restock: int | None = Field(default=None, description="Units received, added to the current quantity")


class StockReleaseRequest(CamelModel):
    """Schema for POST /api/stock/release."""

    designer_name: str = Field(min_length=1)
    designer_email: str = Field(min_length=3)
    material: str = Field(min_length=1)
    board_size: str = Field(min_length=1)
    thickness: str = Field(min_length=1)
    color: str = Field(min_length=1)
    quantity: int = Field(ge=1)
    notes: str | None = None


class StockReleaseSchema(CamelModel):
    """A stock_releases row."""

    id: str
    designer_name: str
    designer_email: str
    material: str
    board_size: str
    thickness: str
    color: str
    quantity: int
    notes: str | None = None
    release_date: datetime | None = None


class StockReleaseResponse(CamelModel):
    """Response after releasing material to a staff designer."""

    success: bool = True
    message: str = "Stock released successfully"
    stock_release: StockReleaseSchema
    updated_stock: StockItemSchema


class StockReleaseListResponse(CamelModel):
    """Response for GET /api/stock/releases."""

    success: bool = True
    releases: list[StockReleaseSchema]
    total: int
