"""Design listing Pydantic schemas."""

from datetime import datetime

from woodart.schemas.common import CamelModel


class DesignSchema(CamelModel):
    """A marketplace listing."""

    id: str
    designer_id: str | None = None
    designer_name: str | None = None
    designer_email: str | None = None
    item_name: str
    description: str | None = None
    price: float
    quantity: int
    material: str | None = None
    board_size: str | None = None
    board_color: str | None = None
    board_thickness: str | None = None
    image_url: str | None = None
    item_code: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class DesignResponse(CamelModel):
    """Response carrying one listing."""

    success: bool = True
    message: str | None = None
    design: DesignSchema


class DesignListResponse(CamelModel):
    """Response carrying listings."""

    success: bool = True
    designs: list[DesignSchema]


class DesignUploadResponse(CamelModel):
    """Response after listing a new design."""

    success: bool = True
    message: str = "Design uploaded and saved successfully"
    design_id: str
    item_code: str
    design: DesignSchema
