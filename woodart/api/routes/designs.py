"""Design listing API routes."""

from fastapi import APIRouter, File, Form, Query, UploadFile, status

from woodart.api.deps import DesignServiceDep
from woodart.schemas.design import DesignListResponse, DesignResponse, DesignUploadResponse

router = APIRouter(prefix="/design", tags=["designs"])


@router.get("/all-designs", response_model=DesignListResponse, summary="Marketplace listings")
async def list_designs(service: DesignServiceDep) -> DesignListResponse:
    """Every listing, newest first."""
    return DesignListResponse(designs=await service.list_designs())


@router.get("/my-uploads", response_model=DesignListResponse, summary="A designer's listings")
async def list_my_uploads(
    service: DesignServiceDep,
    email: str = Query(..., min_length=3, description="Designer email"),
) -> DesignListResponse:
    """Listings created by one designer."""
    return DesignListResponse(designs=await service.list_designs(designer_email=email))


@router.post(
    "/upload",
    response_model=DesignUploadResponse,
    status_code=status.HTTP_201_CREATED,
    summary="List a new design",
    responses={
        201: {"description": "Design listed"},
        413: {"description": "Upload too large"},
        422: {"description": "Empty file or unsupported file type"},
    },
)
async def upload_design(
    service: DesignServiceDep,
    email: str = Form(..., description="Designer email"),
    item_name: str = Form(..., alias="itemName"),
    price: float = Form(...),
    quantity: int = Form(...),
    designer_name: str | None = Form(default=None, alias="designerName"),
    designer_id: str | None = Form(default=None, alias="designerId"),
    description: str | None = Form(default=None),
    material: str | None = Form(default=None),
    board_size: str | None = Form(default=None, alias="boardSize"),
    board_color: str | None = Form(default=None, alias="boardColor"),
    board_thickness: str | None = Form(default=None, alias="boardThickness"),
    image: UploadFile = File(..., description="Product photo"),
) -> DesignUploadResponse:
    """Create a listing; live clients receive it as a designUpdated event."""
    design = await service.create_design(
        data={
            "designer_email": email,
            "designer_name": designer_name,
            "designer_id": designer_id,
            "item_name": item_name,
            "description": description,
            "price": price,
            "quantity": quantity,
            "material": material,
            "board_size": board_size,
            "board_color": board_color,
            "board_thickness": board_thickness,
        },
        image=(await image.read(), image.filename or "design", image.content_type),
    )
    return DesignUploadResponse(design_id=design["id"], item_code=design["item_code"], design=design)


@router.put(
    "/update/{design_id}",
    response_model=DesignResponse,
    summary="Edit a listing",
    responses={403: {"description": "Not the owner"}, 404: {"description": "Design not found"}},
)
async def update_design(
    design_id: str,
    service: DesignServiceDep,
    email: str = Form(..., description="Designer email"),
    item_name: str | None = Form(default=None, alias="itemName"),
    description: str | None = Form(default=None),
    price: float | None = Form(default=None),
    quantity: int | None = Form(default=None),
    material: str | None = Form(default=None),
    board_size: str | None = Form(default=None, alias="boardSize"),
    board_color: str | None = Form(default=None, alias="boardColor"),
    board_thickness: str | None = Form(default=None, alias="boardThickness"),
    image: UploadFile | None = File(default=None, description="Replacement photo"),
) -> DesignResponse:
    """Update the given fields; an edited quantity is pushed to live clients."""
    new_image = None
    if image is not None and image.filename:
        new_image = (await image.read(), image.filename, image.content_type)

    design = await service.update_design(
        design_id,
        email,
        changes={
            "item_name": item_name,
            "description": description,
            "price": price,
            "quantity": quantity,
            "material": material,
            "board_size": board_size,
            "board_color": board_color,
            "board_thickness": board_thickness,
        },
        image=new_image,
    )
    return DesignResponse(message="Design updated successfully", design=design)


@router.delete(
    "/delete/{design_id}",
    response_model=DesignResponse,
    summary="Remove a listing",
    responses={403: {"description": "Not the owner"}, 404: {"description": "Design not found"}},
)
async def delete_design(
    design_id: str,
    service: DesignServiceDep,
    email: str = Query(..., min_length=3, description="Designer email"),
) -> DesignResponse:
    """Delete a listing; only its designer may do so."""
    design = await service.delete_design(design_id, email)
    return DesignResponse(message="Design deleted successfully", design=design)


@router.get(
    "/{design_id}",
    response_model=DesignResponse,
    summary="Get a listing",
    responses={404: {"description": "Design not found"}},
)
async def get_design(design_id: str, service: DesignServiceDep) -> DesignResponse:
    """Fetch one listing."""
    return DesignResponse(design=await service.get_design(design_id))
