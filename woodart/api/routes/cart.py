"""Shopping cart API routes."""

from fastapi import APIRouter

from woodart.api.deps import CartServiceDep
from woodart.schemas.cart import CartClearRequest, CartItemRequest, CartResponse, CartUpdateRequest

router = APIRouter(prefix="/cart", tags=["cart"])


@router.get("/{email}", response_model=CartResponse, summary="Get a cart")
async def get_cart(email: str, service: CartServiceDep) -> CartResponse:
    """Cart lines with current prices and available quantities."""
    return CartResponse(cart=await service.get_cart(email))


@router.post(
    "/add",
    response_model=CartResponse,
    summary="Add a design to the cart",
    responses={409: {"description": "Design already in the cart"}, 422: {"description": "Out of stock"}},
)
async def add_item(data: CartItemRequest, service: CartServiceDep) -> CartResponse:
    """Add one unit of a design."""
    cart = await service.add_item(data.user_email, data.design_id)
    return CartResponse(message="Item added to cart", cart=cart)


@router.post("/remove", response_model=CartResponse, summary="Remove a design from the cart")
async def remove_item(data: CartItemRequest, service: CartServiceDep) -> CartResponse:
    """Drop a line from the cart."""
    cart = await service.remove_item(data.user_email, data.design_id)
    return CartResponse(message="Item removed from cart", cart=cart)


@router.post("/update", response_model=CartResponse, summary="Change a cart line quantity")
async def update_item(data: CartUpdateRequest, service: CartServiceDep) -> CartResponse:
    """Set the quantity of a line, limited by available stock."""
    cart = await service.update_item(data.user_email, data.design_id, data.quantity)
    return CartResponse(message="Cart updated", cart=cart)


@router.post("/clear", response_model=CartResponse, summary="Empty the cart")
async def clear_cart(data: CartClearRequest, service: CartServiceDep) -> CartResponse:
    """Remove every line from the cart."""
    await service.clear_cart(data.user_email)
    return CartResponse(message="Cart cleared", cart=[])
