"""Custom order API routes."""

from fastapi import APIRouter, File, Form, Query, UploadFile, status

from woodart.api.deps import CustomOrderServiceDep, OptionalUser
from woodart.schemas.custom_order import (
    AcceptCustomOrderRequest,
    CustomDeliveryStatusRequest,
    CustomOrderListResponse,
    CustomOrderResponse,
    CustomStatusRequest,
)
from woodart.schemas.order import CollectCashRequest

router = APIRouter(prefix="/customOrder", tags=["custom-orders"])


@router.post(
    "/create",
    response_model=CustomOrderResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Request a custom piece",
    responses={
        201: {"description": "Custom order created"},
        413: {"description": "Upload too large"},
        422: {"description": "Missing fields, unsupported file, or bank payment without a slip"},
    },
)
async def create_custom_order(
    service: CustomOrderServiceDep,
    customer_name: str = Form(..., alias="customerName"),
    customer_email: str = Form(..., alias="customerEmail"),
    material: str = Form(...),
    board_color: str = Form(..., alias="boardColor"),
    board_size: str = Form(..., alias="boardSize"),
    board_thickness: str = Form(..., alias="boardThickness"),
    customer_phone: str | None = Form(default=None, alias="customerPhone"),
    customer_address: str | None = Form(default=None, alias="customerAddress"),
    description: str | None = Form(default=None),
    total_price: float = Form(default=0, alias="totalPrice"),
    payment_method: str = Form(default="cash", alias="paymentMethod"),
    image: UploadFile = File(..., description="Reference sketch or photo (PNG, JPG or WebP)"),
    bank_slip: UploadFile | None = File(default=None, alias="bankSlip", description="Required for bank payments"),
) -> CustomOrderResponse:
    """Create a custom order from the multipart request form.

    Cash orders are accepted as paid; bank orders wait for slip approval
    before a staff designer can take them.
    """
    slip = None
    if bank_slip is not None and bank_slip.filename:
        slip = (await bank_slip.read(), bank_slip.filename, bank_slip.content_type)

    order = await service.create_custom_order(
        data={
            "customer_name": customer_name,
            "customer_email": customer_email,
            "customer_phone": customer_phone,
            "customer_address": customer_address,
            "material": material,
            "board_color": board_color,
            "board_size": board_size,
            "board_thickness": board_thickness,
            "description": description,
            "total_price": total_price,
            "payment_method": payment_method,
        },
        reference_image=(await image.read(), image.filename or "reference", image.content_type),
        bank_slip=slip,
    )
    return CustomOrderResponse(message="Custom order created successfully", order=order)


@router.get("/pending", response_model=CustomOrderListResponse, summary="Orders waiting for a staff designer")
async def list_pending(service: CustomOrderServiceDep) -> CustomOrderListResponse:
    """Pending custom orders, newest first."""
    return CustomOrderListResponse(orders=await service.list_queue("pending"))


@router.get("/accepted", response_model=CustomOrderListResponse, summary="Orders being worked on")
async def list_accepted(service: CustomOrderServiceDep) -> CustomOrderListResponse:
    """Accepted custom orders."""
    return CustomOrderListResponse(orders=await service.list_queue("accepted"))


@router.get("/completed", response_model=CustomOrderListResponse, summary="Finished orders")
async def list_completed(service: CustomOrderServiceDep) -> CustomOrderListResponse:
    """Completed custom orders."""
    return CustomOrderListResponse(orders=await service.list_queue("completed"))


@router.get("/user/{email}", response_model=CustomOrderListResponse, summary="A customer's custom orders")
async def list_customer_orders(email: str, service: CustomOrderServiceDep) -> CustomOrderListResponse:
    """All custom orders placed by a customer."""
    return CustomOrderListResponse(orders=await service.list_customer_orders(email))


@router.get(
    "/staff/{staff_designer_id}",
    response_model=CustomOrderListResponse,
    summary="A staff designer's custom orders",
)
async def list_staff_orders(
    staff_designer_id: str,
    service: CustomOrderServiceDep,
    status: str | None = Query(default=None, description="Only orders in this status"),
) -> CustomOrderListResponse:
    """Custom orders a staff designer has accepted, most recently updated first."""
    return CustomOrderListResponse(orders=await service.list_staff_orders(staff_designer_id, status))


@router.get("/delivery/custom", response_model=CustomOrderListResponse, summary="Delivery dashboard bucket")
async def list_delivery_orders(
    service: CustomOrderServiceDep,
    section: str = Query(default="ready", description="ready, on or completed"),
) -> CustomOrderListResponse:
    """Custom orders ready for pickup, on the road, or delivered."""
    orders = await service.list_delivery_orders(section)
    return CustomOrderListResponse(orders=orders, section=section)


@router.post("/collect-cash", response_model=CustomOrderResponse, summary="Record cash collected on delivery")
async def collect_cash(
    data: CollectCashRequest,
    service: CustomOrderServiceDep,
    user: OptionalUser,
) -> CustomOrderResponse:
    """Mark the cash of a cash-on-delivery custom order as collected."""
    collected_by = user.actor if user else data.collected_by
    order = await service.collect_cash(data.order_id, collected_by)
    return CustomOrderResponse(message="Cash collected", order=order)


@router.put(
    "/{order_id}/accept",
    response_model=CustomOrderResponse,
    summary="Accept a custom order",
    responses={409: {"description": "Not pending, or payment not yet verified"}},
)
async def accept_order(
    order_id: str,
    data: AcceptCustomOrderRequest,
    service: CustomOrderServiceDep,
) -> CustomOrderResponse:
    """A staff designer takes the order, optionally fixing the final price."""
    order = await service.accept_order(
        order_id,
        staff_designer_id=data.staff_designer_id,
        final_price=data.final_price,
        notes=data.notes,
    )
    return CustomOrderResponse(message="Custom order accepted", order=order)


@router.put("/{order_id}/status", response_model=CustomOrderResponse, summary="Change custom order status")
async def update_status(
    order_id: str,
    data: CustomStatusRequest,
    service: CustomOrderServiceDep,
) -> CustomOrderResponse:
    """Move the order to in_progress, completed or cancelled."""
    order = await service.update_status(order_id, data.status, data.notes)
    return CustomOrderResponse(message="Custom order status updated", order=order)


@router.put(
    "/{order_id}/delivery-status",
    response_model=CustomOrderResponse,
    summary="Advance the delivery of a custom order",
)
async def update_delivery_status(
    order_id: str,
    data: CustomDeliveryStatusRequest,
    service: CustomOrderServiceDep,
) -> CustomOrderResponse:
    """Record pickup, transit or delivery."""
    order = await service.update_delivery_status(order_id, data.delivery_status)
    return CustomOrderResponse(message="Delivery status updated", order=order)


@router.post(
    "/{order_id}/notify-delivery",
    response_model=CustomOrderResponse,
    summary="Hand a completed custom order to the delivery team",
)
async def notify_delivery(order_id: str, service: CustomOrderServiceDep) -> CustomOrderResponse:
    """Push a completed order into the delivery queue."""
    order = await service.notify_delivery(order_id)
    return CustomOrderResponse(message="Delivery team notified", order=order)


@router.get("/{order_id}", response_model=CustomOrderResponse, summary="Get a custom order")
async def get_custom_order(order_id: str, service: CustomOrderServiceDep) -> CustomOrderResponse:
    """Fetch a custom order by readable id or storage id."""
    return CustomOrderResponse(order=await service.get_custom_order(order_id))
