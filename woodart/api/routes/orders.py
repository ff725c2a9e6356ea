"""Marketplace order API routes."""

from fastapi import APIRouter, Query, status

from woodart.api.deps import OptionalUser, OrderServiceDep
from woodart.schemas.order import (
    CancelOrderRequest,
    CollectCashRequest,
    DeliveryOrderListResponse,
    DesignerOrderListResponse,
    NotifyDeliveryRequest,
    OrderCreateRequest,
    OrderCreateResponse,
    OrderListResponse,
    OrderResponse,
    OrderSummary,
    UpdateStatusRequest,
)

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post(
    "/create",
    response_model=OrderCreateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Place a marketplace order",
    description="Reserves stock for every line and creates the order. Fails as a whole if any design is short.",
    responses={
        201: {"description": "Order created"},
        404: {"description": "A design does not exist"},
        409: {"description": "Insufficient stock"},
        422: {"description": "Invalid request"},
    },
)
async def create_order(data: OrderCreateRequest, service: OrderServiceDep) -> OrderCreateResponse:
    """Create an order from the checkout page.

    Cash-on-delivery orders are confirmed immediately; bank transfers stay
    pending until the bank slip is approved.
    """
    order = await service.create_order(
        customer_email=data.customer_email,
        items=[item.model_dump() for item in data.items],
        payment_method=data.payment_method,
        customer_name=data.customer_name,
        customer_phone=data.customer_phone,
        customer_address=data.customer_address,
        bank_slip_url=data.bank_slip_url,
        order_type=data.order_type,
        notes=data.notes,
    )
    return OrderCreateResponse(order=OrderSummary.model_validate(order))


@router.put(
    "/update-status",
    response_model=OrderResponse,
    summary="Change order or delivery status",
    responses={
        404: {"description": "Order not found"},
        409: {"description": "Transition not allowed from the current state"},
    },
)
async def update_status(data: UpdateStatusRequest, service: OrderServiceDep) -> OrderResponse:
    """Apply a staff status change; illegal transitions are rejected with 409."""
    order = await service.update_status(
        order_id=data.order_id,
        status=data.status,
        delivery_status=data.delivery_status,
        notes=data.notes,
    )
    return OrderResponse(message="Order status updated", order=order)


@router.post(
    "/cancel",
    response_model=OrderResponse,
    summary="Cancel an order",
    description="Cancels the order and returns its reserved units to stock.",
)
async def cancel_order(data: CancelOrderRequest, service: OrderServiceDep) -> OrderResponse:
    """Cancel an order that has not been delivered."""
    order = await service.cancel_order(data.order_id, data.reason)
    return OrderResponse(message="Order cancelled", order=order)


@router.post(
    "/collect-cash",
    response_model=OrderResponse,
    summary="Record cash collected on delivery",
)
async def collect_cash(data: CollectCashRequest, service: OrderServiceDep, user: OptionalUser) -> OrderResponse:
    """Mark the cash of a cash-on-delivery order as collected.

    The collector is taken from the bearer token when one is sent.
    """
    collected_by = user.actor if user else data.collected_by
    order = await service.collect_cash(data.order_id, collected_by)
    return OrderResponse(message="Cash collected", order=order)


@router.post(
    "/notify-delivery",
    response_model=OrderResponse,
    summary="Hand an order to the delivery team",
)
async def notify_delivery(data: NotifyDeliveryRequest, service: OrderServiceDep) -> OrderResponse:
    """A designer signals their items are ready for pickup."""
    order = await service.notify_delivery(data.order_id, data.designer_email)
    return OrderResponse(message="Delivery team notified", order=order)


@router.get(
    "/delivery/marketplace",
    response_model=DeliveryOrderListResponse,
    summary="Delivery dashboard bucket",
)
async def list_delivery_orders(
    service: OrderServiceDep,
    section: str = Query(default="ready", description="ready, on or completed"),
) -> DeliveryOrderListResponse:
    """Orders ready for pickup, on the road, or delivered."""
    orders = await service.list_delivery_orders(section)
    return DeliveryOrderListResponse(orders=orders, section=section)


@router.get(
    "/designer/{email}",
    response_model=DesignerOrderListResponse,
    summary="Orders containing a designer's items",
)
async def list_designer_orders(email: str, service: OrderServiceDep) -> DesignerOrderListResponse:
    """Paid orders narrowed to the designer's lines, with their earnings."""
    orders = await service.list_designer_orders(email)
    return DesignerOrderListResponse(orders=orders)


@router.get(
    "/customer/{email}",
    response_model=OrderListResponse,
    summary="A customer's orders",
)
async def list_customer_orders(email: str, service: OrderServiceDep) -> OrderListResponse:
    """All orders placed by a customer, newest first."""
    orders = await service.list_customer_orders(email)
    return OrderListResponse(orders=orders)


@router.get(
    "/{order_id}",
    response_model=OrderResponse,
    summary="Get an order",
    responses={404: {"description": "Order not found"}},
)
async def get_order(order_id: str, service: OrderServiceDep) -> OrderResponse:
    """Fetch one order by its readable id."""
    order = await service.get_order(order_id)
    return OrderResponse(order=order)
