"""FastAPI dependency injection functions."""

from typing import Annotated

from fastapi import Depends, Header

from woodart.api.middleware.auth import AuthError, AuthErrorCode, decode_jwt
from woodart.api.middleware.error_handler import AuthenticationError
from woodart.core.events import EventBroadcaster, get_event_broadcaster
from woodart.schemas.auth import UserContext
from woodart.services.bank_slip_service import BankSlipService
from woodart.services.cart_service import CartService
from woodart.services.custom_order_service import CustomOrderService
from woodart.services.delivery_service import DeliveryService
from woodart.services.design_service import DesignService
from woodart.services.inventory_service import InventoryService
from woodart.services.ledger_service import LedgerService
from woodart.services.order_service import OrderService


async def get_optional_user(
    authorization: Annotated[str | None, Header()] = None,
) -> UserContext | None:
    """Extract the acting user if an Authorization header is present.

    No endpoint requires a token; when one is sent it must be valid, and
    the user it names is recorded on releases and cash collections.

    Args:
        authorization: Optional Authorization header value.

    Returns:
        UserContext | None: The user context if a token was sent, None otherwise.

    Raises:
        AuthenticationError: If the header is malformed or the token is invalid.
    """
    if not authorization:
        return None

    # Extract the token from "Bearer <token>" format
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise AuthenticationError("Invalid authorization header format. Expected: Bearer <token>")

    try:
        return decode_jwt(parts[1]).to_user_context()
    except AuthError as e:
        if e.code == AuthErrorCode.TOKEN_EXPIRED:
            raise AuthenticationError("Token has expired") from e
        raise AuthenticationError(e.message) from e
    except ValueError as e:
        # sub claim is not a UUID
        raise AuthenticationError("Invalid token subject") from e


def get_order_service() -> OrderService:
    """Provide the marketplace order service."""
    return OrderService()


def get_ledger_service() -> LedgerService:
    """Provide the designer payment ledger service."""
    return LedgerService()


def get_custom_order_service() -> CustomOrderService:
    """Provide the custom order service."""
    return CustomOrderService()


def get_cart_service() -> CartService:
    """Provide the cart service."""
    return CartService()


def get_delivery_service() -> DeliveryService:
    """Provide the delivery overview service."""
    return DeliveryService()


def get_design_service() -> DesignService:
    """Provide the design listing service."""
    return DesignService()


def get_inventory_service() -> InventoryService:
    """Provide the raw-material stock service."""
    return InventoryService()


def get_bank_slip_service(
    order_service: Annotated[OrderService, Depends(get_order_service)],
    custom_order_service: Annotated[CustomOrderService, Depends(get_custom_order_service)],
) -> BankSlipService:
    """Provide the bank slip service wired to both order services."""
    return BankSlipService(order_service, custom_order_service)


# Type aliases for cleaner dependency injection
OptionalUser = Annotated[UserContext | None, Depends(get_optional_user)]
OrderServiceDep = Annotated[OrderService, Depends(get_order_service)]
LedgerServiceDep = Annotated[LedgerService, Depends(get_ledger_service)]
CustomOrderServiceDep = Annotated[CustomOrderService, Depends(get_custom_order_service)]
CartServiceDep = Annotated[CartService, Depends(get_cart_service)]
DeliveryServiceDep = Annotated[DeliveryService, Depends(get_delivery_service)]
DesignServiceDep = Annotated[DesignService, Depends(get_design_service)]
InventoryServiceDep = Annotated[InventoryService, Depends(get_inventory_service)]
BankSlipServiceDep = Annotated[BankSlipService, Depends(get_bank_slip_service)]
BroadcasterDep = Annotated[EventBroadcaster, Depends(get_event_broadcaster)]
