"""Database model type definitions."""

from woodart.models.custom_order import CustomOrder, CustomOrderQueue, CustomOrderStatus
from woodart.models.design import CartItem, Design
from woodart.models.designer_payment import DesignerPayment
from woodart.models.order import (
    DeliverySection,
    DeliveryStatus,
    Order,
    OrderItem,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
)
from woodart.models.stock import StockItem, StockRelease

__all__ = [
    "CartItem",
    "CustomOrder",
    "CustomOrderQueue",
    "CustomOrderStatus",
    "DeliverySection",
    "DeliveryStatus",
    "Design",
    "DesignerPayment",
    "Order",
    "OrderItem",
    "OrderStatus",
    "PaymentMethod",
    "PaymentStatus",
    "StockItem",
    "StockRelease",
]
