"""Delivery dashboard figures across marketplace and custom orders."""

import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any

from supabase import Client

from woodart.core.supabase import get_supabase_client
from woodart.models.order import DeliveryStatus, OrderStatus
from woodart.services.ledger_service import income_recognised, to_money

logger = logging.getLogger(__name__)

# Both order kinds share the delivery sub-state
DELIVERY_TABLES = ("orders", "custom_orders")

ON_THE_ROAD = frozenset({DeliveryStatus.PICKED_UP.value, DeliveryStatus.IN_TRANSIT.value})


def delivered_on(order: dict[str, Any]) -> date | None:
    """UTC date an order was delivered, falling back to its last update."""
    stamp = order.get("delivered_at") or order.get("updated_at")
    if not stamp:
        return None
    if isinstance(stamp, str):
        stamp = datetime.fromisoformat(stamp)
    if stamp.tzinfo is None:
        stamp = stamp.replace(tzinfo=timezone.utc)
    return stamp.astimezone(timezone.utc).date()


class DeliveryService:
    """Read-only counters for the delivery team's overview page."""

    def __init__(self, supabase_client: Client | None = None):
        """Initialize delivery service.

        Args:
            supabase_client: Optional Supabase client for testing.
        """
        self._supabase_client = supabase_client

    @property
    def supabase(self) -> Client:
        """Get Supabase client."""
        if self._supabase_client is None:
            self._supabase_client = get_supabase_client()
        return self._supabase_client

    async def overview(self, today: date | None = None) -> dict[str, Any]:
        """Counts of orders waiting, on the road and delivered today, plus revenue.

        Revenue is the delivery fee of every order delivered this calendar
        month whose income is recognised.

        Args:
            today: Reference date, defaults to the current UTC date.

        Returns:
            dict: ``ready_to_deliver``, ``on_delivery``, ``delivered_today``
            and ``month_delivery_revenue``.
        """
        today = today or datetime.now(timezone.utc).date()
        ready = on_delivery = delivered_today = 0
        revenue = Decimal("0")

        for table in DELIVERY_TABLES:
            response = (
                self.supabase.table(table)
                .select("*")
                .neq("status", OrderStatus.CANCELLED.value)
                .neq("delivery_status", DeliveryStatus.NOT_ASSIGNED.value)
                .execute()
            )
            for order in response.data or []:
                delivery = order.get("delivery_status")
                if delivery == DeliveryStatus.ASSIGNED.value:
                    ready += 1
                elif delivery in ON_THE_ROAD:
                    on_delivery += 1
                elif delivery == DeliveryStatus.DELIVERED.value:
                    day = delivered_on(order)
                    if day == today:
                        delivered_today += 1
                    if day and (day.year, day.month) == (today.year, today.month) and income_recognised(order):
                        revenue += to_money(order.get("delivery_fee") or 0)

        logger.debug(
            "Delivery overview: %d ready, %d on delivery, %d delivered today",
            ready,
            on_delivery,
            delivered_today,
        )
        return {
            "ready_to_deliver": ready,
            "on_delivery": on_delivery,
            "delivered_today": delivered_today,
            "month_delivery_revenue": float(revenue),
        }
