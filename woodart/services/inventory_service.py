"""Raw-material (board) stock service for the inventory team."""

import logging
from datetime import datetime, timezone
from typing import Any

from supabase import Client

from woodart.api.middleware.error_handler import ConflictError, NotFoundError, ValidationError
from woodart.core.config import Settings, get_settings
from woodart.core.supabase import get_supabase_client
from woodart.models.stock import StockItem, StockRelease
from woodart.services.stock_service import StockContentionError, compare_and_set

logger = logging.getLogger(__name__)

COMBINATION_FIELDS = ("material", "board_size", "thickness", "color")

# Most recent releases returned by the history listing
RELEASE_HISTORY_LIMIT = 100


def is_low_stock(item: dict[str, Any]) -> bool:
    """Stock at or below its reorder level."""
    return item["available_quantity"] <= item["reorder_level"]


class InventoryService:
    """Service for raw-material stock items and releases to staff designers."""

    def __init__(self, supabase_client: Client | None = None, settings: Settings | None = None):
        """Initialize inventory service.

        Args:
            supabase_client: Optional Supabase client for testing.
            settings: Optional settings for testing.
        """
        self._supabase_client = supabase_client
        self.settings = settings or get_settings()

    @property
    def supabase(self) -> Client:
        """Get Supabase client."""
        if self._supabase_client is None:
            self._supabase_client = get_supabase_client()
        return self._supabase_client

    async def list_stock(self, filters: dict[str, str | None], low_stock: bool = False) -> list[StockItem]:
        """Stock items matching the given combination filters."""
        query = self.supabase.table("stock_items").select("*")
        for field in COMBINATION_FIELDS:
            if filters.get(field):
                query = query.eq(field, filters[field])
        for field in COMBINATION_FIELDS:
            query = query.order(field)
        items = query.execute().data or []
        if low_stock:
            items = [item for item in items if is_low_stock(item)]
        return items

    async def get_summary(self) -> dict[str, int]:
        """Counts for the inventory dashboard."""
        items = self.supabase.table("stock_items").select("*").execute().data or []
        return {
            "total_combinations": len(items),
            "low_stock_items": sum(1 for item in items if is_low_stock(item)),
            "out_of_stock_items": sum(1 for item in items if item["available_quantity"] == 0),
            "total_quantity": sum(item["available_quantity"] for item in items),
        }

    async def low_stock_count(self) -> int:
        """Number of items at or below their reorder level."""
        items = (
            self.supabase.table("stock_items")
            .select("available_quantity,reorder_level")
            .execute()
            .data
            or []
        )
        return sum(1 for item in items if is_low_stock(item))

    async def get_combination(self, material: str, board_size: str, thickness: str, color: str) -> StockItem:
        """Look up one stock item by its composite key.

        Raises:
            ValidationError: If any part of the key is missing.
            NotFoundError: If no such combination is stocked.
        """
        key = {"material": material, "board_size": board_size, "thickness": thickness, "color": color}
        missing = [field for field, value in key.items() if not value]
        if missing:
            raise ValidationError(f"All parameters required: {', '.join(missing)}")

        query = self.supabase.table("stock_items").select("*")
        for field, value in key.items():
            query = query.eq(field, value)
        response = query.maybe_single().execute()
        item = response.data if response else None
        if not item:
            raise NotFoundError("Stock combination not found")
        return item

    async def release_to_designer(
        self,
        designer_name: str,
        designer_email: str,
        material: str,
        board_size: str,
        thickness: str,
        color: str,
        quantity: int,
        notes: str | None = None,
    ) -> dict[str, Any]:
        """Hand raw material to a staff designer.

        Stock may not drop below the configured floor.

        Returns:
            dict: ``release`` (the stock_releases row) and ``stock`` (updated item).

        Raises:
            ValidationError: If fields are missing, the quantity is not positive,
                or the release would take stock below the floor.
            NotFoundError: If the combination is not stocked.
        """
        if not designer_name or not designer_email:
            raise ValidationError("designerName and designerEmail are required")
        if quantity < 1:
            raise ValidationError("quantity must be at least 1")

        item = await self.get_combination(material, board_size, thickness, color)
        updated = await self._decrement(item["id"], quantity)

        release = {
            "designer_name": designer_name,
            "designer_email": designer_email,
            "material": material,
            "board_size": board_size,
            "thickness": thickness,
            "color": color,
            "quantity": quantity,
            "notes": notes,
            "release_date": datetime.now(timezone.utc).isoformat(),
        }
        response = self.supabase.table("stock_releases").insert(release).execute()
        logger.info(
            "Released %d of %s/%s/%s/%s to %s (%d left)",
            quantity,
            material,
            board_size,
            thickness,
            color,
            designer_email,
            updated["available_quantity"],
        )
        return {"release": response.data[0], "stock": updated}

    async def _decrement(self, item_id: str, quantity: int) -> StockItem:
        try:
            return await compare_and_set(
                lambda: self._take(item_id, quantity),
                self.settings.stock_reservation_max_attempts,
            )
        except StockContentionError:
            raise ConflictError("Stock is changing quickly, please try again") from None

    def _take(self, item_id: str, quantity: int) -> StockItem:
        floor = self.settings.stock_release_floor
        current = (
            self.supabase.table("stock_items")
            .select("*")
            .eq("id", item_id)
            .maybe_single()
            .execute()
        )
        item = current.data if current else None
        if not item:
            raise NotFoundError("Stock item not found")

        available = item["available_quantity"]
        if available < quantity:
            raise ValidationError(f"Insufficient stock. Available: {available}, Requested: {quantity}")
        remaining = available - quantity
        if remaining < floor:
            raise ValidationError(
                f"Stock cannot go below {floor} units. Current: {available}, "
                f"Requested: {quantity}, Would result in: {remaining}"
            )

        response = (
            self.supabase.table("stock_items")
            .update({
                "available_quantity": remaining,
                "updated_at": datetime.now(timezone.utc).isoformat(),
            })
            .eq("id", item_id)
            .eq("available_quantity", available)
            .execute()
        )
        if not response.data:
            raise StockContentionError(item_id)
        return response.data[0]

    async def update_stock_item(
        self,
        item_id: str,
        available_quantity: int | None = None,
        reorder_level: int | None = None,
        restock: int | None = None,
    ) -> StockItem:
        """Set the quantity or reorder level of a stock item, or add a delivery.

        Raises:
            ValidationError: If nothing to change, or a value is out of range.
            NotFoundError: If the item does not exist.
        """
        if available_quantity is None and reorder_level is None and restock is None:
            raise ValidationError("availableQuantity, reorderLevel or restock is required")
        if available_quantity is not None and available_quantity < self.settings.stock_release_floor:
            raise ValidationError(
                f"Available quantity cannot be less than {self.settings.stock_release_floor}"
            )
        if reorder_level is not None and reorder_level < 0:
            raise ValidationError("reorderLevel cannot be negative")
        if restock is not None and restock < 1:
            raise ValidationError("restock must be at least 1")

        response = self.supabase.table("stock_items").select("*").eq("id", item_id).maybe_single().execute()
        item = response.data if response else None
        if not item:
            raise NotFoundError("Stock item not found")

        changes: dict[str, Any] = {"updated_at": datetime.now(timezone.utc).isoformat()}
        if available_quantity is not None:
            changes["available_quantity"] = available_quantity
        elif restock is not None:
            changes["available_quantity"] = item["available_quantity"] + restock
        if reorder_level is not None:
            changes["reorder_level"] = reorder_level

        query = self.supabase.table("stock_items").update(changes).eq("id", item_id)
        if restock is not None and available_quantity is None:
            query = query.eq("available_quantity", item["available_quantity"])
        updated = query.execute()
        if not updated.data:
            raise ConflictError("Stock item changed while restocking, please try again")

        logger.info("Stock item %s updated: %s", item_id, ", ".join(sorted(changes)))
        return updated.data[0]

    async def list_releases(
        self,
        designer_email: str | None = None,
        material: str | None = None,
    ) -> list[StockRelease]:
        """Recent releases to staff designers, newest first."""
        query = self.supabase.table("stock_releases").select("*")
        if designer_email:
            query = query.eq("designer_email", designer_email)
        if material:
            query = query.eq("material", material)
        response = query.order("release_date", desc=True).limit(RELEASE_HISTORY_LIMIT).execute()
        return response.data or []
