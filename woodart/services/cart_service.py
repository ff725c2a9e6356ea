"""Shopping cart service."""

import logging
from datetime import datetime, timezone
from typing import Any

from postgrest.exceptions import APIError as PostgrestAPIError
from supabase import Client

from woodart.api.middleware.error_handler import ConflictError, NotFoundError, ValidationError
from woodart.core.supabase import UNIQUE_VIOLATION, get_supabase_client
from woodart.models.design import CartItem

logger = logging.getLogger(__name__)


class CartService:
    """Service for cart operations, keyed by (user_email, design_id)."""

    def __init__(self, supabase_client: Client | None = None):
        """Initialize cart service.

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

    def _get_design(self, design_id: str) -> dict[str, Any]:
        response = (
            self.supabase.table("designs")
            .select("*")
            .eq("id", design_id)
            .maybe_single()
            .execute()
        )
        design = response.data if response else None
        if not design:
            raise NotFoundError(f"Design {design_id} not found")
        return design

    async def get_cart(self, user_email: str) -> list[CartItem]:
        """Return the cart with prices and availability refreshed from the designs.

        Lines whose design no longer exists are removed.
        """
        response = (
            self.supabase.table("cart_items")
            .select("*")
            .eq("user_email", user_email)
            .order("added_at")
            .execute()
        )
        items = response.data or []
        if not items:
            return []

        designs_response = (
            self.supabase.table("designs")
            .select("*")
            .in_("id", [item["design_id"] for item in items])
            .execute()
        )
        designs = {str(d["id"]): d for d in designs_response.data or []}

        cart = []
        for item in items:
            design = designs.get(str(item["design_id"]))
            if design is None:
                logger.info("Dropping cart line for vanished design %s (%s)", item["design_id"], user_email)
                self.supabase.table("cart_items").delete().eq("id", item["id"]).execute()
                continue
            if design["price"] != item["price"]:
                self.supabase.table("cart_items").update({"price": design["price"]}).eq("id", item["id"]).execute()
                item["price"] = design["price"]
            item["available_quantity"] = design["quantity"]
            cart.append(item)
        return cart

    async def add_item(self, user_email: str, design_id: str) -> list[CartItem]:
        """Add one unit of a design to the cart.

        Raises:
            NotFoundError: If the design does not exist.
            ValidationError: If the design is out of stock.
            ConflictError: If the design is already in the cart.
        """
        design = self._get_design(design_id)
        if design["quantity"] < 1:
            raise ValidationError(f"{design['item_name']} is out of stock")

        row = {
            "user_email": user_email,
            "design_id": design_id,
            "item_name": design["item_name"],
            "price": design["price"],
            "quantity": 1,
            "designer_name": design.get("designer_name") or "Unknown Designer",
            "material": design.get("material"),
            "board_size": design.get("board_size"),
            "board_color": design.get("board_color"),
            "board_thickness": design.get("board_thickness"),
            "image_url": design.get("image_url"),
            "added_at": datetime.now(timezone.utc).isoformat(),
        }
        try:
            self.supabase.table("cart_items").insert(row).execute()
        except PostgrestAPIError as e:
            if e.code == UNIQUE_VIOLATION:
                raise ConflictError(f"{design['item_name']} is already in the cart") from e
            raise

        logger.info("Added design %s to cart of %s", design_id, user_email)
        return await self.get_cart(user_email)

    async def update_item(self, user_email: str, design_id: str, quantity: int) -> list[CartItem]:
        """Set the quantity of a cart line.

        Raises:
            ValidationError: If the quantity is below 1 or above what is available.
            NotFoundError: If the design is not in the cart.
        """
        if quantity < 1:
            raise ValidationError("Quantity must be at least 1")
        design = self._get_design(design_id)
        if quantity > design["quantity"]:
            raise ValidationError(f"Only {design['quantity']} of {design['item_name']} available")

        response = (
            self.supabase.table("cart_items")
            .update({"quantity": quantity})
            .eq("user_email", user_email)
            .eq("design_id", design_id)
            .execute()
        )
        if not response.data:
            raise NotFoundError(f"Design {design_id} is not in the cart")
        return await self.get_cart(user_email)

    async def remove_item(self, user_email: str, design_id: str) -> list[CartItem]:
        """Remove a design from the cart."""
        response = (
            self.supabase.table("cart_items")
            .delete()
            .eq("user_email", user_email)
            .eq("design_id", design_id)
            .execute()
        )
        if not response.data:
            raise NotFoundError(f"Design {design_id} is not in the cart")
        return await self.get_cart(user_email)

    async def clear_cart(self, user_email: str) -> None:
        """Empty the cart."""
        self.supabase.table("cart_items").delete().eq("user_email", user_email).execute()
        logger.info("Cleared cart of %s", user_email)
