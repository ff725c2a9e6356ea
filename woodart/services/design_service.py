"""Marketplace design listing service."""

import logging
import secrets
import string
import time
from datetime import datetime, timezone
from typing import Any

from postgrest.exceptions import APIError as PostgrestAPIError
from supabase import Client

from woodart.api.middleware.error_handler import AuthorizationError, NotFoundError, ValidationError
from woodart.core.supabase import UNIQUE_VIOLATION, get_supabase_client
from woodart.models.design import Design
from woodart.services.stock_service import StockReservationService
from woodart.services.storage_service import IMAGE_MIME_TYPES, StorageService

logger = logging.getLogger(__name__)

ITEM_CODE_ATTEMPTS = 5

# Listing columns a designer may edit
EDITABLE_FIELDS = (
    "item_name",
    "description",
    "price",
    "quantity",
    "material",
    "board_size",
    "board_color",
    "board_thickness",
)


def generate_item_code() -> str:
    """Catalogue code shown to customers, e.g. ``ITM-4821-Q7ZK2M``."""
    stamp = str(int(time.time() * 1000))[-4:]
    suffix = "".join(secrets.choice(string.ascii_uppercase + string.digits) for _ in range(6))
    return f"ITM-{stamp}-{suffix}"


def _validate_listing(data: dict[str, Any]) -> None:
    if "price" in data and (data["price"] is None or data["price"] < 0):
        raise ValidationError("price must be zero or more")
    if "quantity" in data and (data["quantity"] is None or data["quantity"] < 0):
        raise ValidationError("quantity must be zero or more")
    if "item_name" in data and not data["item_name"]:
        raise ValidationError("itemName is required")


class DesignService:
    """Service for design listings.

    Every change to a listing is pushed to live subscribers as a
    ``designUpdated`` event.
    """

    def __init__(
        self,
        supabase_client: Client | None = None,
        stock_service: StockReservationService | None = None,
        storage_service: StorageService | None = None,
    ):
        """Initialize design service.

        Args:
            supabase_client: Optional Supabase client for testing.
            stock_service: Optional stock service (event publishing) for testing.
            storage_service: Optional storage service for testing.
        """
        self._supabase_client = supabase_client
        self.stock_service = stock_service or StockReservationService(supabase_client)
        self.storage_service = storage_service or StorageService(supabase_client)

    @property
    def supabase(self) -> Client:
        """Get Supabase client."""
        if self._supabase_client is None:
            self._supabase_client = get_supabase_client()
        return self._supabase_client

    async def list_designs(self, designer_email: str | None = None) -> list[Design]:
        """All listings, newest first, optionally for one designer."""
        query = self.supabase.table("designs").select("*")
        if designer_email:
            query = query.eq("designer_email", designer_email)
        response = query.order("created_at", desc=True).execute()
        return response.data or []

    async def get_design(self, design_id: str) -> Design:
        """Fetch one listing.

        Raises:
            NotFoundError: If the design does not exist.
        """
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

    async def create_design(
        self,
        data: dict[str, Any],
        image: tuple[bytes, str, str | None],
    ) -> Design:
        """Create a listing with its product image.

        Args:
            data: Designer identity and listing fields.
            image: (content, file name, MIME type) of the product photo.

        Returns:
            dict: The created designs row.
        """
        if not data.get("designer_email"):
            raise ValidationError("email is required")
        listing = {field: data.get(field) for field in EDITABLE_FIELDS}
        _validate_listing(listing)

        image_url = await self.storage_service.upload("designs", *image, IMAGE_MIME_TYPES)
        row = {
            **listing,
            "designer_id": data.get("designer_id"),
            "designer_name": data.get("designer_name") or data["designer_email"],
            "designer_email": data["designer_email"],
            "image_url": image_url,
        }

        for attempt in range(1, ITEM_CODE_ATTEMPTS + 1):
            row["item_code"] = generate_item_code()
            try:
                response = self.supabase.table("designs").insert(row).execute()
                break
            except PostgrestAPIError as e:
                if e.code == UNIQUE_VIOLATION and attempt < ITEM_CODE_ATTEMPTS:
                    continue
                raise

        if not response.data:
            raise Exception("Failed to create design")
        design = response.data[0]
        logger.info("Design %s (%s) listed by %s", design["id"], design["item_code"], design["designer_email"])
        self.stock_service.publish_design(design)
        return design

    async def update_design(
        self,
        design_id: str,
        designer_email: str,
        changes: dict[str, Any],
        image: tuple[bytes, str, str | None] | None = None,
    ) -> Design:
        """Edit a listing owned by ``designer_email``.

        Raises:
            NotFoundError: If the design does not exist.
            AuthorizationError: If the designer does not own the listing.
            ValidationError: If a field value is invalid.
        """
        design = await self.get_design(design_id)
        if design.get("designer_email") != designer_email:
            raise AuthorizationError("Not authorized to edit this design")

        update = {field: changes[field] for field in EDITABLE_FIELDS if changes.get(field) is not None}
        _validate_listing(update)
        if image is not None:
            update["image_url"] = await self.storage_service.upload("designs", *image, IMAGE_MIME_TYPES)
        if not update:
            return design

        update["updated_at"] = datetime.now(timezone.utc).isoformat()
        response = self.supabase.table("designs").update(update).eq("id", design_id).execute()
        if not response.data:
            raise NotFoundError(f"Design {design_id} not found")

        updated = response.data[0]
        logger.info("Design %s updated by %s: %s", design_id, designer_email, ", ".join(sorted(update)))
        self.stock_service.publish_design(updated)
        return updated

    async def delete_design(self, design_id: str, designer_email: str) -> Design:
        """Remove a listing owned by ``designer_email``.

        Placed orders keep their own item snapshots, and carts drop the
        line the next time they are read. Live clients see the listing
        as sold out.

        Raises:
            NotFoundError: If the design does not exist.
            AuthorizationError: If the designer does not own the listing.
        """
        design = await self.get_design(design_id)
        if design.get("designer_email") != designer_email:
            raise AuthorizationError("Not authorized to delete this design")

        response = self.supabase.table("designs").delete().eq("id", design_id).execute()
        if not response.data:
            raise NotFoundError(f"Design {design_id} not found")

        logger.info("Design %s (%s) deleted by %s", design_id, design.get("item_code"), designer_email)
        self.stock_service.publish_design({**design, "quantity": 0})
        return design
