"""Design stock reservation with compare-and-set updates."""

import logging
from collections.abc import Callable
from dataclasses import asdict, dataclass
from typing import Any, TypeVar

from supabase import Client
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_random

from woodart.api.middleware.error_handler import (
    ConflictError,
    InsufficientStockError,
    NotFoundError,
    ValidationError,
)
from woodart.core.config import Settings, get_settings
from woodart.core.events import EventBroadcaster, get_event_broadcaster
from woodart.core.supabase import get_supabase_client
from woodart.schemas.events import DESIGN_UPDATED, DesignUpdatedEvent

logger = logging.getLogger(__name__)

# Upper bound of the random pause between compare-and-set attempts
MAX_JITTER_SECONDS = 0.05

T = TypeVar("T")


class StockContentionError(Exception):
    """Another writer changed the quantity between our read and our update."""


async def compare_and_set(operation: Callable[[], T], max_attempts: int) -> T:
    """Run a read-then-conditional-update until it stops losing to other writers.

    ``operation`` raises StockContentionError when its conditional update
    matched nothing; any other exception ends the loop immediately.

    Args:
        operation: Callable performing one read and one conditional update.
        max_attempts: Attempts before giving up.

    Returns:
        Whatever ``operation`` returned on its winning attempt.

    Raises:
        StockContentionError: If every attempt lost.
    """
    async for attempt in AsyncRetrying(
        retry=retry_if_exception_type(StockContentionError),
        stop=stop_after_attempt(max_attempts),
        wait=wait_random(0, MAX_JITTER_SECONDS),
        reraise=True,
    ):
        with attempt:
            result = operation()
    return result


@dataclass
class ReservationLine:
    """Units taken from one design for one order."""

    design_id: str
    quantity: int
    item_name: str

    def to_row(self) -> dict[str, Any]:
        """Shape stored on an order for units still to be returned."""
        return asdict(self)


def aggregate_lines(items: list[dict[str, Any]]) -> dict[str, int]:
    """Sum requested quantities per design, keeping first-seen order.

    Raises:
        ValidationError: If an item has no design id or a non-positive quantity.
    """
    totals: dict[str, int] = {}
    for item in items:
        design_id = item.get("design_id")
        quantity = item.get("quantity")
        if not design_id:
            raise ValidationError("Every item needs a designId")
        if not isinstance(quantity, int) or quantity < 1:
            raise ValidationError(f"Quantity for design {design_id} must be a positive integer")
        totals[str(design_id)] = totals.get(str(design_id), 0) + quantity
    return totals


class StockReservationService:
    """Takes and returns design units for orders.

    A reservation is all-or-nothing: if any line cannot be satisfied the
    lines already decremented in the same call are put back before the
    error is raised. Each decrement is a conditional update on the
    quantity that was read, so two buyers racing for the last unit cannot
    both win.
    """

    def __init__(
        self,
        supabase_client: Client | None = None,
        broadcaster: EventBroadcaster | None = None,
        settings: Settings | None = None,
    ):
        """Initialize stock reservation service.

        Args:
            supabase_client: Optional Supabase client for testing.
            broadcaster: Optional event broadcaster for testing.
            settings: Optional settings for testing.
        """
        self._supabase_client = supabase_client
        self._broadcaster = broadcaster
        self.settings = settings or get_settings()

    @property
    def supabase(self) -> Client:
        """Get Supabase client."""
        if self._supabase_client is None:
            self._supabase_client = get_supabase_client()
        return self._supabase_client

    @property
    def broadcaster(self) -> EventBroadcaster:
        """Get event broadcaster."""
        if self._broadcaster is None:
            self._broadcaster = get_event_broadcaster()
        return self._broadcaster

    def get_designs(self, design_ids: list[str]) -> dict[str, dict[str, Any]]:
        """Fetch designs by id, keyed by id."""
        if not design_ids:
            return {}
        response = self.supabase.table("designs").select("*").in_("id", design_ids).execute()
        return {str(row["id"]): row for row in response.data or []}

    def publish_design(self, design: dict[str, Any]) -> None:
        """Push the current state of a design to live subscribers."""
        event = DesignUpdatedEvent.from_design(design)
        self.broadcaster.publish(DESIGN_UPDATED, event.to_payload())

    async def reserve_stock(self, items: list[dict[str, Any]]) -> list[ReservationLine]:
        """Decrement design quantities for every requested line.

        Args:
            items: Dicts with ``design_id`` and ``quantity``.

        Returns:
            list[ReservationLine]: One entry per distinct design.

        Raises:
            ValidationError: If the request is malformed.
            NotFoundError: If a design does not exist.
            InsufficientStockError: If any design lacks the requested units.
        """
        totals = aggregate_lines(items)
        designs = self.get_designs(list(totals))

        missing = [design_id for design_id in totals if design_id not in designs]
        if missing:
            raise NotFoundError(f"Design not found: {', '.join(missing)}")

        # Report every short item up front rather than failing on the first
        shortages = [
            {
                "design_id": design_id,
                "item_name": designs[design_id].get("item_name", design_id),
                "requested": requested,
                "available": designs[design_id]["quantity"],
            }
            for design_id, requested in totals.items()
            if designs[design_id]["quantity"] < requested
        ]
        if shortages:
            raise InsufficientStockError(shortages)

        reserved: list[ReservationLine] = []
        try:
            for design_id, requested in totals.items():
                item_name = designs[design_id].get("item_name", design_id)
                await self._adjust(design_id, -requested, item_name)
                reserved.append(ReservationLine(design_id, requested, item_name))
        except Exception:
            if reserved:
                logger.info("Rolling back %d reserved lines", len(reserved))
                stranded = await self.release_stock(reserved)
                if stranded:
                    logger.error(
                        "Rollback could not return stock: %s",
                        ", ".join(f"{line.design_id} x{line.quantity}" for line in stranded),
                    )
            raise

        logger.info(
            "Reserved stock: %s",
            ", ".join(f"{line.design_id} x{line.quantity}" for line in reserved),
        )
        return reserved

    async def release_stock(self, lines: list[ReservationLine]) -> list[ReservationLine]:
        """Return reserved units to their designs.

        Every line is attempted even when an earlier one fails, so one
        contended or broken design does not strand the others.

        Returns:
            list[ReservationLine]: Lines whose units could not be returned.
        """
        failed = []
        for line in lines:
            try:
                await self._restore(line)
            except Exception as e:
                logger.error("Failed to return %d units of design %s: %s", line.quantity, line.design_id, e)
                failed.append(line)
        return failed

    async def release_order_items(self, items: list[dict[str, Any]]) -> list[ReservationLine]:
        """Return the units held by an order's stored line items.

        Returns:
            list[ReservationLine]: Lines whose units could not be returned.
        """
        names = {str(item["design_id"]): item.get("item_name", item["design_id"]) for item in items}
        lines = [
            ReservationLine(design_id, quantity, names[design_id])
            for design_id, quantity in aggregate_lines(items).items()
        ]
        return await self.release_stock(lines)

    async def _restore(self, line: ReservationLine) -> None:
        # Increments get a longer budget than reservations; giving up strands units
        design = await compare_and_set(
            lambda: self._compare_and_set(line.design_id, line.quantity, line.item_name),
            self.settings.stock_restore_max_attempts,
        )
        self.publish_design(design)

    async def _adjust(self, design_id: str, delta: int, item_name: str) -> dict[str, Any]:
        try:
            design = await compare_and_set(
                lambda: self._compare_and_set(design_id, delta, item_name),
                self.settings.stock_reservation_max_attempts,
            )
        except StockContentionError:
            logger.warning("Gave up updating stock of design %s after repeated contention", design_id)
            raise ConflictError(f"Stock for {item_name} is changing quickly, please try again") from None

        self.publish_design(design)
        return design

    def _compare_and_set(self, design_id: str, delta: int, item_name: str) -> dict[str, Any]:
        response = (
            self.supabase.table("designs")
            .select("*")
            .eq("id", design_id)
            .maybe_single()
            .execute()
        )
        design = response.data if response else None
        if not design:
            raise NotFoundError(f"Design not found: {design_id}")

        current = design["quantity"]
        new_quantity = current + delta
        if new_quantity < 0:
            raise InsufficientStockError(
                [{"design_id": design_id, "item_name": item_name, "requested": -delta, "available": current}]
            )

        updated = (
            self.supabase.table("designs")
            .update({"quantity": new_quantity})
            .eq("id", design_id)
            .eq("quantity", current)
            .execute()
        )
        if not updated.data:
            logger.debug("Quantity of design %s changed under us, retrying", design_id)
            raise StockContentionError(design_id)
        return updated.data[0]
