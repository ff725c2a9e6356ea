"""Designer payment ledger: commission split, release and income reports."""

import logging
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from supabase import Client

from woodart.api.middleware.error_handler import ConflictError, NotFoundError, ValidationError
from woodart.core.config import Settings, get_settings
from woodart.core.supabase import get_supabase_client
from woodart.models.designer_payment import DesignerPayment
from woodart.models.order import OrderStatus, PaymentMethod, PaymentStatus
from woodart.services.email_service import EmailService, get_email_service
from woodart.services.lifecycle import ensure_cash_settled

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def to_money(value: Any) -> Decimal:
    """Round a number to cents."""
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def split_commission(item_price: float, rate: float) -> tuple[float, float]:
    """Split an item price into (commission, designer_amount).

    The commission is rounded to cents and the designer receives the
    remainder, so the two parts always add back up to the item price.
    """
    price = to_money(item_price)
    commission = to_money(price * Decimal(str(rate)))
    return float(commission), float(price - commission)


def income_recognised(order: dict[str, Any]) -> bool:
    """Whether an order's money has actually reached the company.

    Bank transfers count once verified; cash on delivery counts once the
    delivery partner has collected the cash.
    """
    if order.get("status") == OrderStatus.CANCELLED.value:
        return False
    if order.get("payment_status") != PaymentStatus.PAID.value:
        return False
    if order.get("payment_method") == PaymentMethod.CASH_ON_DELIVERY.value:
        return bool(order.get("cash_collected"))
    return True


class LedgerService:
    """Service for designer payment ledger operations."""

    def __init__(
        self,
        supabase_client: Client | None = None,
        email_service: EmailService | None = None,
        settings: Settings | None = None,
    ):
        """Initialize ledger service.

        Args:
            supabase_client: Optional Supabase client for testing.
            email_service: Optional email service for testing.
            settings: Optional settings for testing.
        """
        self._supabase_client = supabase_client
        self._email_service = email_service
        self.settings = settings or get_settings()

    @property
    def supabase(self) -> Client:
        """Get Supabase client."""
        if self._supabase_client is None:
            self._supabase_client = get_supabase_client()
        return self._supabase_client

    @property
    def email_service(self) -> EmailService:
        """Get email service."""
        if self._email_service is None:
            self._email_service = get_email_service()
        return self._email_service

    def build_entries(self, order: dict[str, Any]) -> list[dict[str, Any]]:
        """Compute one unreleased ledger row per order line."""
        rate = self.settings.commission_rate
        entries = []
        for item in order.get("items") or []:
            commission, designer_amount = split_commission(item["subtotal"], rate)
            entries.append({
                "order_id": order["order_id"],
                "order_item_id": item["item_id"],
                "design_id": item["design_id"],
                "designer_id": item.get("designer_id"),
                "designer_name": item.get("designer_name") or "Unknown Designer",
                "designer_email": item.get("designer_email"),
                "customer_name": order.get("customer_name"),
                "customer_email": order["customer_email"],
                "item_name": item["item_name"],
                "quantity": item["quantity"],
                "item_price": float(to_money(item["subtotal"])),
                "commission_rate": rate,
                "commission": commission,
                "designer_amount": designer_amount,
                "released": False,
            })
        return entries

    async def record_ledger_entries(self, order: dict[str, Any]) -> int:
        """Write ledger rows for a paid order.

        Safe to call more than once: rows that already exist for an
        (order_id, order_item_id) pair are left alone.

        Args:
            order: Orders table row whose payment is ``paid``.

        Returns:
            int: Number of rows newly written.

        Raises:
            ConflictError: If the order has not been paid.
        """
        if order.get("payment_status") != PaymentStatus.PAID.value:
            raise ConflictError(f"Order {order['order_id']} is not paid; no ledger entries recorded")

        entries = self.build_entries(order)
        if not entries:
            return 0

        response = (
            self.supabase.table("designer_payments")
            .upsert(entries, on_conflict="order_id,order_item_id", ignore_duplicates=True)
            .execute()
        )
        created = len(response.data or [])
        if created < len(entries):
            logger.info(
                "Ledger for order %s already had %d of %d entries",
                order["order_id"],
                len(entries) - created,
                len(entries),
            )
        else:
            logger.info("Recorded %d ledger entries for order %s", created, order["order_id"])
        return created

    def _resolve_item(self, order: dict[str, Any], design_id: str | None, order_item_id: str | None) -> dict[str, Any]:
        items = order.get("items") or []
        if order_item_id:
            for item in items:
                if item["item_id"] == order_item_id:
                    if design_id and item["design_id"] != design_id:
                        raise ValidationError(
                            f"Order item {order_item_id} does not belong to design {design_id}"
                        )
                    return item
            raise NotFoundError(f"Order item {order_item_id} not found in order {order['order_id']}")

        if not design_id:
            raise ValidationError("designId or orderItemId is required")
        matches = [item for item in items if item["design_id"] == design_id]
        if not matches:
            raise NotFoundError(f"Design {design_id} is not part of order {order['order_id']}")
        if len(matches) > 1:
            raise ValidationError(
                f"Design {design_id} appears on {len(matches)} lines of order {order['order_id']}; "
                "specify orderItemId"
            )
        return matches[0]

    async def release_designer_payment(
        self,
        order_id: str,
        design_id: str | None = None,
        order_item_id: str | None = None,
        released_by: str | None = None,
    ) -> DesignerPayment:
        """Mark one ledger entry as paid out to the designer.

        Not idempotent: a second release of the same entry is rejected so an
        operator notices the duplicate attempt.

        Args:
            order_id: Human-readable order id.
            design_id: Design of the line, used when ``order_item_id`` is absent.
            order_item_id: Exact order line to release.
            released_by: Actor recorded on the entry.

        Returns:
            dict: The released ledger row.

        Raises:
            NotFoundError: If the order, line or ledger entry does not exist.
            ValidationError: If the line cannot be identified unambiguously.
            ConflictError: If the order is not delivered or the entry was already released.
        """
        response = (
            self.supabase.table("orders")
            .select("*")
            .eq("order_id", order_id)
            .maybe_single()
            .execute()
        )
        order = response.data if response else None
        if not order:
            raise NotFoundError(f"Order {order_id} not found")

        item = self._resolve_item(order, design_id, order_item_id)

        if order.get("status") != OrderStatus.DELIVERED.value:
            raise ConflictError(
                f"Order {order_id} must be delivered before designer payment is released (status: {order.get('status')})"
            )
        ensure_cash_settled(order)

        # Fills in rows whose write failed when the order was paid
        await self.record_ledger_entries(order)

        now = datetime.now(timezone.utc).isoformat()
        updated = (
            self.supabase.table("designer_payments")
            .update({"released": True, "released_at": now, "released_by": released_by or "financial@system"})
            .eq("order_id", order_id)
            .eq("order_item_id", item["item_id"])
            .eq("released", False)
            .execute()
        )

        if not updated.data:
            existing = (
                self.supabase.table("designer_payments")
                .select("*")
                .eq("order_id", order_id)
                .eq("order_item_id", item["item_id"])
                .maybe_single()
                .execute()
            )
            entry = existing.data if existing else None
            if not entry:
                raise NotFoundError(f"No ledger entry for item {item['item_id']} of order {order_id}")
            logger.warning(
                "Repeated release attempt for order %s item %s (released at %s)",
                order_id,
                item["item_id"],
                entry.get("released_at"),
            )
            raise ConflictError(
                f"Payment for {entry['item_name']} on order {order_id} was already released",
                details=[{
                    "loc": ["designer_payment", str(entry["id"])],
                    "msg": f"released_at={entry.get('released_at')}",
                    "type": "already_released",
                }],
            )

        entry = updated.data[0]
        logger.info(
            "Released %.2f to %s for order %s item %s",
            entry["designer_amount"],
            entry.get("designer_email"),
            order_id,
            item["item_id"],
        )

        await self.email_service.send_designer_payment_released_email(
            to_email=entry.get("designer_email"),
            designer_name=entry["designer_name"],
            order_id=order_id,
            item_name=entry["item_name"],
            designer_amount=entry["designer_amount"],
        )
        return entry

    async def marketplace_income(self) -> dict[str, Any]:
        """Ledger rows and totals for marketplace orders whose income is recognised.

        The delivery fee is counted once per order, not once per line.
        """
        orders_response = (
            self.supabase.table("orders")
            .select("*")
            .neq("status", OrderStatus.CANCELLED.value)
            .eq("payment_status", PaymentStatus.PAID.value)
            .order("created_at", desc=True)
            .execute()
        )
        orders = [order for order in orders_response.data or [] if income_recognised(order)]
        if not orders:
            return {"rows": [], "totals": {key: 0.0 for key in _empty_marketplace_totals()}}

        ledger_response = (
            self.supabase.table("designer_payments")
            .select("*")
            .in_("order_id", [order["order_id"] for order in orders])
            .execute()
        )
        ledger = {(e["order_id"], e["order_item_id"]): e for e in ledger_response.data or []}

        rows = []
        totals = _empty_marketplace_totals()
        delivery_total = Decimal("0")
        for order in orders:
            delivery_fee = to_money(order.get("delivery_fee") or 0)
            delivery_total += delivery_fee
            for item in order.get("items") or []:
                entry = ledger.get((order["order_id"], item["item_id"]))
                if entry is None:
                    commission, designer_amount = split_commission(item["subtotal"], self.settings.commission_rate)
                else:
                    commission, designer_amount = entry["commission"], entry["designer_amount"]
                released = bool(entry and entry.get("released"))
                rows.append({
                    "order_id": order["order_id"],
                    "order_item_id": item["item_id"],
                    "design_id": item["design_id"],
                    "item_name": item["item_name"],
                    "quantity": item["quantity"],
                    "customer_name": order.get("customer_name"),
                    "customer_email": order["customer_email"],
                    "designer_name": item.get("designer_name"),
                    "designer_email": item.get("designer_email"),
                    "payment_method": order["payment_method"],
                    "order_status": order["status"],
                    "item_price": item["subtotal"],
                    "delivery_fee": float(delivery_fee),
                    "commission": commission,
                    "designer_amount": designer_amount,
                    "released": released,
                    "released_at": entry.get("released_at") if entry else None,
                    "payment_record_id": entry.get("id") if entry else None,
                })
                totals["item_price"] += to_money(item["subtotal"])
                totals["commission"] += to_money(commission)
                totals["designer_payment"] += to_money(designer_amount)
                if released:
                    totals["released"] += to_money(designer_amount)
                else:
                    totals["unreleased"] += to_money(designer_amount)

        totals["delivery"] = delivery_total
        totals["total_price"] = totals["item_price"] + delivery_total
        return {"rows": rows, "totals": {key: float(value) for key, value in totals.items()}}

    async def customize_order_income(self) -> dict[str, Any]:
        """Income rows for custom orders that have been paid.

        The item price is the order total less its delivery fee.
        """
        response = (
            self.supabase.table("custom_orders")
            .select("*")
            .neq("status", OrderStatus.CANCELLED.value)
            .order("updated_at", desc=True)
            .execute()
        )

        rows = []
        totals = {"total_amount": Decimal("0"), "delivery": Decimal("0"), "item_price": Decimal("0")}
        for order in response.data or []:
            if not income_recognised(order):
                continue
            total_price = to_money(order.get("final_price") or order.get("estimated_price") or 0)
            delivery_fee = to_money(order.get("delivery_fee") or 0)
            item_price = max(Decimal("0"), total_price - delivery_fee)

            totals["total_amount"] += total_price
            totals["delivery"] += delivery_fee
            totals["item_price"] += item_price
            rows.append({
                "order_id": order["order_id"],
                "customer_name": order.get("customer_name"),
                "customer_email": order["customer_email"],
                "staff_designer_id": order.get("staff_designer_id"),
                "payment_method": order["payment_method"],
                "total_price": float(total_price),
                "delivery_fee": float(delivery_fee),
                "item_price": float(item_price),
                "status": order["status"],
                "paid_at": order.get("updated_at"),
            })

        return {
            "rows": rows,
            "totals": {key: float(value) for key, value in totals.items()},
            "count": len(rows),
        }

    async def designer_payment_history(self, designer_email: str) -> list[DesignerPayment]:
        """Released ledger entries for a designer, newest first."""
        response = (
            self.supabase.table("designer_payments")
            .select("*")
            .eq("designer_email", designer_email)
            .eq("released", True)
            .order("released_at", desc=True)
            .execute()
        )
        return response.data or []


def _empty_marketplace_totals() -> dict[str, Any]:
    return {
        "total_price": Decimal("0"),
        "delivery": Decimal("0"),
        "item_price": Decimal("0"),
        "commission": Decimal("0"),
        "designer_payment": Decimal("0"),
        "released": Decimal("0"),
        "unreleased": Decimal("0"),
    }
