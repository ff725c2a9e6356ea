"""Marketplace order business logic service."""

import logging
import secrets
import string
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from postgrest.exceptions import APIError as PostgrestAPIError
from supabase import Client

from woodart.api.middleware.error_handler import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from woodart.core.config import Settings, get_settings
from woodart.core.supabase import UNIQUE_VIOLATION, get_supabase_client
from woodart.models.order import (
    DeliverySection,
    DeliveryStatus,
    Order,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
)
from woodart.services.cart_service import CartService
from woodart.services.ledger_service import LedgerService, split_commission, to_money
from woodart.services.lifecycle import (
    ensure_can_collect_cash,
    ensure_can_confirm,
    ensure_can_notify_delivery,
    ensure_delivery_transition,
    ensure_order_transition,
    parse_enum,
)
from woodart.services.stock_service import StockReservationService

logger = logging.getLogger(__name__)

ORDER_ID_ALPHABET = string.ascii_uppercase + string.digits
ORDER_ID_ATTEMPTS = 3


def generate_order_id(now: datetime | None = None) -> str:
    """Human-facing marketplace order id, e.g. ``WAG-20260118-K3X9QZ``."""
    now = now or datetime.now(timezone.utc)
    suffix = "".join(secrets.choice(ORDER_ID_ALPHABET) for _ in range(6))
    return f"WAG-{now:%Y%m%d}-{suffix}"


def parse_payment_method(value: Any) -> PaymentMethod:
    """Parse a payment method, accepting the short legacy spellings."""
    try:
        return PaymentMethod.parse(value)
    except ValueError:
        raise ValidationError(
            f"Invalid paymentMethod '{value}'. Allowed: cash_on_delivery, bank_transfer"
        ) from None


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class OrderService:
    """Service for the marketplace order lifecycle.

    Every transition is validated against the lifecycle tables and then
    written with a conditional update on the state that was read, so two
    staff members acting on the same order cannot both succeed.
    """

    def __init__(
        self,
        supabase_client: Client | None = None,
        stock_service: StockReservationService | None = None,
        ledger_service: LedgerService | None = None,
        cart_service: CartService | None = None,
        settings: Settings | None = None,
    ):
        """Initialize order service.

        Args:
            supabase_client: Optional Supabase client for testing.
            stock_service: Optional stock reservation service for testing.
            ledger_service: Optional ledger service for testing.
            cart_service: Optional cart service for testing.
            settings: Optional settings for testing.
        """
        self._supabase_client = supabase_client
        self.settings = settings or get_settings()
        self.stock_service = stock_service or StockReservationService(supabase_client, settings=self.settings)
        self.ledger_service = ledger_service or LedgerService(supabase_client, settings=self.settings)
        self.cart_service = cart_service or CartService(supabase_client)

    @property
    def supabase(self) -> Client:
        """Get Supabase client."""
        if self._supabase_client is None:
            self._supabase_client = get_supabase_client()
        return self._supabase_client

    async def create_order(
        self,
        customer_email: str,
        items: list[dict[str, Any]],
        payment_method: str,
        customer_name: str | None = None,
        customer_phone: str | None = None,
        customer_address: str | None = None,
        bank_slip_url: str | None = None,
        order_type: str = "cart",
        notes: str | None = None,
    ) -> dict[str, Any]:
        """Create a marketplace order, reserving stock first.

        Cash-on-delivery orders are confirmed and paid at creation and get
        their ledger entries straight away. Bank transfers wait for the
        financial team to approve the bank slip.

        Args:
            customer_email: Buyer's email.
            items: Dicts with ``design_id`` and ``quantity``.
            payment_method: ``cash_on_delivery`` or ``bank_transfer``.
            customer_name: Buyer's name.
            customer_phone: Buyer's phone number.
            customer_address: Delivery address.
            bank_slip_url: Uploaded proof of transfer, if any.
            order_type: ``cart`` clears the buyer's cart after ordering.
            notes: Free-text notes.

        Returns:
            dict: The created orders table row.

        Raises:
            ValidationError: If required fields are missing or invalid.
            NotFoundError: If a design does not exist.
            InsufficientStockError: If any design lacks the requested units.
        """
        if not customer_email:
            raise ValidationError("customerEmail is required")
        if not items:
            raise ValidationError("At least one item is required")
        method = parse_payment_method(payment_method)

        reservation = await self.stock_service.reserve_stock(items)
        designs = self.stock_service.get_designs([line.design_id for line in reservation])

        line_items = []
        for item in items:
            design = designs[str(item["design_id"])]
            unit_price = float(to_money(design["price"]))
            line_items.append({
                "item_id": str(uuid4()),
                "design_id": str(design["id"]),
                "designer_id": design.get("designer_id"),
                "designer_name": design.get("designer_name") or "Unknown Designer",
                "designer_email": design.get("designer_email"),
                "item_name": design["item_name"],
                "quantity": item["quantity"],
                "unit_price": unit_price,
                "subtotal": float(to_money(unit_price * item["quantity"])),
                "material": design.get("material"),
                "board_size": design.get("board_size"),
                "board_color": design.get("board_color"),
                "board_thickness": design.get("board_thickness"),
                "image_url": design.get("image_url"),
            })

        items_total = sum(to_money(line["subtotal"]) for line in line_items)
        delivery_fee = to_money(self.settings.delivery_fee)
        is_cod = method == PaymentMethod.CASH_ON_DELIVERY

        order_data = {
            "customer_name": customer_name,
            "customer_email": customer_email,
            "customer_phone": customer_phone,
            "customer_address": customer_address,
            "items": line_items,
            "designer_emails": sorted({line["designer_email"] for line in line_items if line["designer_email"]}),
            "items_total": float(items_total),
            "delivery_fee": float(delivery_fee),
            "total_amount": float(items_total + delivery_fee),
            "payment_method": method.value,
            "payment_status": (PaymentStatus.PAID if is_cod else PaymentStatus.PENDING).value,
            "status": (OrderStatus.CONFIRMED if is_cod else OrderStatus.PENDING).value,
            "delivery_status": DeliveryStatus.NOT_ASSIGNED.value,
            "cash_collected": False,
            "stock_reserved": True,
            "bank_slip_url": bank_slip_url,
            "notes": notes,
        }

        try:
            order = self._insert_order(order_data)
        except Exception:
            logger.error("Order insert failed for %s, releasing reserved stock", customer_email)
            stranded = await self.stock_service.release_stock(reservation)
            if stranded:
                logger.error(
                    "Could not return stock after failed order insert: %s",
                    ", ".join(f"{line.design_id} x{line.quantity}" for line in stranded),
                )
            raise

        logger.info(
            "Created order %s for %s: %d lines, total %.2f (%s)",
            order["order_id"],
            customer_email,
            len(line_items),
            order["total_amount"],
            method.value,
        )

        # The order and its stock are committed; nothing below may fail the request
        if is_cod:
            await self._record_ledger(order)

        if order_type == "cart":
            try:
                await self.cart_service.clear_cart(customer_email)
            except Exception as e:
                logger.warning("Failed to clear cart of %s after order %s: %s", customer_email, order["order_id"], e)

        return order

    def _insert_order(self, order_data: dict[str, Any]) -> dict[str, Any]:
        for attempt in range(1, ORDER_ID_ATTEMPTS + 1):
            row = {**order_data, "order_id": generate_order_id()}
            try:
                response = self.supabase.table("orders").insert(row).execute()
            except PostgrestAPIError as e:
                if e.code == UNIQUE_VIOLATION and attempt < ORDER_ID_ATTEMPTS:
                    logger.warning("Order id %s already taken, generating another", row["order_id"])
                    continue
                raise
            if not response.data:
                raise Exception("Failed to create order")
            return response.data[0]
        raise Exception("Failed to create order")

    async def get_order(self, order_id: str) -> Order:
        """Fetch one order by its human-readable id.

        Raises:
            NotFoundError: If the order does not exist.
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
        return order

    async def list_customer_orders(self, customer_email: str) -> list[Order]:
        """All orders placed by a customer, newest first."""
        response = (
            self.supabase.table("orders")
            .select("*")
            .eq("customer_email", customer_email)
            .order("created_at", desc=True)
            .execute()
        )
        return response.data or []

    async def list_designer_orders(self, designer_email: str) -> list[dict[str, Any]]:
        """Paid, live orders containing a designer's items, with their earnings.

        Only the designer's own lines are returned, each annotated with the
        commission split and whether the designer has been paid for it.
        """
        response = (
            self.supabase.table("orders")
            .select("*")
            .contains("designer_emails", [designer_email])
            .eq("payment_status", PaymentStatus.PAID.value)
            .neq("status", OrderStatus.CANCELLED.value)
            .order("created_at", desc=True)
            .execute()
        )
        orders = response.data or []
        if not orders:
            return []

        ledger_response = (
            self.supabase.table("designer_payments")
            .select("*")
            .in_("order_id", [order["order_id"] for order in orders])
            .eq("designer_email", designer_email)
            .execute()
        )
        ledger = {(e["order_id"], e["order_item_id"]): e for e in ledger_response.data or []}

        result = []
        for order in orders:
            items = []
            for item in order.get("items") or []:
                if item.get("designer_email") != designer_email:
                    continue
                entry = ledger.get((order["order_id"], item["item_id"]))
                commission, designer_amount = split_commission(item["subtotal"], self.settings.commission_rate)
                items.append({
                    **item,
                    "commission": entry["commission"] if entry else commission,
                    "designer_amount": entry["designer_amount"] if entry else designer_amount,
                    "payment_released": bool(entry and entry.get("released")),
                    "released_at": entry.get("released_at") if entry else None,
                })
            result.append({
                **order,
                "items": items,
                "designer_total": float(sum(to_money(i["subtotal"]) for i in items)),
                "designer_earnings": float(sum(to_money(i["designer_amount"]) for i in items)),
            })
        return result

    async def list_delivery_orders(self, section: str | None) -> list[dict[str, Any]]:
        """Orders in one delivery-dashboard bucket.

        ``ready`` holds orders handed to delivery but not yet picked up,
        ``on`` those on the road, ``completed`` those delivered.
        """
        bucket = parse_enum(DeliverySection, section or DeliverySection.READY.value, "section")
        query = self.supabase.table("orders").select("*")
        if bucket == DeliverySection.READY:
            query = query.eq("status", OrderStatus.READY_FOR_DELIVERY.value).eq(
                "delivery_status", DeliveryStatus.ASSIGNED.value
            )
        elif bucket == DeliverySection.ON:
            query = query.neq("status", OrderStatus.CANCELLED.value).in_(
                "delivery_status", [DeliveryStatus.PICKED_UP.value, DeliveryStatus.IN_TRANSIT.value]
            )
        else:
            query = query.eq("delivery_status", DeliveryStatus.DELIVERED.value)
        response = query.order("created_at", desc=True).execute()
        return response.data or []

    def _write_transition(self, order: dict[str, Any], changes: dict[str, Any]) -> dict[str, Any]:
        response = (
            self.supabase.table("orders")
            .update({**changes, "updated_at": _now()})
            .eq("order_id", order["order_id"])
            .eq("status", order["status"])
            .eq("delivery_status", order["delivery_status"])
            .execute()
        )
        if not response.data:
            raise ConflictError(f"Order {order['order_id']} was changed by someone else, reload and retry")
        return response.data[0]

    async def update_status(
        self,
        order_id: str,
        status: str | None = None,
        delivery_status: str | None = None,
        notes: str | None = None,
    ) -> dict[str, Any]:
        """Apply a status and/or delivery-status change requested by staff.

        Both targets are checked together against the current state and then
        written in one conditional update, so a rejected request changes
        nothing.

        Raises:
            ValidationError: If nothing to change or an unknown value is given.
            NotFoundError: If the order does not exist.
            ConflictError: If the transition is not allowed.
        """
        if not status and not delivery_status and notes is None:
            raise ValidationError("status, deliveryStatus or notes is required")

        target_status = parse_enum(OrderStatus, status, "status") if status else None
        target_delivery = parse_enum(DeliveryStatus, delivery_status, "deliveryStatus") if delivery_status else None

        order = await self.get_order(order_id)
        changes = self._plan_changes(order, target_status, target_delivery)
        if notes is not None:
            changes["notes"] = notes
        if not changes:
            return order

        updated = self._write_transition(order, changes)
        logger.info(
            "Order %s: %s/%s -> %s/%s",
            order_id,
            order["status"],
            order["delivery_status"],
            updated["status"],
            updated["delivery_status"],
        )
        if updated["status"] == OrderStatus.CANCELLED.value and order["status"] != OrderStatus.CANCELLED.value:
            return await self._release_reserved_stock(updated)
        return updated

    def _plan_changes(
        self,
        order: dict[str, Any],
        target_status: OrderStatus | None,
        target_delivery: DeliveryStatus | None,
    ) -> dict[str, Any]:
        # Each guard sees the state left by the previous step
        state = dict(order)
        changes: dict[str, Any] = {}
        if target_status is not None and target_status.value != state["status"]:
            changes.update(self._status_changes(state, target_status))
            state.update(changes)
        if target_delivery is not None and target_delivery.value != state["delivery_status"]:
            changes.update(self._delivery_changes(state, target_delivery))
        return changes

    def _status_changes(self, order: dict[str, Any], target: OrderStatus) -> dict[str, Any]:
        if target == OrderStatus.READY_FOR_DELIVERY:
            return self._hand_over_changes(order)
        if target == OrderStatus.DELIVERED:
            return self._delivery_changes(order, DeliveryStatus.DELIVERED)
        if target == OrderStatus.CONFIRMED:
            ensure_can_confirm(order)
        else:
            ensure_order_transition(order, target)
        return {"status": target.value}

    def _delivery_changes(self, order: dict[str, Any], target: DeliveryStatus) -> dict[str, Any]:
        if target == DeliveryStatus.ASSIGNED:
            return self._hand_over_changes(order)

        ensure_delivery_transition(order, target)
        changes: dict[str, Any] = {"delivery_status": target.value}
        if target == DeliveryStatus.DELIVERED:
            ensure_order_transition(order, OrderStatus.DELIVERED)
            changes["status"] = OrderStatus.DELIVERED.value
            changes["delivered_at"] = _now()
        return changes

    def _hand_over_changes(self, order: dict[str, Any]) -> dict[str, Any]:
        ensure_can_notify_delivery(order)
        return {
            "status": OrderStatus.READY_FOR_DELIVERY.value,
            "delivery_status": DeliveryStatus.ASSIGNED.value,
        }

    async def notify_delivery(self, order_id: str, designer_email: str | None = None) -> dict[str, Any]:
        """A designer signals that the order is ready to be picked up.

        Raises:
            NotFoundError: If the order does not exist.
            AuthorizationError: If the designer has no items in the order.
            ConflictError: If the order is not confirmed/preparing or was already handed over.
        """
        order = await self.get_order(order_id)
        if designer_email and designer_email not in (order.get("designer_emails") or []):
            raise AuthorizationError(f"{designer_email} has no items in order {order_id}")
        updated = self._write_transition(order, self._hand_over_changes(order))
        logger.info("Order %s handed to delivery", order_id)
        return updated

    async def cancel_order(self, order_id: str, reason: str | None = None) -> dict[str, Any]:
        """Cancel an order and give its reserved stock back.

        Cancelling an already cancelled order that still holds stock retries
        the return of those units.

        Raises:
            NotFoundError: If the order does not exist.
            ConflictError: If the order is delivered, or cancelled with nothing left to return.
        """
        order = await self.get_order(order_id)
        if order["status"] == OrderStatus.CANCELLED.value and order.get("stock_reserved"):
            logger.info("Order %s already cancelled, retrying its stock return", order_id)
            return await self._release_reserved_stock(order)

        ensure_order_transition(order, OrderStatus.CANCELLED)
        changes: dict[str, Any] = {"status": OrderStatus.CANCELLED.value}
        if reason:
            changes["notes"] = reason
        updated = self._write_transition(order, changes)
        logger.info("Order %s cancelled from %s", order_id, order["status"])
        return await self._release_reserved_stock(updated)

    async def _release_reserved_stock(self, order: dict[str, Any]) -> dict[str, Any]:
        pending = order.get("unreleased_stock") or order.get("items") or []

        # Claiming the flag makes each unit go back at most once
        response = (
            self.supabase.table("orders")
            .update({"stock_reserved": False, "unreleased_stock": None, "updated_at": _now()})
            .eq("order_id", order["order_id"])
            .eq("stock_reserved", True)
            .execute()
        )
        if not response.data:
            logger.info("Order %s holds no reserved stock", order["order_id"])
            return order

        failed = await self.stock_service.release_order_items(pending)
        if not failed:
            logger.info("Released stock held by order %s", order["order_id"])
            return response.data[0]

        # Hand the unreturned lines back to the order so cancelling again finishes the job
        restored = (
            self.supabase.table("orders")
            .update({
                "stock_reserved": True,
                "unreleased_stock": [line.to_row() for line in failed],
                "updated_at": _now(),
            })
            .eq("order_id", order["order_id"])
            .execute()
        )
        logger.error(
            "Order %s is cancelled but %d of %d stock lines were not returned",
            order["order_id"],
            len(failed),
            len(pending),
        )
        return restored.data[0] if restored.data else response.data[0]

    async def collect_cash(self, order_id: str, collected_by: str | None = None) -> dict[str, Any]:
        """Record that the delivery partner collected the cash for a COD order.

        Raises:
            NotFoundError: If the order does not exist.
            ValidationError: If the order is not cash on delivery.
            ConflictError: If the order is cancelled or cash was already collected.
        """
        order = await self.get_order(order_id)
        ensure_can_collect_cash(order)

        response = (
            self.supabase.table("orders")
            .update({
                "cash_collected": True,
                "cash_collected_at": _now(),
                "cash_collected_by": collected_by,
                "payment_status": PaymentStatus.PAID.value,
                "updated_at": _now(),
            })
            .eq("order_id", order_id)
            .eq("cash_collected", False)
            .execute()
        )
        if not response.data:
            raise ConflictError(f"Cash for order {order_id} was already collected")

        logger.info("Cash collected for order %s by %s", order_id, collected_by or "unknown")
        return response.data[0]

    async def approve_bank_payment(self, order_id: str) -> dict[str, Any]:
        """Mark a bank transfer as verified: paid, confirmed and on the ledger.

        Raises:
            NotFoundError: If the order does not exist.
            ConflictError: If the payment is not awaiting verification.
        """
        order = await self.get_order(order_id)
        self.ensure_awaiting_verification(order)
        ensure_order_transition(order, OrderStatus.CONFIRMED)

        updated = self._write_transition(
            order,
            {"payment_status": PaymentStatus.PAID.value, "status": OrderStatus.CONFIRMED.value},
        )
        logger.info("Bank payment approved for order %s", order_id)
        await self._record_ledger(updated)
        return updated

    async def deny_bank_payment(self, order_id: str, reason: str | None = None) -> dict[str, Any]:
        """Reject a bank transfer: the order fails and its stock is released."""
        order = await self.get_order(order_id)
        self.ensure_awaiting_verification(order)
        ensure_order_transition(order, OrderStatus.CANCELLED)

        changes: dict[str, Any] = {
            "payment_status": PaymentStatus.FAILED.value,
            "status": OrderStatus.CANCELLED.value,
        }
        if reason:
            changes["notes"] = reason
        updated = self._write_transition(order, changes)
        logger.info("Bank payment denied for order %s", order_id)
        return await self._release_reserved_stock(updated)

    async def _record_ledger(self, order: dict[str, Any]) -> None:
        # Payouts re-record missing rows, so a failure here only delays them
        try:
            await self.ledger_service.record_ledger_entries(order)
        except Exception as e:
            logger.warning("Failed to record ledger for order %s: %s", order["order_id"], e)

    def ensure_awaiting_verification(self, order: dict[str, Any]) -> None:
        """Raise unless the order is a bank transfer whose payment is still pending."""
        if order.get("payment_method") != PaymentMethod.BANK_TRANSFER.value:
            raise ValidationError(f"Order {order['order_id']} is not paid by bank transfer")
        if order.get("payment_status") != PaymentStatus.PENDING.value:
            raise ConflictError(
                f"Payment for order {order['order_id']} is already {order.get('payment_status')}"
            )
