"""Custom (bespoke) order business logic service."""

import logging
import secrets
from datetime import datetime, timezone
from typing import Any

from postgrest.exceptions import APIError as PostgrestAPIError
from supabase import Client

from woodart.api.middleware.error_handler import ConflictError, NotFoundError, ValidationError
from woodart.core.config import Settings, get_settings
from woodart.core.supabase import UNIQUE_VIOLATION, get_supabase_client
from woodart.models.custom_order import CustomOrder, CustomOrderQueue, CustomOrderStatus
from woodart.models.order import DeliverySection, DeliveryStatus, PaymentMethod, PaymentStatus
from woodart.services.email_service import EmailService, get_email_service
from woodart.services.ledger_service import to_money
from woodart.services.lifecycle import (
    ensure_can_collect_cash,
    ensure_custom_can_notify_delivery,
    ensure_custom_order_transition,
    ensure_delivery_transition,
    parse_enum,
)
from woodart.services.order_service import parse_payment_method
from woodart.services.storage_service import BANK_SLIP_MIME_TYPES, IMAGE_MIME_TYPES, StorageService

logger = logging.getLogger(__name__)

CUSTOM_ORDER_PREFIX = "WA-"
ORDER_ID_ATTEMPTS = 3


def generate_custom_order_id(now: datetime | None = None) -> str:
    """Human-facing custom order id, e.g. ``WA-2026-0118-042``."""
    now = now or datetime.now(timezone.utc)
    return f"WA-{now:%Y}-{now:%m%d}-{secrets.randbelow(1000):03d}"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class CustomOrderService:
    """Service for custom orders fulfilled by staff designers."""

    def __init__(
        self,
        supabase_client: Client | None = None,
        storage_service: StorageService | None = None,
        email_service: EmailService | None = None,
        settings: Settings | None = None,
    ):
        """Initialize custom order service.

        Args:
            supabase_client: Optional Supabase client for testing.
            storage_service: Optional storage service for testing.
            email_service: Optional email service for testing.
            settings: Optional settings for testing.
        """
        self._supabase_client = supabase_client
        self._email_service = email_service
        self.settings = settings or get_settings()
        self.storage_service = storage_service or StorageService(supabase_client, settings=self.settings)

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

    async def create_custom_order(
        self,
        data: dict[str, Any],
        reference_image: tuple[bytes, str, str | None],
        bank_slip: tuple[bytes, str, str | None] | None = None,
    ) -> dict[str, Any]:
        """Create a custom order with its reference image.

        Cash orders are treated as paid up front; bank orders wait for the
        slip to be verified.

        Args:
            data: Customer contact fields, board details, description,
                ``total_price`` and ``payment_method``.
            reference_image: (content, file name, MIME type) of the sketch or photo.
            bank_slip: (content, file name, MIME type), required for bank payments.

        Returns:
            dict: The created custom_orders row.

        Raises:
            ValidationError: If required fields or files are missing.
        """
        required = ("customer_name", "customer_email", "material", "board_color", "board_size", "board_thickness")
        missing = [field for field in required if not data.get(field)]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

        method = parse_payment_method(data.get("payment_method") or PaymentMethod.CASH_ON_DELIVERY.value)
        is_bank = method == PaymentMethod.BANK_TRANSFER
        if is_bank and bank_slip is None:
            raise ValidationError("Bank slip is required for bank payments")

        estimated_price = to_money(data.get("total_price") or 0)
        if estimated_price < 0:
            raise ValidationError("totalPrice cannot be negative")

        image_url = await self.storage_service.upload("reference-images", *reference_image, IMAGE_MIME_TYPES)
        bank_slip_url = None
        if is_bank and bank_slip is not None:
            bank_slip_url = await self.storage_service.upload("bank-slips", *bank_slip, BANK_SLIP_MIME_TYPES)

        row = {
            "customer_name": data["customer_name"],
            "customer_email": data["customer_email"],
            "customer_phone": data.get("customer_phone") or "",
            "customer_address": data.get("customer_address") or "",
            "material": data["material"],
            "board_color": data["board_color"],
            "board_size": data["board_size"],
            "board_thickness": data["board_thickness"],
            "description": data.get("description") or "",
            "reference_image_path": image_url,
            "estimated_price": float(estimated_price),
            "final_price": float(estimated_price),
            "delivery_fee": float(to_money(self.settings.delivery_fee)),
            "status": CustomOrderStatus.PENDING.value,
            "payment_method": method.value,
            "payment_status": (PaymentStatus.PENDING if is_bank else PaymentStatus.PAID).value,
            "delivery_status": DeliveryStatus.NOT_ASSIGNED.value,
            "cash_collected": False,
            "bank_slip_url": bank_slip_url,
        }

        for attempt in range(1, ORDER_ID_ATTEMPTS + 1):
            row["order_id"] = generate_custom_order_id()
            try:
                response = self.supabase.table("custom_orders").insert(row).execute()
                break
            except PostgrestAPIError as e:
                if e.code == UNIQUE_VIOLATION and attempt < ORDER_ID_ATTEMPTS:
                    logger.warning("Custom order id %s already taken, generating another", row["order_id"])
                    continue
                raise

        if not response.data:
            raise Exception("Failed to create custom order")
        order = response.data[0]
        logger.info("Created custom order %s for %s (%s)", order["order_id"], order["customer_email"], method.value)
        return order

    async def get_custom_order(self, order_id: str) -> CustomOrder:
        """Fetch a custom order by readable id (``WA-...``) or storage id.

        Raises:
            NotFoundError: If the order does not exist.
        """
        column = "order_id" if order_id.startswith(CUSTOM_ORDER_PREFIX) else "id"
        response = (
            self.supabase.table("custom_orders")
            .select("*")
            .eq(column, order_id)
            .maybe_single()
            .execute()
        )
        order = response.data if response else None
        if not order:
            raise NotFoundError(f"Custom order {order_id} not found")
        return order

    async def list_queue(self, queue: str) -> list[dict[str, Any]]:
        """Custom orders in one staff-designer queue."""
        bucket = parse_enum(CustomOrderQueue, queue, "queue")
        sort_column = "created_at" if bucket == CustomOrderQueue.PENDING else "updated_at"
        response = (
            self.supabase.table("custom_orders")
            .select("*")
            .eq("status", bucket.value)
            .order(sort_column, desc=True)
            .execute()
        )
        return response.data or []

    async def list_customer_orders(self, customer_email: str) -> list[CustomOrder]:
        """All custom orders placed by a customer, newest first."""
        response = (
            self.supabase.table("custom_orders")
            .select("*")
            .eq("customer_email", customer_email)
            .order("created_at", desc=True)
            .execute()
        )
        return response.data or []

    async def list_staff_orders(self, staff_designer_id: str, status: str | None = None) -> list[CustomOrder]:
        """Custom orders accepted by one staff designer, optionally in one status.

        Raises:
            ValidationError: If ``status`` is not a custom order status.
        """
        query = self.supabase.table("custom_orders").select("*").eq("staff_designer_id", staff_designer_id)
        if status:
            query = query.eq("status", parse_enum(CustomOrderStatus, status, "status").value)
        response = query.order("updated_at", desc=True).execute()
        return response.data or []

    async def list_delivery_orders(self, section: str | None) -> list[dict[str, Any]]:
        """Custom orders in one delivery-dashboard bucket."""
        bucket = parse_enum(DeliverySection, section or DeliverySection.READY.value, "section")
        query = self.supabase.table("custom_orders").select("*")
        if bucket == DeliverySection.READY:
            query = query.eq("status", CustomOrderStatus.COMPLETED.value).eq(
                "delivery_status", DeliveryStatus.ASSIGNED.value
            )
        elif bucket == DeliverySection.ON:
            query = query.neq("status", CustomOrderStatus.CANCELLED.value).in_(
                "delivery_status", [DeliveryStatus.PICKED_UP.value, DeliveryStatus.IN_TRANSIT.value]
            )
        else:
            query = query.eq("delivery_status", DeliveryStatus.DELIVERED.value)
        response = query.order("updated_at", desc=True).execute()
        return response.data or []

    def _write_transition(self, order: dict[str, Any], changes: dict[str, Any]) -> dict[str, Any]:
        response = (
            self.supabase.table("custom_orders")
            .update({**changes, "updated_at": _now()})
            .eq("id", order["id"])
            .eq("status", order["status"])
            .eq("delivery_status", order["delivery_status"])
            .execute()
        )
        if not response.data:
            raise ConflictError(f"Custom order {order['order_id']} was changed by someone else, reload and retry")
        return response.data[0]

    async def accept_order(
        self,
        order_id: str,
        staff_designer_id: str | None = None,
        final_price: float | None = None,
        notes: str | None = None,
    ) -> dict[str, Any]:
        """A staff designer takes a pending, paid custom order.

        Raises:
            NotFoundError: If the order does not exist.
            ConflictError: If the order is not pending or not yet paid.
        """
        order = await self.get_custom_order(order_id)
        ensure_custom_order_transition(order, CustomOrderStatus.ACCEPTED)

        changes: dict[str, Any] = {"status": CustomOrderStatus.ACCEPTED.value}
        if staff_designer_id:
            changes["staff_designer_id"] = staff_designer_id
        if final_price is not None:
            if final_price < 0:
                raise ValidationError("finalPrice cannot be negative")
            changes["final_price"] = float(to_money(final_price))
        if notes:
            changes["notes"] = notes

        updated = self._write_transition(order, changes)
        logger.info("Custom order %s accepted by %s", updated["order_id"], staff_designer_id or "staff")

        await self.email_service.send_custom_order_accepted_email(
            to_email=updated["customer_email"],
            customer_name=updated.get("customer_name"),
            order_id=updated["order_id"],
            final_price=updated.get("final_price") or updated.get("estimated_price") or 0,
        )
        return updated

    async def update_status(self, order_id: str, status: str, notes: str | None = None) -> dict[str, Any]:
        """Move a custom order through in_progress / completed / cancelled."""
        target = parse_enum(CustomOrderStatus, status, "status")
        order = await self.get_custom_order(order_id)
        if target == CustomOrderStatus.ACCEPTED:
            return await self.accept_order(order_id, notes=notes)

        ensure_custom_order_transition(order, target)
        changes: dict[str, Any] = {"status": target.value}
        if notes:
            changes["notes"] = notes
        updated = self._write_transition(order, changes)
        logger.info("Custom order %s: %s -> %s", order["order_id"], order["status"], target.value)
        return updated

    async def notify_delivery(self, order_id: str) -> dict[str, Any]:
        """Hand a completed custom order to the delivery team."""
        order = await self.get_custom_order(order_id)
        ensure_custom_can_notify_delivery(order)
        updated = self._write_transition(order, {"delivery_status": DeliveryStatus.ASSIGNED.value})
        logger.info("Custom order %s handed to delivery", order["order_id"])
        return updated

    async def update_delivery_status(self, order_id: str, delivery_status: str) -> dict[str, Any]:
        """Advance the delivery of a custom order.

        Raises:
            ConflictError: If the step is out of order, or a cash order is
                delivered before its cash was collected.
        """
        target = parse_enum(DeliveryStatus, delivery_status, "deliveryStatus")
        order = await self.get_custom_order(order_id)
        if target == DeliveryStatus.ASSIGNED:
            return await self.notify_delivery(order_id)

        ensure_delivery_transition(order, target)
        changes: dict[str, Any] = {"delivery_status": target.value}
        if target == DeliveryStatus.DELIVERED:
            changes["delivered_at"] = _now()
        updated = self._write_transition(order, changes)
        logger.info(
            "Custom order %s delivery: %s -> %s",
            order["order_id"],
            order["delivery_status"],
            target.value,
        )
        return updated

    async def collect_cash(self, order_id: str, collected_by: str | None = None) -> dict[str, Any]:
        """Record cash collection for a cash custom order."""
        order = await self.get_custom_order(order_id)
        ensure_can_collect_cash(order)

        response = (
            self.supabase.table("custom_orders")
            .update({
                "cash_collected": True,
                "cash_collected_at": _now(),
                "cash_collected_by": collected_by,
                "payment_status": PaymentStatus.PAID.value,
                "updated_at": _now(),
            })
            .eq("id", order["id"])
            .eq("cash_collected", False)
            .execute()
        )
        if not response.data:
            raise ConflictError(f"Cash for custom order {order['order_id']} was already collected")

        logger.info("Cash collected for custom order %s", order["order_id"])
        return response.data[0]

    async def approve_bank_payment(self, order_id: str) -> dict[str, Any]:
        """Mark a custom order's bank transfer as verified."""
        order = await self.get_custom_order(order_id)
        self.ensure_awaiting_verification(order)
        updated = self._write_transition(order, {"payment_status": PaymentStatus.PAID.value})
        logger.info("Bank payment approved for custom order %s", order["order_id"])
        return updated

    async def deny_bank_payment(self, order_id: str, reason: str | None = None) -> dict[str, Any]:
        """Reject a custom order's bank transfer and cancel the order."""
        order = await self.get_custom_order(order_id)
        self.ensure_awaiting_verification(order)
        ensure_custom_order_transition(order, CustomOrderStatus.CANCELLED)
        changes: dict[str, Any] = {
            "payment_status": PaymentStatus.FAILED.value,
            "status": CustomOrderStatus.CANCELLED.value,
        }
        if reason:
            changes["notes"] = reason
        updated = self._write_transition(order, changes)
        logger.info("Bank payment denied for custom order %s", order["order_id"])
        return updated

    def ensure_awaiting_verification(self, order: dict[str, Any]) -> None:
        """Raise unless the order is a bank transfer whose payment is still pending."""
        if order.get("payment_method") != PaymentMethod.BANK_TRANSFER.value:
            raise ValidationError(f"Custom order {order['order_id']} is not paid by bank transfer")
        if order.get("payment_status") != PaymentStatus.PENDING.value:
            raise ConflictError(
                f"Payment for custom order {order['order_id']} is already {order.get('payment_status')}"
            )
