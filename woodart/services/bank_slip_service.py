"""Bank transfer proof workflow: upload, review queue and verification."""

import logging
from typing import Any

from supabase import Client

from woodart.api.middleware.error_handler import ValidationError
from woodart.core.supabase import get_supabase_client
from woodart.models.order import PaymentMethod, PaymentStatus
from woodart.services.custom_order_service import CUSTOM_ORDER_PREFIX, CustomOrderService
from woodart.services.email_service import EmailService, get_email_service
from woodart.services.order_service import OrderService
from woodart.services.storage_service import BANK_SLIP_MIME_TYPES, StorageService

logger = logging.getLogger(__name__)

ORDER_TYPE_MARKETPLACE = "marketplace"
ORDER_TYPE_CUSTOM = "custom"


class BankSlipService:
    """Coordinates bank-slip review across marketplace and custom orders.

    Order ids starting with ``WA-`` are custom orders; everything else is
    looked up as a marketplace order.
    """

    def __init__(
        self,
        order_service: OrderService,
        custom_order_service: CustomOrderService,
        storage_service: StorageService | None = None,
        email_service: EmailService | None = None,
        supabase_client: Client | None = None,
    ):
        """Initialize bank slip service.

        Args:
            order_service: Marketplace order service.
            custom_order_service: Custom order service.
            storage_service: Optional storage service for testing.
            email_service: Optional email service for testing.
            supabase_client: Optional Supabase client for testing.
        """
        self.order_service = order_service
        self.custom_order_service = custom_order_service
        self._supabase_client = supabase_client
        self._email_service = email_service
        self.storage_service = storage_service or StorageService(supabase_client)

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

    async def upload_slip(
        self,
        file_content: bytes,
        file_name: str,
        mime_type: str | None,
        order_id: str | None = None,
    ) -> str:
        """Store a bank slip and optionally attach it to an existing order.

        Returns:
            str: Public URL of the stored slip.

        Raises:
            NotFoundError: If the order does not exist.
            ValidationError: If the order is not paid by bank transfer.
            ConflictError: If the order's payment is no longer awaiting verification.
        """
        order = None
        is_custom = bool(order_id and order_id.startswith(CUSTOM_ORDER_PREFIX))
        if order_id:
            if is_custom:
                order = await self.custom_order_service.get_custom_order(order_id)
                self.custom_order_service.ensure_awaiting_verification(order)
            else:
                order = await self.order_service.get_order(order_id)
                self.order_service.ensure_awaiting_verification(order)

        url = await self.storage_service.upload(
            "bank-slips", file_content, file_name, mime_type, BANK_SLIP_MIME_TYPES
        )
        if order is not None:
            if is_custom:
                self.supabase.table("custom_orders").update({"bank_slip_url": url}).eq("id", order["id"]).execute()
            else:
                self.supabase.table("orders").update({"bank_slip_url": url}).eq("order_id", order_id).execute()
            logger.info("Attached bank slip to order %s", order_id)
        return url

    async def list_pending(self) -> list[dict[str, Any]]:
        """Bank-transfer orders of both kinds awaiting verification, newest first."""
        marketplace = (
            self.supabase.table("orders")
            .select("*")
            .eq("payment_method", PaymentMethod.BANK_TRANSFER.value)
            .eq("payment_status", PaymentStatus.PENDING.value)
            .execute()
        )
        custom = (
            self.supabase.table("custom_orders")
            .select("*")
            .eq("payment_method", PaymentMethod.BANK_TRANSFER.value)
            .eq("payment_status", PaymentStatus.PENDING.value)
            .execute()
        )
        pending = [
            {**order, "order_type": ORDER_TYPE_MARKETPLACE} for order in marketplace.data or []
        ] + [
            {**order, "order_type": ORDER_TYPE_CUSTOM} for order in custom.data or []
        ]
        pending.sort(key=lambda order: str(order.get("created_at") or ""), reverse=True)
        return pending

    async def review(self, order_id: str, payment_status: str, notes: str | None = None) -> dict[str, Any]:
        """Approve (``paid``) or deny (``failed``) a bank transfer.

        Approval confirms a marketplace order and records its ledger entries.
        Denial cancels the order and, for marketplace orders, releases the
        reserved stock. The customer is emailed either way.

        Raises:
            ValidationError: If ``payment_status`` is not ``paid`` or ``failed``.
            NotFoundError: If the order does not exist.
            ConflictError: If the payment is not awaiting verification.
        """
        if payment_status not in (PaymentStatus.PAID.value, PaymentStatus.FAILED.value):
            raise ValidationError("paymentStatus must be 'paid' or 'failed'")

        is_custom = order_id.startswith(CUSTOM_ORDER_PREFIX)
        approve = payment_status == PaymentStatus.PAID.value

        if is_custom:
            service = self.custom_order_service
            order = (
                await service.approve_bank_payment(order_id)
                if approve
                else await service.deny_bank_payment(order_id, notes)
            )
            amount = order.get("final_price") or order.get("estimated_price") or 0
        else:
            order = (
                await self.order_service.approve_bank_payment(order_id)
                if approve
                else await self.order_service.deny_bank_payment(order_id, notes)
            )
            amount = order["total_amount"]

        order_type = ORDER_TYPE_CUSTOM if is_custom else ORDER_TYPE_MARKETPLACE
        if approve:
            await self.email_service.send_payment_approved_email(
                to_email=order["customer_email"],
                customer_name=order.get("customer_name"),
                order_id=order["order_id"],
                amount=amount,
                order_type=order_type,
            )
        else:
            await self.email_service.send_payment_denied_email(
                to_email=order["customer_email"],
                customer_name=order.get("customer_name"),
                order_id=order["order_id"],
                reason=notes,
                order_type=order_type,
            )

        logger.info("Bank slip for %s order %s marked %s", order_type, order_id, payment_status)
        return {**order, "order_type": order_type}
