"""Unit tests for BankSlipService."""

from typing import Any
from unittest.mock import MagicMock

import pytest
from fakes import FakeSupabase

from woodart.api.middleware.error_handler import ConflictError, NotFoundError, ValidationError
from woodart.services.bank_slip_service import BankSlipService
from woodart.services.custom_order_service import CustomOrderService
from woodart.services.order_service import OrderService

IMAGE = (b"\x89PNG fake image", "sketch.png", "image/png")
SLIP = (b"%PDF-1.4 fake slip", "slip.pdf", "application/pdf")


async def bank_order(order_service: OrderService, design: dict[str, Any], quantity: int = 1) -> dict[str, Any]:
    return await order_service.create_order(
        customer_email="buyer@example.com",
        items=[{"design_id": design["id"], "quantity": quantity}],
        payment_method="bank_transfer",
        customer_name="Kamala Perera",
    )


async def bank_custom_order(custom_order_service: CustomOrderService) -> dict[str, Any]:
    return await custom_order_service.create_custom_order(
        {
            "customer_name": "Kamala Perera",
            "customer_email": "buyer@example.com",
            "material": "teak",
            "board_color": "natural",
            "board_size": "12x18",
            "board_thickness": "0.75",
            "total_price": 5250,
            "payment_method": "bank",
        },
        IMAGE,
        SLIP,
    )


class TestUploadSlip:
    """Tests for upload_slip."""

    @pytest.mark.asyncio
    async def test_stores_without_order(self, bank_slip_service: BankSlipService, fake_db: FakeSupabase) -> None:
        url = await bank_slip_service.upload_slip(*SLIP)

        assert "bank-slips/" in url
        assert url.endswith(".pdf")
        assert len(fake_db.storage.files) == 1

    @pytest.mark.asyncio
    async def test_attaches_to_marketplace_order(
        self,
        bank_slip_service: BankSlipService,
        order_service: OrderService,
        fake_db: FakeSupabase,
        make_design: Any,
    ) -> None:
        order = await bank_order(order_service, make_design())

        url = await bank_slip_service.upload_slip(*SLIP, order_id=order["order_id"])

        assert fake_db.get("orders", order_id=order["order_id"])["bank_slip_url"] == url

    @pytest.mark.asyncio
    async def test_unknown_order(self, bank_slip_service: BankSlipService) -> None:
        with pytest.raises(NotFoundError):
            await bank_slip_service.upload_slip(*SLIP, order_id="WAG-20260118-NOPE00")

    @pytest.mark.asyncio
    async def test_rejects_cash_on_delivery_order(
        self,
        bank_slip_service: BankSlipService,
        order_service: OrderService,
        fake_db: FakeSupabase,
        make_design: Any,
    ) -> None:
        """A cash order has no transfer to prove; nothing is stored."""
        order = await order_service.create_order(
            customer_email="buyer@example.com",
            items=[{"design_id": make_design()["id"], "quantity": 1}],
            payment_method="cash_on_delivery",
        )

        with pytest.raises(ValidationError, match="not paid by bank transfer"):
            await bank_slip_service.upload_slip(*SLIP, order_id=order["order_id"])

        assert fake_db.storage.files == {}
        assert fake_db.get("orders", order_id=order["order_id"])["bank_slip_url"] is None

    @pytest.mark.asyncio
    async def test_rejects_verified_payment(
        self,
        bank_slip_service: BankSlipService,
        order_service: OrderService,
        fake_db: FakeSupabase,
        make_design: Any,
    ) -> None:
        order = await bank_order(order_service, make_design())
        await order_service.approve_bank_payment(order["order_id"])

        with pytest.raises(ConflictError, match="already paid"):
            await bank_slip_service.upload_slip(*SLIP, order_id=order["order_id"])

    @pytest.mark.asyncio
    async def test_rejects_verified_custom_payment(
        self,
        bank_slip_service: BankSlipService,
        custom_order_service: CustomOrderService,
    ) -> None:
        order = await bank_custom_order(custom_order_service)
        await custom_order_service.approve_bank_payment(order["order_id"])

        with pytest.raises(ConflictError, match="already paid"):
            await bank_slip_service.upload_slip(*SLIP, order_id=order["order_id"])

    @pytest.mark.asyncio
    async def test_rejects_spreadsheet(self, bank_slip_service: BankSlipService) -> None:
        with pytest.raises(ValidationError):
            await bank_slip_service.upload_slip(b"a,b", "slip.csv", "text/csv")


class TestReview:
    """Tests for list_pending and review."""

    @pytest.mark.asyncio
    async def test_pending_merges_both_kinds(
        self,
        bank_slip_service: BankSlipService,
        order_service: OrderService,
        custom_order_service: CustomOrderService,
        make_design: Any,
    ) -> None:
        await bank_order(order_service, make_design())
        await bank_custom_order(custom_order_service)
        await order_service.create_order(
            customer_email="cash@example.com",
            items=[{"design_id": make_design()["id"], "quantity": 1}],
            payment_method="cash_on_delivery",
        )

        pending = await bank_slip_service.list_pending()

        assert sorted(order["order_type"] for order in pending) == ["custom", "marketplace"]

    @pytest.mark.asyncio
    async def test_approve_marketplace_order(
        self,
        bank_slip_service: BankSlipService,
        order_service: OrderService,
        fake_db: FakeSupabase,
        email_service: MagicMock,
        make_design: Any,
    ) -> None:
        order = await bank_order(order_service, make_design())

        result = await bank_slip_service.review(order["order_id"], "paid")

        assert result["order_type"] == "marketplace"
        assert result["status"] == "confirmed"
        assert len(fake_db.rows("designer_payments")) == 1
        email_service.send_payment_approved_email.assert_awaited_once()
        assert email_service.send_payment_approved_email.await_args.kwargs["amount"] == 2250.0

    @pytest.mark.asyncio
    async def test_deny_marketplace_order_releases_stock(
        self,
        bank_slip_service: BankSlipService,
        order_service: OrderService,
        fake_db: FakeSupabase,
        email_service: MagicMock,
        make_design: Any,
    ) -> None:
        design = make_design(quantity=3)
        order = await bank_order(order_service, design, quantity=3)

        result = await bank_slip_service.review(order["order_id"], "failed", "Amount does not match")

        assert result["status"] == "cancelled"
        assert result["payment_status"] == "failed"
        assert fake_db.get("designs", id=design["id"])["quantity"] == 3
        email_service.send_payment_denied_email.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_approve_custom_order(
        self, bank_slip_service: BankSlipService, custom_order_service: CustomOrderService
    ) -> None:
        order = await bank_custom_order(custom_order_service)

        result = await bank_slip_service.review(order["order_id"], "paid")

        assert result["order_type"] == "custom"
        assert result["payment_status"] == "paid"
        assert result["status"] == "pending"

    @pytest.mark.asyncio
    async def test_second_review_is_conflict(
        self, bank_slip_service: BankSlipService, order_service: OrderService, make_design: Any
    ) -> None:
        order = await bank_order(order_service, make_design())
        await bank_slip_service.review(order["order_id"], "paid")

        with pytest.raises(ConflictError):
            await bank_slip_service.review(order["order_id"], "failed")

    @pytest.mark.asyncio
    async def test_invalid_status(self, bank_slip_service: BankSlipService) -> None:
        with pytest.raises(ValidationError, match="paid"):
            await bank_slip_service.review("WAG-20260118-ABC123", "maybe")
