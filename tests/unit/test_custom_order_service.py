"""Unit tests for CustomOrderService."""

import re
from typing import Any
from unittest.mock import MagicMock

import pytest
from fakes import FakeSupabase

from woodart.api.middleware.error_handler import ConflictError, NotFoundError, ValidationError
from woodart.services.custom_order_service import CustomOrderService, generate_custom_order_id

IMAGE = (b"\x89PNG fake image", "sketch.png", "image/png")
SLIP = (b"%PDF-1.4 fake slip", "slip.pdf", "application/pdf")


def order_form(**overrides: Any) -> dict[str, Any]:
    data = {
        "customer_name": "Kamala Perera",
        "customer_email": "buyer@example.com",
        "customer_phone": "0771234567",
        "customer_address": "12 Temple Road, Kandy",
        "material": "teak",
        "board_color": "natural",
        "board_size": "12x18",
        "board_thickness": "0.75",
        "description": "Family name plate",
        "total_price": 5250,
        "payment_method": "cash",
    }
    data.update(overrides)
    return data


class TestCreateCustomOrder:
    """Tests for create_custom_order."""

    def test_order_id_format(self) -> None:
        assert re.fullmatch(r"WA-\d{4}-\d{4}-\d{3}", generate_custom_order_id())

    @pytest.mark.asyncio
    async def test_cash_order_is_paid_pending(
        self, custom_order_service: CustomOrderService, fake_db: FakeSupabase
    ) -> None:
        order = await custom_order_service.create_custom_order(order_form(), IMAGE)

        assert order["order_id"].startswith("WA-")
        assert order["status"] == "pending"
        assert order["payment_method"] == "cash_on_delivery"
        assert order["payment_status"] == "paid"
        assert order["estimated_price"] == 5250.0
        assert order["delivery_fee"] == 250.0
        assert order["reference_image_path"].startswith("https://storage.test/uploads/reference-images/")
        assert len(fake_db.storage.files) == 1

    @pytest.mark.asyncio
    async def test_bank_order_requires_slip(self, custom_order_service: CustomOrderService) -> None:
        with pytest.raises(ValidationError, match="Bank slip is required"):
            await custom_order_service.create_custom_order(order_form(payment_method="bank"), IMAGE)

    @pytest.mark.asyncio
    async def test_bank_order_waits_for_verification(self, custom_order_service: CustomOrderService) -> None:
        order = await custom_order_service.create_custom_order(order_form(payment_method="bank"), IMAGE, SLIP)

        assert order["payment_status"] == "pending"
        assert "bank-slips/" in order["bank_slip_url"]

    @pytest.mark.asyncio
    async def test_missing_fields(self, custom_order_service: CustomOrderService) -> None:
        with pytest.raises(ValidationError, match="material"):
            await custom_order_service.create_custom_order(order_form(material=""), IMAGE)

    @pytest.mark.asyncio
    async def test_rejects_non_image_reference(self, custom_order_service: CustomOrderService) -> None:
        with pytest.raises(ValidationError, match="Unsupported file type"):
            await custom_order_service.create_custom_order(order_form(), (b"data", "notes.txt", "text/plain"))


class TestCustomOrderLifecycle:
    """Tests for accept, progress, delivery and cash collection."""

    @pytest.mark.asyncio
    async def test_full_cash_flow(
        self, custom_order_service: CustomOrderService, email_service: MagicMock
    ) -> None:
        order = await custom_order_service.create_custom_order(order_form(), IMAGE)
        order_id = order["order_id"]

        accepted = await custom_order_service.accept_order(order_id, "staff-1", final_price=6000)
        assert accepted["status"] == "accepted"
        assert accepted["final_price"] == 6000.0
        email_service.send_custom_order_accepted_email.assert_awaited_once()

        await custom_order_service.update_status(order_id, "in_progress")
        await custom_order_service.update_status(order_id, "completed")
        notified = await custom_order_service.notify_delivery(order_id)
        assert notified["delivery_status"] == "assigned"

        await custom_order_service.update_delivery_status(order_id, "picked_up")
        with pytest.raises(ConflictError, match="Cash has not been collected"):
            await custom_order_service.update_delivery_status(order_id, "delivered")

        await custom_order_service.collect_cash(order_id, "rider@example.com")
        delivered = await custom_order_service.update_delivery_status(order_id, "delivered")
        assert delivered["delivery_status"] == "delivered"

    @pytest.mark.asyncio
    async def test_unpaid_bank_order_cannot_be_accepted(self, custom_order_service: CustomOrderService) -> None:
        order = await custom_order_service.create_custom_order(order_form(payment_method="bank"), IMAGE, SLIP)

        with pytest.raises(ConflictError, match="payment is verified"):
            await custom_order_service.accept_order(order["order_id"])

    @pytest.mark.asyncio
    async def test_notify_before_completion(self, custom_order_service: CustomOrderService) -> None:
        order = await custom_order_service.create_custom_order(order_form(), IMAGE)

        with pytest.raises(ConflictError, match="must be completed"):
            await custom_order_service.notify_delivery(order["order_id"])

    @pytest.mark.asyncio
    async def test_lookup_by_storage_id(self, custom_order_service: CustomOrderService) -> None:
        order = await custom_order_service.create_custom_order(order_form(), IMAGE)

        found = await custom_order_service.get_custom_order(order["id"])

        assert found["order_id"] == order["order_id"]

    @pytest.mark.asyncio
    async def test_unknown_order(self, custom_order_service: CustomOrderService) -> None:
        with pytest.raises(NotFoundError):
            await custom_order_service.get_custom_order("WA-2026-0101-999")


class TestCustomOrderQueues:
    """Tests for the staff designer and delivery queues."""

    @pytest.mark.asyncio
    async def test_queues(self, custom_order_service: CustomOrderService) -> None:
        pending = await custom_order_service.create_custom_order(order_form(), IMAGE)
        accepted = await custom_order_service.create_custom_order(order_form(), IMAGE)
        await custom_order_service.accept_order(accepted["order_id"])

        assert [o["order_id"] for o in await custom_order_service.list_queue("pending")] == [pending["order_id"]]
        assert [o["order_id"] for o in await custom_order_service.list_queue("accepted")] == [accepted["order_id"]]
        assert await custom_order_service.list_queue("completed") == []

    @pytest.mark.asyncio
    async def test_unknown_queue(self, custom_order_service: CustomOrderService) -> None:
        with pytest.raises(ValidationError):
            await custom_order_service.list_queue("archived")

    @pytest.mark.asyncio
    async def test_delivery_ready_bucket(self, custom_order_service: CustomOrderService) -> None:
        order = await custom_order_service.create_custom_order(order_form(), IMAGE)
        order_id = order["order_id"]
        await custom_order_service.accept_order(order_id)
        await custom_order_service.update_status(order_id, "completed")
        await custom_order_service.notify_delivery(order_id)

        ready = await custom_order_service.list_delivery_orders("ready")

        assert [o["order_id"] for o in ready] == [order_id]

    @pytest.mark.asyncio
    async def test_customer_orders(self, custom_order_service: CustomOrderService) -> None:
        await custom_order_service.create_custom_order(order_form(), IMAGE)
        await custom_order_service.create_custom_order(order_form(customer_email="other@example.com"), IMAGE)

        orders = await custom_order_service.list_customer_orders("buyer@example.com")

        assert len(orders) == 1

    @pytest.mark.asyncio
    async def test_staff_designer_orders(self, custom_order_service: CustomOrderService) -> None:
        working = await custom_order_service.create_custom_order(order_form(), IMAGE)
        done = await custom_order_service.create_custom_order(order_form(), IMAGE)
        await custom_order_service.create_custom_order(order_form(), IMAGE)
        await custom_order_service.accept_order(working["order_id"], staff_designer_id="staff-7")
        await custom_order_service.accept_order(done["order_id"], staff_designer_id="staff-7")
        await custom_order_service.update_status(done["order_id"], "completed")

        mine = await custom_order_service.list_staff_orders("staff-7")
        completed = await custom_order_service.list_staff_orders("staff-7", status="completed")

        assert {o["order_id"] for o in mine} == {working["order_id"], done["order_id"]}
        assert [o["order_id"] for o in completed] == [done["order_id"]]
        with pytest.raises(ValidationError):
            await custom_order_service.list_staff_orders("staff-7", status="shipped")
