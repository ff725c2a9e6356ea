"""Unit tests for StockReservationService."""

import asyncio
from typing import Any

import pytest
from fakes import FakeSupabase

from woodart.api.middleware.error_handler import (
    ConflictError,
    InsufficientStockError,
    NotFoundError,
    ValidationError,
)
from woodart.core.events import EventBroadcaster
from woodart.services.stock_service import (
    ReservationLine,
    StockContentionError,
    StockReservationService,
    aggregate_lines,
    compare_and_set,
)


class TestAggregateLines:
    """Tests for aggregate_lines."""

    def test_sums_repeated_designs(self) -> None:
        """Two lines for the same design become one total."""
        totals = aggregate_lines([
            {"design_id": "a", "quantity": 2},
            {"design_id": "b", "quantity": 1},
            {"design_id": "a", "quantity": 3},
        ])
        assert totals == {"a": 5, "b": 1}

    @pytest.mark.parametrize("quantity", [0, -1, None, "2"])
    def test_rejects_bad_quantity(self, quantity: Any) -> None:
        with pytest.raises(ValidationError):
            aggregate_lines([{"design_id": "a", "quantity": quantity}])

    def test_rejects_missing_design(self) -> None:
        with pytest.raises(ValidationError, match="designId"):
            aggregate_lines([{"quantity": 1}])


class TestReserveStock:
    """Tests for reserve_stock."""

    @pytest.mark.asyncio
    async def test_decrements_quantity(
        self, stock_service: StockReservationService, fake_db: FakeSupabase, make_design: Any
    ) -> None:
        """Reserving 3 of 10 leaves 7."""
        design = make_design(quantity=10)

        lines = await stock_service.reserve_stock([{"design_id": design["id"], "quantity": 3}])

        assert lines[0].quantity == 3
        assert fake_db.get("designs", id=design["id"])["quantity"] == 7

    @pytest.mark.asyncio
    async def test_reports_every_shortage(self, stock_service: StockReservationService, make_design: Any) -> None:
        """All short lines are listed and nothing is decremented."""
        first = make_design(quantity=1, item_name="Panel")
        second = make_design(quantity=0, item_name="Clock")

        with pytest.raises(InsufficientStockError) as exc_info:
            await stock_service.reserve_stock([
                {"design_id": first["id"], "quantity": 2},
                {"design_id": second["id"], "quantity": 1},
            ])

        assert {s["design_id"] for s in exc_info.value.shortages} == {first["id"], second["id"]}
        assert exc_info.value.status_code == 409

    @pytest.mark.asyncio
    async def test_unknown_design_is_not_found(self, stock_service: StockReservationService) -> None:
        with pytest.raises(NotFoundError):
            await stock_service.reserve_stock([{"design_id": "missing", "quantity": 1}])

    @pytest.mark.asyncio
    async def test_rolls_back_earlier_lines_on_failure(
        self, stock_service: StockReservationService, fake_db: FakeSupabase, make_design: Any
    ) -> None:
        """If the second line is sold out mid-reservation the first is put back."""
        first = make_design(quantity=5)
        second = make_design(quantity=5)

        def sell_out_second(table: str, changes: dict[str, Any]) -> None:
            # Another buyer empties the second design just before our update
            row = fake_db.get("designs", id=second["id"])
            if table == "designs" and row["quantity"] == 5 and changes.get("quantity") == 2:
                row["quantity"] = 0

        fake_db.update_hooks.append(sell_out_second)

        with pytest.raises(InsufficientStockError):
            await stock_service.reserve_stock([
                {"design_id": first["id"], "quantity": 2},
                {"design_id": second["id"], "quantity": 3},
            ])

        assert fake_db.get("designs", id=first["id"])["quantity"] == 5
        assert fake_db.get("designs", id=second["id"])["quantity"] == 0

    @pytest.mark.asyncio
    async def test_retries_after_concurrent_change(
        self, stock_service: StockReservationService, fake_db: FakeSupabase, make_design: Any
    ) -> None:
        """A lost compare-and-set is retried against the fresh quantity."""
        design = make_design(quantity=10)
        interfered = []

        def bump_once(table: str, changes: dict[str, Any]) -> None:
            if table == "designs" and not interfered:
                interfered.append(True)
                fake_db.get("designs", id=design["id"])["quantity"] = 9

        fake_db.update_hooks.append(bump_once)

        await stock_service.reserve_stock([{"design_id": design["id"], "quantity": 4}])

        assert fake_db.get("designs", id=design["id"])["quantity"] == 5

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(
        self, stock_service: StockReservationService, fake_db: FakeSupabase, make_design: Any
    ) -> None:
        """Endless contention surfaces as a conflict."""
        design = make_design(quantity=10)

        def always_interfere(table: str, changes: dict[str, Any]) -> None:
            row = fake_db.get("designs", id=design["id"])
            row["quantity"] = row["quantity"] + 1

        fake_db.update_hooks.append(always_interfere)

        with pytest.raises(ConflictError, match="changing quickly"):
            await stock_service.reserve_stock([{"design_id": design["id"], "quantity": 1}])

    @pytest.mark.asyncio
    async def test_last_unit_goes_to_one_buyer(
        self, stock_service: StockReservationService, fake_db: FakeSupabase, make_design: Any
    ) -> None:
        """Two concurrent reservations of the last unit: exactly one wins."""
        design = make_design(quantity=1)
        request = [{"design_id": design["id"], "quantity": 1}]

        results = await asyncio.gather(
            stock_service.reserve_stock(request),
            stock_service.reserve_stock(request),
            return_exceptions=True,
        )

        winners = [r for r in results if not isinstance(r, Exception)]
        losers = [r for r in results if isinstance(r, InsufficientStockError)]
        assert len(winners) == 1
        assert len(losers) == 1
        assert fake_db.get("designs", id=design["id"])["quantity"] == 0


class TestReleaseAndEvents:
    """Tests for releasing stock and the events each change publishes."""

    @pytest.mark.asyncio
    async def test_release_order_items_restores_quantity(
        self, stock_service: StockReservationService, fake_db: FakeSupabase, make_design: Any
    ) -> None:
        design = make_design(quantity=4)

        failed = await stock_service.release_order_items([
            {"design_id": design["id"], "quantity": 2, "item_name": "Teak Wall Panel"},
            {"design_id": design["id"], "quantity": 1, "item_name": "Teak Wall Panel"},
        ])

        assert failed == []
        assert fake_db.get("designs", id=design["id"])["quantity"] == 7

    @pytest.mark.asyncio
    async def test_every_change_is_published(
        self,
        stock_service: StockReservationService,
        broadcaster: EventBroadcaster,
        make_design: Any,
    ) -> None:
        """Subscribers see the new quantity after a reservation."""
        design = make_design(quantity=2)
        subscriber = broadcaster.subscribe()

        await stock_service.reserve_stock([{"design_id": design["id"], "quantity": 2}])

        event = subscriber.queue.get_nowait()
        assert event["type"] == "designUpdated"
        assert event["data"]["designId"] == design["id"]
        assert event["data"]["quantity"] == 0

    @pytest.mark.asyncio
    async def test_release_continues_past_a_failed_line(
        self, stock_service: StockReservationService, fake_db: FakeSupabase, make_design: Any
    ) -> None:
        """A design that cannot be restored does not stop the remaining lines."""
        design = make_design(quantity=4)

        failed = await stock_service.release_stock([
            ReservationLine("deleted-design", 2, "Old Clock"),
            ReservationLine(design["id"], 1, "Teak Wall Panel"),
        ])

        assert [line.design_id for line in failed] == ["deleted-design"]
        assert fake_db.get("designs", id=design["id"])["quantity"] == 5

    @pytest.mark.asyncio
    async def test_rollback_failure_keeps_original_error(
        self, stock_service: StockReservationService, fake_db: FakeSupabase, make_design: Any
    ) -> None:
        """If putting back the first line fails, the caller still sees the shortage."""
        first = make_design(quantity=5)
        second = make_design(quantity=5)

        def sell_out_second_then_remove_first(table: str, changes: dict[str, Any]) -> None:
            if table != "designs":
                return
            if changes.get("quantity") == 2:
                fake_db.get("designs", id=second["id"])["quantity"] = 0
                fake_db.tables["designs"] = [row for row in fake_db.rows("designs") if row["id"] != first["id"]]

        fake_db.update_hooks.append(sell_out_second_then_remove_first)

        with pytest.raises(InsufficientStockError):
            await stock_service.reserve_stock([
                {"design_id": first["id"], "quantity": 2},
                {"design_id": second["id"], "quantity": 3},
            ])


class TestCompareAndSet:
    """Tests for the shared compare_and_set loop."""

    @pytest.mark.asyncio
    async def test_returns_winning_attempt(self) -> None:
        outcomes = iter([StockContentionError("a"), StockContentionError("a"), "done"])

        def operation() -> str:
            outcome = next(outcomes)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

        assert await compare_and_set(operation, max_attempts=3) == "done"

    @pytest.mark.asyncio
    async def test_reraises_after_last_attempt(self) -> None:
        calls = []

        def operation() -> None:
            calls.append(1)
            raise StockContentionError("a")

        with pytest.raises(StockContentionError):
            await compare_and_set(operation, max_attempts=2)
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_other_errors_are_not_retried(self) -> None:
        calls = []

        def operation() -> None:
            calls.append(1)
            raise NotFoundError("Design not found: x")

        with pytest.raises(NotFoundError):
            await compare_and_set(operation, max_attempts=5)
        assert len(calls) == 1
