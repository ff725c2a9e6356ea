"""Pytest configuration and fixtures."""

import os
from collections.abc import Generator
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

# Set test environment variables before importing application modules
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_SECRET_KEY", "test-secret-key")
os.environ.setdefault("SUPABASE_SIGNING_KEY_JWK", "")
os.environ.setdefault("RESEND_API_KEY", "")

from fakes import FakeSupabase  # noqa: E402
from woodart.core.config import Settings, get_settings  # noqa: E402
from woodart.core.events import BroadcasterConfig, EventBroadcaster  # noqa: E402
from woodart.services.bank_slip_service import BankSlipService  # noqa: E402
from woodart.services.cart_service import CartService  # noqa: E402
from woodart.services.custom_order_service import CustomOrderService  # noqa: E402
from woodart.services.delivery_service import DeliveryService  # noqa: E402
from woodart.services.design_service import DesignService  # noqa: E402
from woodart.services.email_service import EmailService  # noqa: E402
from woodart.services.inventory_service import InventoryService  # noqa: E402
from woodart.services.ledger_service import LedgerService  # noqa: E402
from woodart.services.order_service import OrderService  # noqa: E402
from woodart.services.stock_service import StockReservationService  # noqa: E402
from woodart.services.storage_service import StorageService  # noqa: E402

DESIGNER_EMAIL = "carver@example.com"
CUSTOMER_EMAIL = "buyer@example.com"


@pytest.fixture(scope="session")
def test_settings() -> Generator[Settings, None, None]:
    """Provide test settings with cleared cache.

    Yields:
        Settings: Test configuration settings.
    """
    get_settings.cache_clear()
    settings = get_settings()
    yield settings
    get_settings.cache_clear()


@pytest.fixture
def fake_db() -> FakeSupabase:
    """Provide an empty in-memory Supabase stand-in."""
    return FakeSupabase()


@pytest.fixture
def broadcaster() -> EventBroadcaster:
    """Provide a broadcaster with a short keep-alive interval."""
    return EventBroadcaster(BroadcasterConfig(queue_size=10, keepalive_seconds=0.05))


@pytest.fixture
def email_service() -> MagicMock:
    """Provide an email service whose send methods are AsyncMocks."""
    return MagicMock(spec=EmailService)


@pytest.fixture
def stock_service(fake_db: FakeSupabase, broadcaster: EventBroadcaster, test_settings: Settings) -> StockReservationService:
    return StockReservationService(fake_db, broadcaster, test_settings)


@pytest.fixture
def ledger_service(fake_db: FakeSupabase, email_service: MagicMock, test_settings: Settings) -> LedgerService:
    return LedgerService(fake_db, email_service, test_settings)


@pytest.fixture
def cart_service(fake_db: FakeSupabase) -> CartService:
    return CartService(fake_db)


@pytest.fixture
def order_service(
    fake_db: FakeSupabase,
    stock_service: StockReservationService,
    ledger_service: LedgerService,
    cart_service: CartService,
    test_settings: Settings,
) -> OrderService:
    return OrderService(fake_db, stock_service, ledger_service, cart_service, test_settings)


@pytest.fixture
def storage_service(fake_db: FakeSupabase, test_settings: Settings) -> StorageService:
    return StorageService(fake_db, test_settings)


@pytest.fixture
def custom_order_service(
    fake_db: FakeSupabase,
    storage_service: StorageService,
    email_service: MagicMock,
    test_settings: Settings,
) -> CustomOrderService:
    return CustomOrderService(fake_db, storage_service, email_service, test_settings)


@pytest.fixture
def bank_slip_service(
    fake_db: FakeSupabase,
    order_service: OrderService,
    custom_order_service: CustomOrderService,
    storage_service: StorageService,
    email_service: MagicMock,
) -> BankSlipService:
    return BankSlipService(order_service, custom_order_service, storage_service, email_service, fake_db)


@pytest.fixture
def design_service(
    fake_db: FakeSupabase,
    stock_service: StockReservationService,
    storage_service: StorageService,
) -> DesignService:
    return DesignService(fake_db, stock_service, storage_service)


@pytest.fixture
def inventory_service(fake_db: FakeSupabase, test_settings: Settings) -> InventoryService:
    return InventoryService(fake_db, test_settings)


@pytest.fixture
def delivery_service(fake_db: FakeSupabase) -> DeliveryService:
    return DeliveryService(fake_db)


@pytest.fixture
def make_design(fake_db: FakeSupabase):
    """Factory that seeds a design listing.

    Returns:
        Callable: ``make_design(price=2000, quantity=10, **overrides)``.
    """

    def _make(price: float = 2000, quantity: int = 10, **overrides: Any) -> dict[str, Any]:
        row = {
            "designer_id": "designer-1",
            "designer_name": "Nimal Carver",
            "designer_email": DESIGNER_EMAIL,
            "item_name": "Teak Wall Panel",
            "description": "Hand-carved panel",
            "price": price,
            "quantity": quantity,
            "material": "teak",
            "board_size": "12x18",
            "board_color": "natural",
            "board_thickness": "0.75",
            "image_url": "https://storage.test/uploads/designs/panel.jpg",
            "item_code": f"ITM-{len(fake_db.rows('designs')):04d}-TEST00",
        }
        row.update(overrides)
        return fake_db.seed("designs", row)

    return _make


@pytest.fixture
def client(
    fake_db: FakeSupabase,
    broadcaster: EventBroadcaster,
    order_service: OrderService,
    ledger_service: LedgerService,
    cart_service: CartService,
    custom_order_service: CustomOrderService,
    bank_slip_service: BankSlipService,
    design_service: DesignService,
    inventory_service: InventoryService,
    delivery_service: DeliveryService,
) -> Generator[TestClient, None, None]:
    """Provide a test client wired to the in-memory services.

    Yields:
        TestClient: FastAPI test client.
    """
    from woodart.api import deps
    from woodart.core.events import get_event_broadcaster
    from woodart.main import app

    app.dependency_overrides.update({
        deps.get_order_service: lambda: order_service,
        deps.get_ledger_service: lambda: ledger_service,
        deps.get_cart_service: lambda: cart_service,
        deps.get_custom_order_service: lambda: custom_order_service,
        deps.get_bank_slip_service: lambda: bank_slip_service,
        deps.get_design_service: lambda: design_service,
        deps.get_inventory_service: lambda: inventory_service,
        deps.get_delivery_service: lambda: delivery_service,
        get_event_broadcaster: lambda: broadcaster,
    })
    healthy = AsyncMock(return_value={"healthy": True})
    with patch("woodart.api.routes.health.check_database_connection", healthy):
        with TestClient(app) as test_client:
            yield test_client
    app.dependency_overrides.clear()
