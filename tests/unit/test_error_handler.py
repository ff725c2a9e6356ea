"""Unit tests for the error envelope middleware."""

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.testclient import TestClient
from pydantic import BaseModel
from starlette.middleware.base import BaseHTTPMiddleware

from woodart.api.middleware.error_handler import (
    ConflictError,
    InsufficientStockError,
    NotFoundError,
    error_handler_middleware,
    request_validation_exception_handler,
)


class Payload(BaseModel):
    quantity: int


def build_app() -> FastAPI:
    app = FastAPI()
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.add_middleware(BaseHTTPMiddleware, dispatch=error_handler_middleware)

    @app.get("/missing")
    async def missing() -> None:
        raise NotFoundError("Order WAG-20260101-AAAAAA not found")

    @app.get("/conflict")
    async def conflict() -> None:
        raise ConflictError("Order is already delivered")

    @app.get("/sold-out")
    async def sold_out() -> None:
        raise InsufficientStockError([
            {"design_id": "d1", "item_name": "Teak Wall Panel", "requested": 3, "available": 1}
        ])

    @app.get("/boom")
    async def boom() -> None:
        raise RuntimeError("database exploded")

    @app.post("/validate")
    async def validate(payload: Payload) -> dict:
        return {"quantity": payload.quantity}

    return app


client = TestClient(build_app(), raise_server_exceptions=False)


class TestErrorEnvelope:
    """Every failure is rendered as {success: false, error, message}."""

    def test_not_found(self) -> None:
        response = client.get("/missing", headers={"X-Request-ID": "req-1"})

        assert response.status_code == 404
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "not_found"
        assert body["message"] == "Order WAG-20260101-AAAAAA not found"
        assert body["request_id"] == "req-1"

    def test_conflict(self) -> None:
        response = client.get("/conflict")

        assert response.status_code == 409
        assert response.json()["error"] == "conflict"

    def test_insufficient_stock_lists_shortages(self) -> None:
        response = client.get("/sold-out")

        assert response.status_code == 409
        body = response.json()
        assert body["error"] == "insufficient_stock"
        assert "Teak Wall Panel (requested 3, available 1)" in body["message"]
        assert body["details"][0]["loc"] == ["items", "d1"]

    def test_unexpected_error_hides_details(self) -> None:
        response = client.get("/boom")

        assert response.status_code == 500
        assert response.json()["error"] == "internal_error"
        assert "exploded" not in response.json()["message"]

    def test_request_validation(self) -> None:
        response = client.post("/validate", json={"quantity": "many"})

        assert response.status_code == 422
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "validation_error"
        assert body["message"].startswith("quantity:")
