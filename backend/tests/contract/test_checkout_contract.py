"""Contract tests for the checkout proxy and health endpoints.

Cielo is replaced by an httpx.MockTransport; its status code and body
must reach the caller unchanged.
"""

from typing import Any, Callable, Generator

import httpx
import pytest
from fastapi.testclient import TestClient
from starlette.status import (
    HTTP_200_OK,
    HTTP_201_CREATED,
    HTTP_400_BAD_REQUEST,
    HTTP_500_INTERNAL_SERVER_ERROR,
)

from relay_api.dependencies import get_checkout_client
from relay_api.main import app
from relay_shared.services.cielo_checkout import CieloCheckoutClient

CART = {"orderNumber": "PED1", "itens": [{"nome": "Pizza", "preco": 30, "quantidade": 1}]}


@pytest.fixture
def use_gateway() -> Generator[Callable[..., list[httpx.Request]], None, None]:
    """Route the checkout client to a mock Cielo handler.

    Returns a function taking the handler (and optional merchant id) and
    returning the list of requests the mock received.
    """

    def install(
        handler: Callable[[httpx.Request], httpx.Response], merchant_id: str | None = "m-1"
    ) -> list[httpx.Request]:
        seen: list[httpx.Request] = []

        def recording(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return handler(request)

        gateway = CieloCheckoutClient(
            merchant_id=merchant_id,
            base_url="https://cielo.test",
            transport=httpx.MockTransport(recording),
        )
        app.dependency_overrides[get_checkout_client] = lambda: gateway
        return seen

    yield install
    app.dependency_overrides.clear()


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


class TestCheckout:
    def test_created_order_relayed(
        self, client: TestClient, use_gateway: Callable[..., list[httpx.Request]]
    ) -> None:
        seen = use_gateway(
            lambda request: httpx.Response(201, json={"settings": {"checkoutUrl": "https://p"}})
        )

        response = client.post("/api/checkout", json=CART)

        assert response.status_code == HTTP_201_CREATED
        assert response.json() == {"settings": {"checkoutUrl": "https://p"}}
        assert len(seen) == 1
        assert seen[0].headers["MerchantId"] == "m-1"

    def test_gateway_error_relayed(
        self, client: TestClient, use_gateway: Callable[..., list[httpx.Request]]
    ) -> None:
        use_gateway(lambda request: httpx.Response(400, json={"message": "invalid cart"}))

        response = client.post("/api/checkout", json=CART)

        assert response.status_code == HTTP_400_BAD_REQUEST
        assert response.json() == {"message": "invalid cart"}

    def test_gateway_text_error_wrapped(
        self, client: TestClient, use_gateway: Callable[..., list[httpx.Request]]
    ) -> None:
        use_gateway(lambda request: httpx.Response(422, text="unprocessable"))

        response = client.post("/api/checkout", json=CART)

        assert response.status_code == 422
        assert response.json() == {"error": "Cielo error", "raw": "unprocessable"}

    def test_invalid_price_rejected_before_gateway(
        self, client: TestClient, use_gateway: Callable[..., list[httpx.Request]]
    ) -> None:
        seen = use_gateway(lambda request: httpx.Response(201, json={}))

        response = client.post("/api/checkout", json={"itens": [{"nome": "X", "preco": 0}]})

        assert response.status_code == HTTP_400_BAD_REQUEST
        body = response.json()
        assert body["success"] is False
        assert body["error_code"] == "ERR_CHECKOUT_002"
        assert seen == []

    def test_missing_merchant(
        self,
        client: TestClient,
        use_gateway: Callable[..., list[httpx.Request]],
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.delenv("CIELO_MERCHANT_ID", raising=False)
        seen = use_gateway(lambda request: httpx.Response(201, json={}), merchant_id=None)

        response = client.post("/api/checkout", json=CART)

        assert response.status_code == HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json()["error_code"] == "ERR_CHECKOUT_001"
        assert seen == []

    def test_transport_failure(
        self, client: TestClient, use_gateway: Callable[..., list[httpx.Request]]
    ) -> None:
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        use_gateway(refuse)

        response = client.post("/api/checkout", json=CART)

        assert response.status_code == HTTP_500_INTERNAL_SERVER_ERROR
        body = response.json()
        assert body["error_code"] == "ERR_CHECKOUT_003"
        assert body["details"] == {"message": "connection refused"}


class TestHealth:
    def test_root_health(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == HTTP_200_OK
        assert response.json() == {"ok": True}

    def test_checkout_health_reports_base(
        self, client: TestClient, use_gateway: Callable[..., list[httpx.Request]]
    ) -> None:
        use_gateway(lambda request: httpx.Response(200))

        response = client.get("/api/checkout/health")

        assert response.json() == {"ok": True, "base": "https://cielo.test"}
