"""Tests for the products HTTP and WebSocket API."""

import asyncio

import pytest
from conftest import FakeGateway, product_row
from fastapi import WebSocketDisconnect
from fastapi.testclient import TestClient

from inventory_sync.api import create_app
from inventory_sync.api.controller.products_controller import websocket_products
from inventory_sync.exceptions import BackendError
from inventory_sync.hooks import ProductsSync
from inventory_sync.models import NotificationKind
from inventory_sync.realtime import ProductRealtimeFeed
from inventory_sync.services import NotificationService, ProductSyncService

NEW_PRODUCT = {
    "name": "Silk Saree",
    "brand": "Vivaas",
    "category": "Apparel",
    "item_number": "VS-100",
    "price": 2499.0,
    "stock": 8,
}


@pytest.fixture
def api_gateway():
    return FakeGateway(rows=[product_row(stock=5)])


@pytest.fixture
def products_sync(api_gateway, notifications):
    notification_service = NotificationService(sink=notifications.append)
    service = ProductSyncService(api_gateway, notifications=notification_service)
    feed = ProductRealtimeFeed(api_gateway, notifications=notification_service, store=service.store)
    sync = ProductsSync(service, feed)
    asyncio.run(sync.start())
    return sync


@pytest.fixture
def client(products_sync):
    return TestClient(create_app(products_sync=products_sync))


class TestProductsApi:
    """Test the REST endpoints and their error mapping."""

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy"}

    def test_list_products(self, client):
        response = client.get("/products")

        assert response.status_code == 200
        body = response.json()
        assert body[0]["item_number"] == "VK-001"
        assert body[0]["stock_status"] == "low-stock"

    def test_get_product_not_found(self, client):
        response = client.get("/products/ghost")

        assert response.status_code == 404
        assert response.json()["error"] == "NotFoundError"

    def test_stock_status(self, client):
        body = client.get("/products/p1/status").json()

        assert body == {"product_id": "p1", "stock": 5, "stock_status": "low-stock"}

    def test_add_product(self, client, api_gateway):
        response = client.post("/products", json=NEW_PRODUCT)

        assert response.status_code == 201
        assert response.json()["id"] in api_gateway.rows
        assert response.json()["low_stock_threshold"] == 5

    def test_add_duplicate(self, client, api_gateway):
        response = client.post("/products", json={**NEW_PRODUCT, "item_number": "VK-001"})

        assert response.status_code == 409
        assert response.json()["error"] == "DuplicateKeyError"
        assert len(api_gateway.rows) == 1

    def test_add_invalid(self, client, api_gateway):
        response = client.post("/products", json={**NEW_PRODUCT, "price": 0})

        assert response.status_code == 422
        assert api_gateway.calls == ["fetch_all"]

    @pytest.mark.parametrize("price", ["NaN", "Infinity", "-Infinity"])
    def test_add_non_finite_price(self, client, api_gateway, price):
        response = client.post("/products", json={**NEW_PRODUCT, "price": price})

        assert response.status_code == 422
        assert response.json()["error"] == "ValidationError"
        assert len(api_gateway.rows) == 1

    def test_add_unauthenticated(self, client, api_gateway):
        api_gateway.authenticated = False

        response = client.post("/products", json=NEW_PRODUCT)

        assert response.status_code == 401

    def test_update_product(self, client, api_gateway):
        payload = {k: v for k, v in product_row(name="Linen Kurta").items()
                   if k not in ("id", "updated_at")}

        response = client.put("/products/p1", json=payload)

        assert response.status_code == 200
        assert api_gateway.rows["p1"]["name"] == "Linen Kurta"

    def test_decrease_stock(self, client, notifications):
        response = client.post("/products/p1/decrease-stock", json={"quantity": 2})

        assert response.status_code == 200
        assert response.json()["stock"] == 3
        assert notifications[-1].kind is NotificationKind.LOW_STOCK

    def test_decrease_stock_insufficient(self, client, api_gateway):
        response = client.post("/products/p1/decrease-stock", json={"quantity": 6})

        assert response.status_code == 409
        assert response.json()["error"] == "InsufficientStockError"
        assert api_gateway.rows["p1"]["stock"] == 5

    def test_decrease_stock_rejects_zero(self, client):
        assert client.post("/products/p1/decrease-stock", json={"quantity": 0}).status_code == 422

    def test_delete_product(self, client, api_gateway):
        response = client.delete("/products/p1")

        assert response.status_code == 204
        assert "p1" not in api_gateway.rows

    def test_backend_failure(self, client, api_gateway):
        api_gateway.write_error = BackendError("internal error", code="XX000")

        assert client.delete("/products/p1").status_code == 502


class TestProductsWebSocket:
    def test_initial_state(self, client):
        with client.websocket_connect("/products/ws") as websocket:
            state = websocket.receive_json()

        assert state["is_loading"] is False
        assert state["is_authenticated"] is True
        assert state["error"] is None
        assert [p["id"] for p in state["products"]] == ["p1"]


class StubWebSocket:
    """Just enough of a WebSocket to drive the endpoint on the test's event loop."""

    def __init__(self, fail_on_send: int = 0):
        self.sent = []
        self.fail_on_send = fail_on_send
        self.closed = asyncio.Event()

    async def accept(self):
        pass

    async def send_json(self, data):
        if self.fail_on_send and len(self.sent) + 1 == self.fail_on_send:
            raise RuntimeError("connection lost")
        self.sent.append(data)

    async def receive_text(self):
        await self.closed.wait()
        raise WebSocketDisconnect(code=1000)


class TestWebSocketStream:
    """Test the state stream's lifecycle."""

    @pytest.fixture
    def sync(self, gateway, notification_service, store):
        service = ProductSyncService(gateway, store=store, notifications=notification_service)
        feed = ProductRealtimeFeed(gateway, notifications=notification_service, store=store)
        return ProductsSync(service, feed)

    @pytest.mark.asyncio
    async def test_state_changes_are_streamed_until_disconnect(self, sync):
        websocket = StubWebSocket()
        endpoint = asyncio.create_task(websocket_products(websocket, sync))
        await asyncio.sleep(0)

        await sync.start()
        await asyncio.sleep(0.01)
        websocket.closed.set()
        await asyncio.wait_for(endpoint, timeout=1)

        assert websocket.sent[0]["is_authenticated"] is None
        assert websocket.sent[-1]["is_loading"] is False
        assert sync._listeners == []

    @pytest.mark.asyncio
    async def test_failed_send_ends_the_stream(self, sync):
        """A dead sender closes the stream instead of leaving the receiver running."""
        websocket = StubWebSocket(fail_on_send=2)
        endpoint = asyncio.create_task(websocket_products(websocket, sync))
        await asyncio.sleep(0)

        await sync.start()
        await asyncio.wait_for(endpoint, timeout=1)

        assert len(websocket.sent) == 1
        assert not websocket.closed.is_set()
        assert sync._listeners == []
