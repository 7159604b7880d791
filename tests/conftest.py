"""Shared fixtures: an in-memory gateway and recording notification sink."""

from datetime import datetime, timezone
from typing import Any, Callable, Optional

import pytest

from inventory_sync.exceptions import AuthRequiredError, BackendError, NotFoundError
from inventory_sync.models import AuthStatus, ChangeEvent, ChangeKind, Notification, Product
from inventory_sync.services import NotificationService, ProductSyncService
from inventory_sync.storage import LocalProductStore


def product_row(**overrides: Any) -> dict[str, Any]:
    """A products table row with sensible defaults."""
    row = {
        "id": "p1",
        "name": "Cotton Kurta",
        "brand": "Vivaas",
        "category": "Apparel",
        "item_number": "VK-001",
        "price": 799.0,
        "stock": 10,
        "discount_percentage": 10,
        "low_stock_threshold": 5,
        "image": "",
        "description": "Handloom cotton",
        "size": "M",
        "color": "Blue",
        "created_at": "2026-01-01T00:00:00+00:00",
        "updated_at": "2026-01-01T00:00:00+00:00",
    }
    row.update(overrides)
    return row


def make_product(**overrides: Any) -> Product:
    """A Product with sensible defaults."""
    fields = {
        "id": "p1",
        "name": "Cotton Kurta",
        "brand": "Vivaas",
        "category": "Apparel",
        "item_number": "VK-001",
        "price": 799.0,
        "stock": 10,
    }
    fields.update(overrides)
    return Product(**fields)


class FakeSubscription:
    def __init__(self):
        self.is_active = True
        self.unsubscribe_calls = 0

    async def unsubscribe(self) -> None:
        self.unsubscribe_calls += 1
        self.is_active = False


class FakeGateway:
    """In-memory stand-in for SupabaseProductGateway.

    Writes require a session (row-level security). Failure injection:
    - expired_token_failures: next N remote calls fail with an expired JWT
    - read_error / write_error: every read / write fails with this error
    - subscribe_error: opening a realtime channel fails with this error
    - can_refresh: whether refresh_session() yields a session
    """

    def __init__(self, rows: Optional[list[dict[str, Any]]] = None, authenticated: bool = True):
        self.rows: dict[str, dict[str, Any]] = {str(r["id"]): dict(r) for r in rows or []}
        self.authenticated = authenticated
        self.can_refresh = False
        self.expired_token_failures = 0
        self.read_error: Optional[BackendError] = None
        self.write_error: Optional[BackendError] = None
        self.subscribe_error: Optional[BackendError] = None
        self.valid_credentials = ("dev@example.com", "dev-password")
        self.calls: list[str] = []
        self.refresh_calls = 0
        self.sign_in_calls: list[tuple[str, str]] = []
        self.subscriptions: list[FakeSubscription] = []
        self._on_event: Optional[Callable[[ChangeEvent], None]] = None
        self._next_id = 100

    @property
    def active_subscriptions(self) -> list[FakeSubscription]:
        return [s for s in self.subscriptions if s.is_active]

    async def _remote(self, name: str, write: bool = False) -> None:
        self.calls.append(name)
        if self.expired_token_failures > 0:
            self.expired_token_failures -= 1
            raise BackendError("JWT expired", code="PGRST301")
        if write and self.write_error is not None:
            raise self.write_error
        if not write and self.read_error is not None:
            raise self.read_error
        if write and not self.authenticated:
            raise BackendError("new row violates row-level security policy", code="42501")

    async def fetch_all(self) -> list[dict[str, Any]]:
        await self._remote("fetch_all")
        return [dict(r) for r in self.rows.values()]

    async def fetch_by_id(self, product_id: str) -> dict[str, Any]:
        await self._remote("fetch_by_id")
        if product_id not in self.rows:
            raise NotFoundError(f"Product {product_id} not found")
        return dict(self.rows[product_id])

    async def find_by_item_number(self, item_number: str) -> Optional[dict[str, Any]]:
        await self._remote("find_by_item_number")
        for row in self.rows.values():
            if row["item_number"] == item_number:
                return dict(row)
        return None

    async def insert(self, record: dict[str, Any]) -> dict[str, Any]:
        await self._remote("insert", write=True)
        if any(r["item_number"] == record["item_number"] for r in self.rows.values()):
            raise BackendError(
                'duplicate key value violates unique constraint "products_item_number_key"',
                code="23505",
            )
        now = datetime.now(timezone.utc).isoformat()
        product_id = str(self._next_id)
        self._next_id += 1
        row = {**record, "id": product_id, "created_at": now, "updated_at": now}
        self.rows[product_id] = row
        return dict(row)

    async def update(self, product_id: str, partial_record: dict[str, Any]) -> dict[str, Any]:
        await self._remote("update", write=True)
        if product_id not in self.rows:
            raise NotFoundError(f"Product {product_id} not found for update")
        self.rows[product_id].update(partial_record)
        return dict(self.rows[product_id])

    async def delete(self, product_id: str) -> None:
        await self._remote("delete", write=True)
        self.rows.pop(product_id, None)

    async def get_session(self) -> Optional[dict[str, Any]]:
        return {"user_id": "user-1"} if self.authenticated else None

    async def get_auth_status(self) -> AuthStatus:
        if self.authenticated:
            return AuthStatus(is_authenticated=True, user_id="user-1")
        return AuthStatus(is_authenticated=False)

    async def refresh_session(self) -> Optional[dict[str, Any]]:
        self.refresh_calls += 1
        if self.can_refresh:
            self.authenticated = True
            return {"user_id": "user-1"}
        return None

    async def sign_in_with_password(self, email: str, password: str) -> AuthStatus:
        self.sign_in_calls.append((email, password))
        if (email, password) != self.valid_credentials:
            raise AuthRequiredError("Login failed: Invalid login credentials")
        self.authenticated = True
        return AuthStatus(is_authenticated=True, user_id="user-1")

    async def subscribe_to_table_changes(self, on_event, table=None) -> FakeSubscription:
        if self.subscribe_error is not None:
            raise self.subscribe_error
        subscription = FakeSubscription()
        self.subscriptions.append(subscription)
        self._on_event = on_event
        return subscription

    def push(self, kind: ChangeKind, new=None, old=None) -> None:
        """Deliver a server-side change to the current subscriber."""
        assert self._on_event is not None, "nobody subscribed"
        self._on_event(ChangeEvent(kind=kind, new=new, old=old))


@pytest.fixture
def gateway():
    """Authenticated gateway holding one product with stock 10."""
    return FakeGateway(rows=[product_row()])


@pytest.fixture
def notifications() -> list[Notification]:
    """Notifications emitted during the test, in order."""
    return []


@pytest.fixture
def notification_service(notifications):
    return NotificationService(sink=notifications.append)


@pytest.fixture
def store():
    return LocalProductStore()


@pytest.fixture
def service(gateway, store, notification_service):
    return ProductSyncService(gateway, store=store, notifications=notification_service)
