"""Data models module."""

from inventory_sync.models.auth_status import AuthStatus
from inventory_sync.models.change_event import (
    ChangeEvent,
    ChangeKind,
    change_event_from_payload,
)
from inventory_sync.models.mapping import (
    candidate_to_row,
    product_from_row,
    product_to_row,
)
from inventory_sync.models.notification import Notification, NotificationKind, Severity
from inventory_sync.models.product import (
    DEFAULT_LOW_STOCK_THRESHOLD,
    Product,
    ProductCandidate,
    StockStatus,
    get_product_stock_status,
)

__all__ = [
    "AuthStatus",
    "ChangeEvent",
    "ChangeKind",
    "DEFAULT_LOW_STOCK_THRESHOLD",
    "Notification",
    "NotificationKind",
    "Product",
    "ProductCandidate",
    "Severity",
    "StockStatus",
    "candidate_to_row",
    "change_event_from_payload",
    "get_product_stock_status",
    "product_from_row",
    "product_to_row",
]
