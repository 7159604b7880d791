"""Notification service for user-facing inventory messages.

Builds the messages shown to cashiers and inventory staff and hands them to a
sink (a toast, a websocket, a log). The default sink writes to the log.
"""

import logging
from typing import Callable, Optional

from ..models import Notification, NotificationKind, Product, Severity

logger = logging.getLogger(__name__)

NotificationSink = Callable[[Notification], None]

_LOG_LEVELS = {
    Severity.INFO: logging.INFO,
    Severity.WARNING: logging.WARNING,
    Severity.ERROR: logging.ERROR,
}


def log_sink(notification: Notification) -> None:
    """Default sink: log the notification at a level matching its severity."""
    logger.log(
        _LOG_LEVELS[notification.severity],
        f"[{notification.kind.value}] {notification.title}: {notification.description}",
    )


class NotificationService:
    """Emits inventory notifications to a pluggable sink."""

    def __init__(self, sink: Optional[NotificationSink] = None):
        self._sink = sink or log_sink

    def notify(self, notification: Notification) -> None:
        self._sink(notification)

    def _emit(
        self,
        kind: NotificationKind,
        title: str,
        description: str,
        severity: Severity = Severity.INFO,
    ) -> None:
        self.notify(Notification(kind=kind, title=title, description=description, severity=severity))

    def low_stock(self, product: Product) -> None:
        self._emit(
            NotificationKind.LOW_STOCK,
            "Low Stock Alert",
            f"{product.name} is running low ({product.stock} left).",
            Severity.WARNING,
        )

    def out_of_stock(self, product: Product) -> None:
        self._emit(
            NotificationKind.OUT_OF_STOCK,
            "Out of Stock",
            f"{product.name} is now out of stock.",
            Severity.ERROR,
        )

    def insufficient_stock(self, product: Product, requested: int) -> None:
        self._emit(
            NotificationKind.INSUFFICIENT_STOCK,
            "Insufficient Stock",
            f"Only {product.stock} units of {product.name} available, {requested} requested.",
            Severity.ERROR,
        )

    def product_added(self, product: Product) -> None:
        self._emit(
            NotificationKind.PRODUCT_ADDED,
            "Product Added",
            f"{product.name} has been added to the inventory.",
        )

    def product_removed(self, product: Optional[Product] = None) -> None:
        name = product.name if product else "A product"
        self._emit(
            NotificationKind.PRODUCT_REMOVED,
            "Product Removed",
            f"{name} has been removed from the inventory.",
        )

    def auth_required(self, action: str) -> None:
        self._emit(
            NotificationKind.AUTH_REQUIRED,
            "Please Log In",
            f"You need to be logged in to {action}.",
            Severity.ERROR,
        )

    def duplicate_item(self, item_number: str) -> None:
        self._emit(
            NotificationKind.DUPLICATE_ITEM,
            "Duplicate Item",
            f"A product with item number {item_number} already exists.",
            Severity.ERROR,
        )

    def validation_failed(self, message: str) -> None:
        self._emit(NotificationKind.VALIDATION, "Invalid Product", message, Severity.ERROR)

    def error(self, description: str) -> None:
        self._emit(NotificationKind.ERROR, "Error", description, Severity.ERROR)
