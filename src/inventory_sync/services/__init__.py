"""Service modules."""

from inventory_sync.services.notification_service import (
    NotificationService,
    NotificationSink,
    log_sink,
)
from inventory_sync.services.product_sync_service import (
    ProductSyncService,
    validate_candidate,
    validate_product,
)

__all__ = [
    "NotificationService",
    "NotificationSink",
    "ProductSyncService",
    "log_sink",
    "validate_candidate",
    "validate_product",
]
