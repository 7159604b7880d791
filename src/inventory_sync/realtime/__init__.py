"""Realtime feed module."""

from inventory_sync.realtime.product_feed import (
    ChangeListener,
    ProductChange,
    ProductRealtimeFeed,
    merge_change,
)

__all__ = [
    "ChangeListener",
    "ProductChange",
    "ProductRealtimeFeed",
    "merge_change",
]
