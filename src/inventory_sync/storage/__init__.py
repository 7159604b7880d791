"""Local storage modules."""

from inventory_sync.storage.local_product_store import LocalProductStore

__all__ = ["LocalProductStore"]
