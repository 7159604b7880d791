"""View-adapter hooks."""

from inventory_sync.hooks.products_sync import (
    NOT_AUTHENTICATED_MESSAGE,
    ProductsSync,
    ProductsSyncState,
    StateListener,
    create_products_sync,
)

__all__ = [
    "NOT_AUTHENTICATED_MESSAGE",
    "ProductsSync",
    "ProductsSyncState",
    "StateListener",
    "create_products_sync",
]
