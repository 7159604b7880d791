"""API controllers."""

from inventory_sync.api.controller.products_controller import router as products_router

__all__ = ["products_router"]
