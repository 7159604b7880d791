"""FastAPI application setup."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from inventory_sync.api.controller import products_router
from inventory_sync.clients import SupabaseProductGateway
from inventory_sync.config import get_config
from inventory_sync.exceptions import (
    AuthRequiredError,
    BackendError,
    DuplicateKeyError,
    InsufficientStockError,
    InventorySyncError,
    NotFoundError,
    ValidationError,
)
from inventory_sync.hooks import ProductsSync, create_products_sync

logger = logging.getLogger(__name__)

_STATUS_CODES = {
    ValidationError: 422,
    DuplicateKeyError: 409,
    InsufficientStockError: 409,
    AuthRequiredError: 401,
    NotFoundError: 404,
    BackendError: 502,
}


async def inventory_error_handler(request: Request, exc: InventorySyncError) -> JSONResponse:
    """Map inventory errors to HTTP responses."""
    status_code = next(
        (code for error_type, code in _STATUS_CODES.items() if isinstance(exc, error_type)),
        500,
    )
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(
        status_code=status_code,
        content={"error": type(exc).__name__, "detail": str(exc)},
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Connect to Supabase and run the products sync for the app's lifetime."""
    if getattr(app.state, "products_sync", None) is not None:
        yield
        return

    config = get_config()
    logging.basicConfig(level=config.logging.level)

    async with SupabaseProductGateway.from_config(config.supabase) as gateway:
        products_sync = create_products_sync(config, gateway=gateway)
        async with products_sync:
            app.state.products_sync = products_sync
            yield


def create_app(products_sync: Optional[ProductsSync] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        products_sync: Pre-built, already started sync. Built from configuration
            on startup when omitted.
    """
    app = FastAPI(
        title="Inventory Sync API",
        description="Products, stock and realtime inventory state",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.products_sync = products_sync

    # CORS for the billing frontend
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # In production: specify the billing frontend origin
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(InventorySyncError, inventory_error_handler)

    # Include routers
    app.include_router(products_router)

    @app.get("/health")
    async def health_check() -> dict:
        """Health check endpoint."""
        return {"status": "healthy"}

    return app


app = create_app()
