"""HTTP and WebSocket controller for products."""

import asyncio
import logging
from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from fastapi.requests import HTTPConnection
from pydantic import BaseModel, Field

from inventory_sync.exceptions import NotFoundError
from inventory_sync.hooks import ProductsSync, ProductsSyncState
from inventory_sync.models import Product, ProductCandidate, StockStatus, get_product_stock_status
from inventory_sync.services import ProductSyncService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/products", tags=["products"])


def get_products_sync(connection: HTTPConnection) -> ProductsSync:
    return connection.app.state.products_sync


def get_product_service(products_sync: ProductsSync = Depends(get_products_sync)) -> ProductSyncService:
    return products_sync.service


class ProductCreateRequest(BaseModel):
    """Incoming new product. Business validation happens in the service."""

    name: Optional[str] = None
    brand: Optional[str] = None
    category: Optional[str] = None
    item_number: Optional[str] = None
    price: Optional[float] = None
    stock: int = 0
    discount_percentage: float = 0.0
    low_stock_threshold: Optional[int] = None
    image: str = ""
    description: str = ""
    size: Optional[str] = None
    color: Optional[str] = None


class ProductUpdateRequest(BaseModel):
    """Full replacement of a product's stored fields."""

    name: str
    brand: str
    category: str
    item_number: str
    price: float
    stock: int
    discount_percentage: float = 0.0
    low_stock_threshold: int = 5
    image: str = ""
    description: str = ""
    size: Optional[str] = None
    color: Optional[str] = None
    created_at: Optional[str] = None


class DecreaseStockRequest(BaseModel):
    quantity: int = Field(default=1, gt=0)


class ProductResponse(BaseModel):
    """Outgoing product with its computed stock status."""

    id: str
    name: str
    brand: str
    category: str
    item_number: str
    price: float
    stock: int
    discount_percentage: float
    low_stock_threshold: int
    image: str
    description: str
    size: Optional[str] = None
    color: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    stock_status: StockStatus

    @classmethod
    def from_product(cls, product: Product) -> "ProductResponse":
        return cls(**asdict(product), stock_status=get_product_stock_status(product))


class StockStatusResponse(BaseModel):
    product_id: str
    stock: int
    stock_status: StockStatus


class SyncStateResponse(BaseModel):
    """State snapshot pushed over the WebSocket."""

    products: list[ProductResponse]
    is_loading: bool
    error: Optional[str] = None
    is_authenticated: Optional[bool] = None

    @classmethod
    def from_state(cls, state: ProductsSyncState) -> "SyncStateResponse":
        return cls(
            products=[ProductResponse.from_product(p) for p in state.products],
            is_loading=state.is_loading,
            error=state.error,
            is_authenticated=state.is_authenticated,
        )


async def _require_product(service: ProductSyncService, product_id: str) -> Product:
    product = await service.get_product(product_id)
    if product is None:
        raise NotFoundError(f"Product {product_id} not found")
    return product


@router.get("", response_model=list[ProductResponse])
async def list_products(service: ProductSyncService = Depends(get_product_service)) -> list[ProductResponse]:
    products = await service.list_products()
    return [ProductResponse.from_product(p) for p in products]


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(
    product_id: str,
    service: ProductSyncService = Depends(get_product_service),
) -> ProductResponse:
    return ProductResponse.from_product(await _require_product(service, product_id))


@router.get("/{product_id}/status", response_model=StockStatusResponse)
async def get_stock_status(
    product_id: str,
    service: ProductSyncService = Depends(get_product_service),
) -> StockStatusResponse:
    product = await _require_product(service, product_id)
    return StockStatusResponse(
        product_id=product.id,
        stock=product.stock,
        stock_status=service.get_product_stock_status(product),
    )


@router.post("", response_model=ProductResponse, status_code=201)
async def add_product(
    body: ProductCreateRequest,
    service: ProductSyncService = Depends(get_product_service),
) -> ProductResponse:
    product = await service.add_product(ProductCandidate(**body.model_dump()))
    return ProductResponse.from_product(product)


@router.put("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: str,
    body: ProductUpdateRequest,
    service: ProductSyncService = Depends(get_product_service),
) -> ProductResponse:
    product = await service.update_product(Product(id=product_id, **body.model_dump()))
    return ProductResponse.from_product(product)


@router.post("/{product_id}/decrease-stock", response_model=ProductResponse)
async def decrease_stock(
    product_id: str,
    body: DecreaseStockRequest,
    service: ProductSyncService = Depends(get_product_service),
) -> ProductResponse:
    product = await service.decrease_stock(product_id, body.quantity)
    return ProductResponse.from_product(product)


@router.delete("/{product_id}", status_code=204)
async def delete_product(
    product_id: str,
    service: ProductSyncService = Depends(get_product_service),
) -> None:
    await service.delete_product(product_id)


@router.websocket("/ws")
async def websocket_products(
    websocket: WebSocket,
    products_sync: ProductsSync = Depends(get_products_sync),
) -> None:
    """
    WebSocket endpoint streaming the products sync state.

    Protocol:
    1. Client connects to /products/ws
    2. Server sends the current state immediately
    3. Server sends a new state JSON every time products, loading, error or
       authentication change: {"products": [...], "is_loading": ..., "error": ..., "is_authenticated": ...}
    """
    await websocket.accept()
    logger.info("Products WebSocket connection accepted")

    queue: asyncio.Queue[ProductsSyncState] = asyncio.Queue()
    unsubscribe = products_sync.subscribe(queue.put_nowait)

    async def forward_states() -> None:
        while True:
            state = await queue.get()
            await websocket.send_json(SyncStateResponse.from_state(state).model_dump(mode="json"))

    async def receive_until_disconnect() -> None:
        # Incoming messages are ignored; receiving is how a disconnect is noticed
        while True:
            await websocket.receive_text()

    tasks: list[asyncio.Task] = []
    try:
        await websocket.send_json(SyncStateResponse.from_state(products_sync.state).model_dump(mode="json"))
        tasks = [
            asyncio.create_task(forward_states()),
            asyncio.create_task(receive_until_disconnect()),
        ]
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            error = task.exception()
            if isinstance(error, WebSocketDisconnect):
                logger.info("Products WebSocket connection closed by client")
            elif error is not None:
                logger.error(f"Products WebSocket stream failed: {error}")
    except WebSocketDisconnect:
        logger.info("Products WebSocket connection closed by client")
    finally:
        unsubscribe()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
