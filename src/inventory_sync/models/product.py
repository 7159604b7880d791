"""Product models for the inventory catalog."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

DEFAULT_LOW_STOCK_THRESHOLD = 5


class StockStatus(str, Enum):
    """Stock level of a product relative to its low-stock threshold."""

    OUT_OF_STOCK = "out-of-stock"
    LOW_STOCK = "low-stock"
    IN_STOCK = "in-stock"


@dataclass(frozen=True)
class Product:
    """A sellable catalog item as stored in the products table."""

    id: str
    name: str
    brand: str
    category: str
    item_number: str
    price: float
    stock: int
    discount_percentage: float = 0.0
    low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD
    image: str = ""
    description: str = ""
    size: Optional[str] = None
    color: Optional[str] = None
    created_at: Optional[str] = None  # ISO-8601, server assigned
    updated_at: Optional[str] = None  # ISO-8601, refreshed on every mutation


@dataclass(frozen=True)
class ProductCandidate:
    """Input for creating a product. The server assigns id and timestamps.

    Required fields may be left empty so validation can report them.
    """

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


def get_product_stock_status(product: Product) -> StockStatus:
    """Classify a product's stock level. Pure, no I/O."""
    if product.stock <= 0:
        return StockStatus.OUT_OF_STOCK
    if product.stock <= product.low_stock_threshold:
        return StockStatus.LOW_STOCK
    return StockStatus.IN_STOCK
