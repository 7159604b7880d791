"""In-memory fallback cache of product records.

Used only when the remote backend is unreachable or the session is missing.
Every operation completes synchronously, so it is safe to share between
coroutines on one event loop without a lock. Not thread-safe.
"""

import logging
from typing import Iterable, Optional

from ..models import Product

logger = logging.getLogger(__name__)


class LocalProductStore:
    """Ordered, process-lifetime product cache with no eviction."""

    def __init__(self, products: Optional[Iterable[Product]] = None):
        """Initialize the store.

        Args:
            products: Optional seed records, e.g. sample data for offline use.
        """
        self._products: list[Product] = list(products or [])

    def list(self) -> list[Product]:
        """Return a snapshot copy of all products."""
        return list(self._products)

    def get_by_id(self, product_id: str) -> Optional[Product]:
        """Return the product with this id, or None if absent."""
        for product in self._products:
            if product.id == product_id:
                return product
        return None

    def replace_all(self, products: Iterable[Product]) -> None:
        """Swap the whole backing collection in one step."""
        self._products = list(products)
        logger.debug(f"Local product store replaced with {len(self._products)} products")

    def add(self, product: Product) -> None:
        """Append a product. Uniqueness is enforced by the service, not here."""
        self._products.append(product)

    def update(self, product: Product) -> None:
        """Replace the entry with the same id. No-op if absent."""
        for index, existing in enumerate(self._products):
            if existing.id == product.id:
                self._products[index] = product
                return

    def remove(self, product_id: str) -> None:
        """Remove the entry with this id. No-op if absent."""
        self._products = [p for p in self._products if p.id != product_id]

    def __len__(self) -> int:
        return len(self._products)

    def __contains__(self, product_id: object) -> bool:
        return any(p.id == product_id for p in self._products)
