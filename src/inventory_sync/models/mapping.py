"""Mapping between products table rows (snake_case) and domain objects.

Both the initial fetch and realtime events go through product_from_row so
there is exactly one place where a wire row becomes a Product.
"""

from typing import Any, Mapping, Optional

from inventory_sync.models.product import (
    DEFAULT_LOW_STOCK_THRESHOLD,
    Product,
    ProductCandidate,
)


def _optional_text(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def product_from_row(row: Mapping[str, Any]) -> Product:
    """Build a Product from a products table row.

    Args:
        row: Row as returned by PostgREST or carried in a realtime payload.

    Returns:
        The mapped Product.

    Raises:
        KeyError: If the row has no id.
    """
    threshold = row.get("low_stock_threshold")
    return Product(
        id=str(row["id"]),
        name=row.get("name") or "",
        brand=row.get("brand") or "",
        category=row.get("category") or "",
        item_number=str(row.get("item_number") or ""),
        price=float(row.get("price") or 0),
        stock=int(row.get("stock") or 0),
        discount_percentage=float(row.get("discount_percentage") or 0),
        low_stock_threshold=DEFAULT_LOW_STOCK_THRESHOLD if threshold is None else int(threshold),
        image=row.get("image") or "",
        description=row.get("description") or "",
        size=_optional_text(row.get("size")),
        color=_optional_text(row.get("color")),
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


def product_to_row(product: Product) -> dict[str, Any]:
    """Build the full-record update payload for a product.

    The id and created_at columns are owned by the server and left out.
    """
    return {
        "name": product.name,
        "brand": product.brand,
        "category": product.category,
        "item_number": product.item_number,
        "price": product.price,
        "stock": product.stock,
        "discount_percentage": product.discount_percentage,
        "low_stock_threshold": product.low_stock_threshold,
        "image": product.image,
        "description": product.description,
        "size": product.size,
        "color": product.color,
        "updated_at": product.updated_at,
    }


def candidate_to_row(
    candidate: ProductCandidate,
    default_low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD,
) -> dict[str, Any]:
    """Build the insert payload for a new product."""
    threshold = candidate.low_stock_threshold
    return {
        "name": candidate.name,
        "brand": candidate.brand,
        "category": candidate.category,
        "item_number": candidate.item_number,
        "price": candidate.price,
        "stock": candidate.stock,
        "discount_percentage": candidate.discount_percentage or 0,
        "low_stock_threshold": default_low_stock_threshold if threshold is None else threshold,
        "image": candidate.image or "",
        "description": candidate.description or "",
        "size": candidate.size,
        "color": candidate.color,
    }
