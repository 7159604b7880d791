"""Product sync service: remote-first reads and writes with a local fallback.

Policy, applied to every operation:
- Reads fall back to the local cache when the backend fails after the single
  session refresh-and-retry.
- Writes fail strictly. A write that did not reach the backend raises; no
  local-only record is ever created.

Callers never track auth state themselves. A missing session is refreshed
once before a write, and a remote call that fails with an expired-session
error is retried once after a refresh.
"""

import logging
import math
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional, TypeVar

from ..clients import SupabaseProductGateway
from ..exceptions import (
    AuthRequiredError,
    BackendError,
    DuplicateKeyError,
    InsufficientStockError,
    InventorySyncError,
    NotFoundError,
    ValidationError,
)
from ..models import (
    DEFAULT_LOW_STOCK_THRESHOLD,
    AuthStatus,
    Product,
    ProductCandidate,
    StockStatus,
    candidate_to_row,
    get_product_stock_status,
    product_from_row,
    product_to_row,
)
from ..storage import LocalProductStore
from .notification_service import NotificationService

logger = logging.getLogger(__name__)

T = TypeVar("T")

REQUIRED_CANDIDATE_FIELDS = ("name", "brand", "category", "item_number")


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _validate_numbers(
    price: Optional[float],
    stock: int,
    discount_percentage: float,
    low_stock_threshold: Optional[int],
) -> None:
    if price is None or not math.isfinite(price) or price <= 0:
        raise ValidationError("Price must be greater than zero", field="price")
    if stock is None or stock < 0:
        raise ValidationError("Stock cannot be negative", field="stock")
    if discount_percentage is not None and not (
        math.isfinite(discount_percentage) and 0 <= discount_percentage <= 100
    ):
        raise ValidationError("Discount percentage must be between 0 and 100", field="discount_percentage")
    if low_stock_threshold is not None and low_stock_threshold < 0:
        raise ValidationError("Low stock threshold cannot be negative", field="low_stock_threshold")


def validate_candidate(candidate: ProductCandidate) -> None:
    """Check a new product before any network call.

    Raises:
        ValidationError: On a missing required field or an out-of-range number.
    """
    for field in REQUIRED_CANDIDATE_FIELDS:
        value = getattr(candidate, field)
        if value is None or not str(value).strip():
            raise ValidationError(f"Missing required field: {field}", field=field)

    _validate_numbers(
        candidate.price,
        candidate.stock,
        candidate.discount_percentage,
        candidate.low_stock_threshold,
    )


def validate_product(product: Product) -> None:
    """Check a full product record before an update."""
    if not product.id:
        raise ValidationError("Product id is required", field="id")
    for field in REQUIRED_CANDIDATE_FIELDS:
        if not str(getattr(product, field) or "").strip():
            raise ValidationError(f"Missing required field: {field}", field=field)

    _validate_numbers(
        product.price,
        product.stock,
        product.discount_percentage,
        product.low_stock_threshold,
    )


class ProductSyncService:
    """Orchestrates product reads and writes against Supabase."""

    def __init__(
        self,
        gateway: SupabaseProductGateway,
        store: Optional[LocalProductStore] = None,
        notifications: Optional[NotificationService] = None,
        default_low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD,
    ):
        """Initialize the service.

        Args:
            gateway: Remote products/auth gateway.
            store: Local fallback cache (a fresh empty one by default).
            notifications: Sink for user-facing messages.
            default_low_stock_threshold: Applied to new products without one.
        """
        self._gateway = gateway
        self._store = store if store is not None else LocalProductStore()
        self._notifications = notifications or NotificationService()
        self._default_low_stock_threshold = default_low_stock_threshold
        self.last_error: Optional[str] = None

    @property
    def store(self) -> LocalProductStore:
        return self._store

    @property
    def notifications(self) -> NotificationService:
        return self._notifications

    # --- Auth helpers ---

    async def get_auth_status(self) -> AuthStatus:
        return await self._gateway.get_auth_status()

    async def sign_in(self, email: str, password: str) -> AuthStatus:
        """Sign in with email and password.

        Raises:
            AuthRequiredError: If the credentials are rejected.
        """
        return await self._gateway.sign_in_with_password(email, password)

    async def _ensure_session(self, action: str) -> bool:
        """Make sure a session exists before a write.

        Returns:
            True if a refresh was spent getting one.

        Raises:
            AuthRequiredError: If there is no session and the refresh fails.
        """
        if await self._gateway.get_session() is not None:
            return False

        logger.warning(f"No authenticated session found, refreshing before trying to {action}")
        if await self._gateway.refresh_session() is None:
            raise AuthRequiredError(f"Authentication required to {action}")
        return True

    async def _call_with_auth_retry(
        self,
        operation: Callable[[], Awaitable[T]],
        refreshed: bool = False,
    ) -> T:
        """Run a remote call, refreshing the session and retrying once on an auth error.

        Args:
            operation: Zero-argument coroutine factory for the remote call.
            refreshed: True when the caller already spent its refresh.

        Raises:
            AuthRequiredError: If the call still fails for lack of a session.
            BackendError: For any other backend failure.
        """
        try:
            return await operation()
        except BackendError as e:
            if not e.is_auth_error:
                raise
            if refreshed:
                raise AuthRequiredError(f"Session rejected by backend: {e}") from e
            logger.info(f"Auth error from backend ({e.code}), attempting to refresh session...")
            if await self._gateway.refresh_session() is None:
                raise AuthRequiredError(f"Session expired and refresh failed: {e}") from e

        try:
            return await operation()
        except BackendError as e:
            if e.is_auth_error:
                raise AuthRequiredError(f"Session rejected by backend after refresh: {e}") from e
            raise

    # --- Cache helpers ---

    def _mirror(self, product: Product) -> None:
        """Write a product into the local cache, adding it if absent."""
        if product.id in self._store:
            self._store.update(product)
        else:
            self._store.add(product)

    def _map_rows(self, rows: list[dict[str, Any]]) -> list[Product]:
        products = []
        for row in rows:
            try:
                products.append(product_from_row(row))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed product row {row.get('id')!r}: {e}")
        return products

    def _report_failure(self, action: str, error: InventorySyncError) -> None:
        """Turn a failed operation into the matching user-facing notification."""
        if isinstance(error, AuthRequiredError):
            self._notifications.auth_required(action)
        elif isinstance(error, DuplicateKeyError):
            self._notifications.duplicate_item(error.item_number)
        elif isinstance(error, ValidationError):
            self._notifications.validation_failed(str(error))
        elif isinstance(error, InsufficientStockError):
            # Emitted where it is raised, with the product at hand
            pass
        elif isinstance(error, NotFoundError):
            self._notifications.error(str(error))
        else:
            self._notifications.error(f"Failed to {action}. Please try again.")

    # --- Reads ---

    async def list_products(self) -> list[Product]:
        """Fetch all products, falling back to the local cache on failure.

        A successful fetch replaces the cache wholesale. On failure the cached
        products are returned and the reason is kept in `last_error`.
        """
        auth_status = await self._gateway.get_auth_status()
        logger.debug(f"Auth status before fetching products: authenticated={auth_status.is_authenticated}")

        try:
            rows = await self._call_with_auth_retry(self._gateway.fetch_all)
        except (BackendError, AuthRequiredError) as e:
            self.last_error = str(e)
            logger.error(f"Error fetching products, serving {len(self._store)} cached products: {e}")
            return self._store.list()

        products = self._map_rows(rows)
        self._store.replace_all(products)
        self.last_error = None
        logger.info(f"Successfully fetched {len(products)} products")
        return products

    async def get_product(self, product_id: str) -> Optional[Product]:
        """Fetch one product, falling back to the local cache on failure.

        Returns:
            The product, or None if it does not exist.
        """
        try:
            row = await self._call_with_auth_retry(lambda: self._gateway.fetch_by_id(product_id))
        except NotFoundError:
            return None
        except (BackendError, AuthRequiredError) as e:
            logger.warning(f"Error fetching product {product_id}, using local cache: {e}")
            return self._store.get_by_id(product_id)

        product = product_from_row(row)
        self._mirror(product)
        return product

    async def _load_for_mutation(self, product_id: str) -> Product:
        product = await self.get_product(product_id)
        if product is None:
            raise NotFoundError(f"Product {product_id} not found")
        return product

    # --- Writes ---

    async def add_product(self, candidate: ProductCandidate) -> Product:
        """Create a product on the backend and mirror it into the cache.

        Raises:
            ValidationError: Missing required field or invalid number. No network call is made.
            DuplicateKeyError: The item number is already taken.
            AuthRequiredError: No session, even after one refresh.
            BackendError: Any other backend failure.
        """
        action = "add products"
        try:
            validate_candidate(candidate)
            refreshed = await self._ensure_session(action)

            # Friendlier error only; the unique constraint is the real guard
            existing = await self._call_with_auth_retry(
                lambda: self._gateway.find_by_item_number(candidate.item_number),
                refreshed,
            )
            if existing is not None:
                raise DuplicateKeyError(candidate.item_number)

            record = candidate_to_row(candidate, self._default_low_stock_threshold)
            try:
                row = await self._call_with_auth_retry(
                    lambda: self._gateway.insert(record),
                    refreshed,
                )
            except BackendError as e:
                if e.is_unique_violation:
                    raise DuplicateKeyError(candidate.item_number) from e
                raise
        except InventorySyncError as e:
            logger.error(f"Error adding product {candidate.item_number!r}: {e}")
            self._report_failure(action, e)
            raise

        product = product_from_row(row)
        self._mirror(product)
        logger.info(f"Product added: {product.id} ({product.name})")
        return product

    async def update_product(self, product: Product) -> Product:
        """Replace a product's stored fields and refresh its updated_at.

        Raises:
            ValidationError: Invalid record. No network call is made.
            DuplicateKeyError: The new item number belongs to another product.
            NotFoundError: No product with this id.
            AuthRequiredError: No session, even after one refresh.
            BackendError: Any other backend failure.
        """
        action = "update products"
        try:
            validate_product(product)
            updated = replace(product, updated_at=_utc_now_iso())
            refreshed = await self._ensure_session(action)
            try:
                row = await self._call_with_auth_retry(
                    lambda: self._gateway.update(product.id, product_to_row(updated)),
                    refreshed,
                )
            except BackendError as e:
                if e.is_unique_violation:
                    raise DuplicateKeyError(product.item_number) from e
                raise
        except InventorySyncError as e:
            logger.error(f"Error updating product {product.id}: {e}")
            self._report_failure(action, e)
            raise

        saved = product_from_row(row)
        self._mirror(saved)
        logger.info(f"Product updated: {saved.id}")
        return saved

    async def decrease_stock(self, product_id: str, quantity: int = 1) -> Product:
        """Take `quantity` units out of stock.

        Emits a low-stock or out-of-stock notification after the write when the
        new level calls for it.

        Raises:
            ValidationError: quantity is not a positive integer.
            NotFoundError: Neither the backend nor the cache knows the product.
            InsufficientStockError: Current stock is below quantity. Nothing is written.
            AuthRequiredError: No session, even after one refresh.
            BackendError: Any other backend failure.
        """
        action = "update stock"
        try:
            if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
                raise ValidationError("Quantity must be a positive integer", field="quantity")

            current = await self._load_for_mutation(product_id)

            if current.stock < quantity:
                self._notifications.insufficient_stock(current, quantity)
                raise InsufficientStockError(product_id, current.stock, quantity)

            # Read-then-write: two concurrent decrements can lose an update
            new_stock = current.stock - quantity
            refreshed = await self._ensure_session(action)
            row = await self._call_with_auth_retry(
                lambda: self._gateway.update(
                    product_id,
                    {"stock": new_stock, "updated_at": _utc_now_iso()},
                ),
                refreshed,
            )
        except InventorySyncError as e:
            logger.error(f"Error decreasing stock for {product_id}: {e}")
            self._report_failure(action, e)
            raise

        updated = product_from_row(row)
        self._mirror(updated)
        logger.info(f"Stock for {updated.id} decreased by {quantity} to {updated.stock}")

        status = get_product_stock_status(updated)
        if status is StockStatus.OUT_OF_STOCK:
            self._notifications.out_of_stock(updated)
        elif status is StockStatus.LOW_STOCK:
            self._notifications.low_stock(updated)

        return updated

    async def delete_product(self, product_id: str) -> None:
        """Delete a product on the backend and purge it from the cache.

        Raises:
            AuthRequiredError: No session, even after one refresh.
            BackendError: Any other backend failure.
        """
        action = "delete products"
        try:
            refreshed = await self._ensure_session(action)
            await self._call_with_auth_retry(
                lambda: self._gateway.delete(product_id),
                refreshed,
            )
        except InventorySyncError as e:
            logger.error(f"Error deleting product {product_id}: {e}")
            self._report_failure(action, e)
            raise

        self._store.remove(product_id)
        logger.info(f"Product deleted: {product_id}")

    @staticmethod
    def get_product_stock_status(product: Product) -> StockStatus:
        return get_product_stock_status(product)
