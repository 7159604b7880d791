"""Realtime product feed using incremental merge.

Each row-change event from the products table is mapped once into a
ProductChange, mirrored into the local cache, announced, and handed to the
listener, which folds it into its product list with merge_change().
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from ..clients import Subscription, SupabaseProductGateway
from ..exceptions import BackendError
from ..models import ChangeEvent, ChangeKind, Product, product_from_row
from ..services import NotificationService
from ..storage import LocalProductStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProductChange:
    """A realtime event resolved to domain terms."""

    kind: ChangeKind
    product_id: str
    product: Optional[Product] = None  # None for deletes

    @classmethod
    def from_event(cls, event: ChangeEvent) -> "ProductChange":
        """Map a ChangeEvent.

        Raises:
            ValueError: If the event carries no usable row.
        """
        if event.kind is ChangeKind.DELETE:
            product_id = event.row_id
            if product_id is None:
                raise ValueError("Delete event without an id")
            return cls(kind=event.kind, product_id=product_id)

        if not event.new:
            raise ValueError(f"{event.kind.value} event without a new row")
        product = product_from_row(event.new)
        return cls(kind=event.kind, product_id=product.id, product=product)


ChangeListener = Callable[[ProductChange], None]


def merge_change(products: list[Product], change: ProductChange) -> list[Product]:
    """Apply a change to a product list and return the new list.

    Inserts append, updates replace by id, deletes remove by id. An insert or
    update for an id already (or not yet) in the list behaves as an upsert so
    the list never holds two entries for one product.
    """
    if change.kind is ChangeKind.DELETE:
        return [p for p in products if p.id != change.product_id]

    merged = []
    replaced = False
    for existing in products:
        if existing.id == change.product_id:
            merged.append(change.product)
            replaced = True
        else:
            merged.append(existing)
    if not replaced:
        merged.append(change.product)
    return merged


class ProductRealtimeFeed:
    """Keeps listeners informed of server-side product table changes.

    Only subscribes for authenticated callers. At most one channel is open at
    a time: start() and restart() tear the previous one down first.
    """

    def __init__(
        self,
        gateway: SupabaseProductGateway,
        notifications: Optional[NotificationService] = None,
        store: Optional[LocalProductStore] = None,
    ):
        """Initialize the feed.

        Args:
            gateway: Gateway providing auth status and table subscriptions.
            notifications: Receives "product added" / "product removed".
            store: Local cache to keep in step with the feed, if any.
        """
        self._gateway = gateway
        self._notifications = notifications or NotificationService()
        self._store = store
        self._subscription: Optional[Subscription] = None
        self._listener: Optional[ChangeListener] = None

    @property
    def is_subscribed(self) -> bool:
        return self._subscription is not None and self._subscription.is_active

    async def start(self, listener: ChangeListener) -> bool:
        """Subscribe to product changes.

        Returns:
            True if subscribed, False if the caller is not authenticated or the
            channel could not be opened.
        """
        await self.stop()
        self._listener = listener

        auth_status = await self._gateway.get_auth_status()
        if not auth_status.is_authenticated:
            logger.info("Not authenticated, realtime product feed not started")
            return False

        try:
            self._subscription = await self._gateway.subscribe_to_table_changes(self._handle_event)
        except BackendError as e:
            logger.error(f"Realtime product feed not started, products will not update live: {e}")
            return False
        logger.info("Realtime product feed started")
        return True

    async def restart(self) -> bool:
        """Re-subscribe after an authentication change, closing the old channel first."""
        if self._listener is None:
            return False
        return await self.start(self._listener)

    async def stop(self) -> None:
        """Release the realtime channel."""
        if self._subscription is not None:
            subscription, self._subscription = self._subscription, None
            await subscription.unsubscribe()
            logger.info("Realtime product feed stopped")

    def _handle_event(self, event: ChangeEvent) -> None:
        try:
            change = ProductChange.from_event(event)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Ignoring realtime {event.kind.value} event: {e}")
            return

        logger.debug(f"Realtime {change.kind.value} for product {change.product_id}")

        if change.kind is ChangeKind.DELETE:
            removed = self._store.get_by_id(change.product_id) if self._store else None
            if self._store is not None:
                self._store.remove(change.product_id)
            self._notifications.product_removed(removed)
        else:
            if self._store is not None:
                if change.product_id in self._store:
                    self._store.update(change.product)
                else:
                    self._store.add(change.product)
            if change.kind is ChangeKind.INSERT:
                self._notifications.product_added(change.product)

        if self._listener is not None:
            self._listener(change)
