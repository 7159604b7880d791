"""Products sync hook: a reactive product list for presentation code.

Owns the observable state the UI renders (products, loading flag, last
error, authentication) and keeps it current from the realtime feed.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Callable, Optional

from ..clients import SupabaseProductGateway
from ..config import AppConfig, DevAuthConfig, get_environment
from ..exceptions import AuthRequiredError
from ..models import AuthStatus, Product
from ..realtime import ProductChange, ProductRealtimeFeed, merge_change
from ..services import NotificationService, NotificationSink, ProductSyncService
from ..storage import LocalProductStore

logger = logging.getLogger(__name__)

NOT_AUTHENTICATED_MESSAGE = "Not authenticated. Please log in to view and modify products."


@dataclass(frozen=True)
class ProductsSyncState:
    """Snapshot of what the UI shows.

    `is_authenticated` is None until the first session check resolves.
    """

    products: list[Product] = field(default_factory=list)
    is_loading: bool = True
    error: Optional[str] = None
    is_authenticated: Optional[bool] = None


StateListener = Callable[[ProductsSyncState], None]


class ProductsSync:
    """Wires the sync service and realtime feed into one reactive state."""

    def __init__(
        self,
        service: ProductSyncService,
        feed: ProductRealtimeFeed,
        dev_auth: Optional[DevAuthConfig] = None,
    ):
        """Initialize the hook.

        Args:
            service: Product sync service used for the session check and initial load.
            feed: Realtime feed keeping the list current afterwards.
            dev_auth: Development auto-login settings. Ignored outside APP_ENV=dev.
        """
        self._service = service
        self._feed = feed
        self._dev_auth = dev_auth
        self._state = ProductsSyncState()
        self._listeners: list[StateListener] = []
        self._dev_login_attempted = False

    @property
    def state(self) -> ProductsSyncState:
        return self._state

    @property
    def service(self) -> ProductSyncService:
        return self._service

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a state listener. Returns a function that unregisters it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _set_state(self, **changes) -> None:
        self._state = replace(self._state, **changes)
        for listener in list(self._listeners):
            listener(self._state)

    async def start(self) -> None:
        """Resolve auth, load the initial product list, then follow realtime changes."""
        await self._check_auth()
        self._dev_login_attempted = True
        await self._load_products()
        await self._feed.start(self._on_change)

    async def stop(self) -> None:
        """Tear down the realtime channel. In-flight requests are not aborted."""
        await self._feed.stop()

    async def handle_auth_change(self) -> None:
        """Re-check the session and re-subscribe on the new credentials."""
        await self._check_auth()
        await self._feed.restart()

    async def __aenter__(self) -> "ProductsSync":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> bool:
        await self.stop()
        return False

    async def _check_auth(self) -> None:
        status = await self._service.get_auth_status()

        if not status.is_authenticated and self._dev_auto_login_enabled():
            status = await self._dev_login()

        if status.is_authenticated:
            error = None if self._state.error == NOT_AUTHENTICATED_MESSAGE else self._state.error
            self._set_state(is_authenticated=True, error=error)
        else:
            self._set_state(is_authenticated=False, error=NOT_AUTHENTICATED_MESSAGE)

    def _dev_auto_login_enabled(self) -> bool:
        if self._dev_auth is None or not self._dev_auth.auto_login:
            return False
        if self._dev_login_attempted:
            # Only the first session check may auto-login; a later sign-out stays signed out
            return False
        if get_environment() != "dev":
            logger.error("Dev auto-login is configured outside APP_ENV=dev; refusing to use it")
            return False
        return True

    async def _dev_login(self) -> AuthStatus:
        logger.warning("Development auto-login: signing in with configured dev credentials")
        try:
            return await self._service.sign_in(self._dev_auth.email, self._dev_auth.password)
        except AuthRequiredError as e:
            logger.error(f"Development auto-login failed: {e}")
            return AuthStatus(is_authenticated=False, error=str(e))

    async def _load_products(self) -> None:
        products = await self._service.list_products()
        fetch_error = self._service.last_error

        if fetch_error:
            self._service.notifications.error("Failed to load products. Please try again.")
            self._set_state(
                products=products,
                is_loading=False,
                error=f"Failed to load products: {fetch_error}",
            )
        else:
            # Open reads can succeed while signed out; keep the login prompt
            auth_error = NOT_AUTHENTICATED_MESSAGE if self._state.is_authenticated is False else None
            self._set_state(products=products, is_loading=False, error=auth_error)

    def _on_change(self, change: ProductChange) -> None:
        self._set_state(products=merge_change(self._state.products, change))


def create_products_sync(
    config: AppConfig,
    gateway: Optional[SupabaseProductGateway] = None,
    sink: Optional[NotificationSink] = None,
    store: Optional[LocalProductStore] = None,
) -> ProductsSync:
    """Build a ProductsSync with its service, feed and cache from configuration.

    The gateway must be connected before start() is called.
    """
    gateway = gateway or SupabaseProductGateway.from_config(config.supabase)
    store = store if store is not None else LocalProductStore()
    notifications = NotificationService(sink)

    service = ProductSyncService(
        gateway,
        store=store,
        notifications=notifications,
        default_low_stock_threshold=config.inventory.default_low_stock_threshold,
    )
    feed = ProductRealtimeFeed(gateway, notifications=notifications, store=store)
    return ProductsSync(service, feed, dev_auth=config.dev_auth)
