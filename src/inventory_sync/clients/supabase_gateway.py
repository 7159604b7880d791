"""Supabase gateway for the products table, auth session and realtime feed."""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Optional

import httpx
from supabase import (
    AsyncClient,
    AsyncClientOptions,
    AuthError,
    PostgrestAPIError,
    acreate_client,
)

from ..config import SupabaseConfig
from ..exceptions import AuthRequiredError, BackendError, NotFoundError
from ..models import AuthStatus, ChangeEvent, change_event_from_payload

logger = logging.getLogger(__name__)


def _to_backend_error(error: Exception) -> BackendError:
    """Translate a PostgREST or transport error into a BackendError."""
    if isinstance(error, PostgrestAPIError):
        return BackendError(
            message=error.message or str(error),
            code=str(error.code) if error.code is not None else None,
            details=error.details,
            hint=error.hint,
        )
    return BackendError(message=str(error))


class Subscription:
    """Handle for a realtime channel. Unsubscribing removes the channel."""

    def __init__(self, client: AsyncClient, channel: Any, topic: str):
        self._client = client
        self._channel = channel
        self.topic = topic

    @property
    def is_active(self) -> bool:
        return self._channel is not None

    async def unsubscribe(self) -> None:
        """Release the channel. Safe to call more than once."""
        if self._channel is None:
            return
        channel, self._channel = self._channel, None
        await self._client.remove_channel(channel)
        logger.info(f"Realtime channel removed: {self.topic}")


class SupabaseProductGateway:
    """Async Supabase client wrapper with connection management.

    Performs no business-rule validation. Every backend failure surfaces as
    BackendError with the original message and code.
    Supports async context manager pattern for proper resource cleanup.
    """

    def __init__(
        self,
        url: str,
        key: str,
        table: str = "products",
        schema: str = "public",
        channel_name: str = "public:products",
        client: Optional[AsyncClient] = None,
    ):
        """Initialize the gateway.

        Args:
            url: Supabase project URL
            key: Supabase anon key
            table: Name of the products table
            schema: Database schema holding the table
            channel_name: Realtime channel topic
            client: Pre-built AsyncClient; created on connect() when omitted
        """
        self._url = url
        self._key = key
        self._table = table
        self._schema = schema
        self._channel_name = channel_name
        self._client: Optional[AsyncClient] = client

    @classmethod
    def from_config(cls, config: SupabaseConfig) -> "SupabaseProductGateway":
        return cls(
            url=config.url,
            key=config.anon_key,
            table=config.products_table,
            schema=config.schema,
            channel_name=config.realtime_channel,
        )

    async def connect(self) -> None:
        """Create the Supabase client if one was not injected."""
        if self._client is not None:
            return
        self._client = await acreate_client(
            self._url,
            self._key,
            options=AsyncClientOptions(
                schema=self._schema,
                auto_refresh_token=True,
                persist_session=True,
            ),
        )
        logger.info(f"Connected to Supabase project {self._url}")

    async def close(self) -> None:
        """Close realtime channels and drop the client."""
        if self._client:
            await self._client.remove_all_channels()
            self._client = None

    async def __aenter__(self) -> "SupabaseProductGateway":
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> bool:
        """Async context manager exit with cleanup."""
        await self.close()
        return False

    def _require_client(self) -> AsyncClient:
        if self._client is None:
            raise RuntimeError("Supabase gateway not connected. Call connect() first.")
        return self._client

    # --- Table operations ---

    async def fetch_all(self) -> list[dict[str, Any]]:
        """Fetch every row of the products table.

        Raises:
            BackendError: On transport, auth or query failure.
        """
        client = self._require_client()
        try:
            response = await client.table(self._table).select("*").execute()
        except (PostgrestAPIError, httpx.HTTPError) as e:
            raise _to_backend_error(e) from e
        return list(response.data or [])

    async def fetch_by_id(self, product_id: str) -> dict[str, Any]:
        """Fetch one row by id.

        Raises:
            NotFoundError: If no row has this id.
            BackendError: On transport, auth or query failure.
        """
        client = self._require_client()
        try:
            response = await (
                client.table(self._table).select("*").eq("id", product_id).limit(1).execute()
            )
        except (PostgrestAPIError, httpx.HTTPError) as e:
            raise _to_backend_error(e) from e

        if not response.data:
            raise NotFoundError(f"Product {product_id} not found")
        return response.data[0]

    async def find_by_item_number(self, item_number: str) -> Optional[dict[str, Any]]:
        """Return the row with this item number, or None."""
        client = self._require_client()
        try:
            response = await (
                client.table(self._table)
                .select("*")
                .eq("item_number", item_number)
                .limit(1)
                .execute()
            )
        except (PostgrestAPIError, httpx.HTTPError) as e:
            raise _to_backend_error(e) from e

        return response.data[0] if response.data else None

    async def insert(self, record: dict[str, Any]) -> dict[str, Any]:
        """Insert a row and return it with server-assigned id and timestamps.

        Raises:
            BackendError: On failure. Unique violations keep code 23505.
        """
        client = self._require_client()
        try:
            response = await client.table(self._table).insert(record).execute()
        except (PostgrestAPIError, httpx.HTTPError) as e:
            raise _to_backend_error(e) from e

        if not response.data:
            raise BackendError("Insert returned no row")
        return response.data[0]

    async def update(self, product_id: str, partial_record: dict[str, Any]) -> dict[str, Any]:
        """Update a row by id and return the updated row.

        Raises:
            NotFoundError: If no row was updated (missing row or hidden by RLS).
            BackendError: On transport, auth or query failure.
        """
        client = self._require_client()
        try:
            response = await (
                client.table(self._table).update(partial_record).eq("id", product_id).execute()
            )
        except (PostgrestAPIError, httpx.HTTPError) as e:
            raise _to_backend_error(e) from e

        if not response.data:
            raise NotFoundError(f"Product {product_id} not found for update")
        return response.data[0]

    async def delete(self, product_id: str) -> None:
        """Delete a row by id.

        Raises:
            BackendError: On transport, auth or query failure.
        """
        client = self._require_client()
        try:
            await client.table(self._table).delete().eq("id", product_id).execute()
        except (PostgrestAPIError, httpx.HTTPError) as e:
            raise _to_backend_error(e) from e

    # --- Auth operations ---

    async def get_session(self) -> Optional[Any]:
        """Return the current session, or None when not signed in."""
        client = self._require_client()
        try:
            return await client.auth.get_session()
        except AuthError as e:
            logger.warning(f"Error checking session: {e}")
            return None

    async def get_auth_status(self) -> AuthStatus:
        """Describe the current session for diagnostics and auth gating."""
        client = self._require_client()
        try:
            session = await client.auth.get_session()
        except AuthError as e:
            logger.warning(f"Error checking auth status: {e}")
            return AuthStatus(is_authenticated=False, error=str(e))

        if session is None:
            return AuthStatus(is_authenticated=False)

        expires_at = None
        if session.expires_at:
            expires_at = datetime.fromtimestamp(session.expires_at, tz=timezone.utc).isoformat()

        status = AuthStatus(
            is_authenticated=True,
            user_id=session.user.id if session.user else None,
            expires_at=expires_at,
        )
        logger.debug(f"Auth status: user={status.user_id} expires_at={status.expires_at}")
        return status

    async def refresh_session(self) -> Optional[Any]:
        """Refresh the session. Returns None instead of raising on failure."""
        client = self._require_client()
        try:
            response = await client.auth.refresh_session()
        except AuthError as e:
            logger.info(f"Session refresh failed: {e}")
            return None

        logger.info(f"Session refresh result: success={response.session is not None}")
        return response.session

    async def sign_in_with_password(self, email: str, password: str) -> AuthStatus:
        """Sign in with email and password.

        Raises:
            AuthRequiredError: If the credentials are rejected or no session is created.
        """
        client = self._require_client()
        try:
            response = await client.auth.sign_in_with_password(
                {"email": email, "password": password}
            )
        except AuthError as e:
            raise AuthRequiredError(f"Login failed: {e}") from e

        if response.session is None:
            raise AuthRequiredError("Login failed: no session created")

        logger.info("Login successful, session established")
        return AuthStatus(
            is_authenticated=True,
            user_id=response.user.id if response.user else None,
        )

    # --- Realtime ---

    async def subscribe_to_table_changes(
        self,
        on_event: Callable[[ChangeEvent], None],
        table: Optional[str] = None,
    ) -> Subscription:
        """Listen for insert/update/delete events on a table.

        Args:
            on_event: Called with each normalized ChangeEvent.
            table: Table to watch (default: the products table)

        Returns:
            Subscription whose unsubscribe() releases the channel.

        Raises:
            BackendError: If the channel cannot be subscribed. The channel is removed.
        """
        client = self._require_client()
        table = table or self._table

        def _handle(payload: dict[str, Any]) -> None:
            try:
                event = change_event_from_payload(payload)
            except ValueError as e:
                logger.warning(f"Ignoring realtime payload: {e}")
                return
            on_event(event)

        channel = client.channel(self._channel_name)
        channel.on_postgres_changes(
            "*",
            schema=self._schema,
            table=table,
            callback=_handle,
        )
        try:
            await channel.subscribe(
                lambda status, err=None: logger.info(f"Realtime subscription status: {status}")
            )
        except Exception as e:
            # The realtime client raises transport and timeout errors of its own
            await client.remove_channel(channel)
            logger.error(f"Realtime subscription for {self._schema}.{table} failed: {e}")
            raise BackendError(f"Realtime subscription failed: {e}") from e

        logger.info(f"Realtime subscription for {self._schema}.{table} initialized")
        return Subscription(client, channel, self._channel_name)
