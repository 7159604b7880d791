"""Exception hierarchy for inventory sync operations."""

from typing import Optional

# PostgREST / Postgres codes that mean the session is missing or expired
AUTH_ERROR_CODES = {"PGRST301", "PGRST302", "42501", "401"}
UNIQUE_VIOLATION_CODE = "23505"


class InventorySyncError(Exception):
    """Base exception for all inventory sync failures."""

    pass


class ValidationError(InventorySyncError):
    """Raised for bad input. Never retried."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class DuplicateKeyError(InventorySyncError):
    """Raised when a product with the same item number already exists."""

    def __init__(self, item_number: str):
        super().__init__(f"A product with item number '{item_number}' already exists")
        self.item_number = item_number


class InsufficientStockError(InventorySyncError):
    """Raised when a decrease would take stock below zero. Nothing is mutated."""

    def __init__(self, product_id: str, available: int, requested: int):
        super().__init__(
            f"Insufficient stock for product {product_id}: "
            f"requested {requested}, available {available}"
        )
        self.product_id = product_id
        self.available = available
        self.requested = requested


class AuthRequiredError(InventorySyncError):
    """Raised when no valid session exists after one refresh attempt."""

    pass


class NotFoundError(InventorySyncError):
    """Raised when an entity does not exist."""

    pass


class BackendError(InventorySyncError):
    """Opaque transport or query failure from the backend.

    Keeps the original message and code for diagnostics.
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[str] = None,
        hint: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details
        self.hint = hint

    @property
    def is_auth_error(self) -> bool:
        """True when the failure is attributable to a missing or expired session."""
        if self.code in AUTH_ERROR_CODES:
            return True
        return "jwt" in (self.message or "").lower()

    @property
    def is_unique_violation(self) -> bool:
        """True when the backend rejected a write on a unique constraint."""
        return self.code == UNIQUE_VIOLATION_CODE

    def __str__(self) -> str:
        if self.code:
            return f"{self.message} (code={self.code})"
        return self.message
