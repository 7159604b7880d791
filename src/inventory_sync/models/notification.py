"""User-facing notification model."""

from dataclasses import dataclass
from enum import Enum


class NotificationKind(str, Enum):
    LOW_STOCK = "low-stock"
    OUT_OF_STOCK = "out-of-stock"
    INSUFFICIENT_STOCK = "insufficient-stock"
    PRODUCT_ADDED = "product-added"
    PRODUCT_REMOVED = "product-removed"
    AUTH_REQUIRED = "auth-required"
    DUPLICATE_ITEM = "duplicate-item"
    VALIDATION = "validation"
    ERROR = "error"


class Severity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Notification:
    """A message for the "show user-facing message" collaborator."""

    kind: NotificationKind
    title: str
    description: str
    severity: Severity = Severity.INFO
