"""Authentication status model."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class AuthStatus:
    """Result of a session check against the auth API."""

    is_authenticated: bool
    user_id: Optional[str] = None
    expires_at: Optional[str] = None  # ISO-8601
    error: Optional[str] = None
