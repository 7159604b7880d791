"""Realtime row-change events for the products table."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional


class ChangeKind(str, Enum):
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class ChangeEvent:
    """A normalized postgres_changes event.

    `new` is set for insert/update, `old` for delete (and update when the
    table publishes old rows).
    """

    kind: ChangeKind
    new: Optional[dict[str, Any]] = None
    old: Optional[dict[str, Any]] = None

    @property
    def row_id(self) -> Optional[str]:
        """Id of the affected row, taken from whichever snapshot carries it."""
        for row in (self.new, self.old):
            if row and row.get("id") is not None:
                return str(row["id"])
        return None


def change_event_from_payload(payload: Mapping[str, Any]) -> ChangeEvent:
    """Normalize a realtime payload into a ChangeEvent.

    Accepts the realtime server shape ({"data": {"type", "record",
    "old_record"}}) as well as the flattened client shape
    ({"eventType", "new", "old"}).

    Raises:
        ValueError: If the payload carries an unknown event type.
    """
    data = payload.get("data") if isinstance(payload.get("data"), Mapping) else payload

    raw_kind = data.get("type") or data.get("eventType") or data.get("event")
    try:
        kind = ChangeKind(str(raw_kind).lower())
    except ValueError as e:
        raise ValueError(f"Unknown realtime event type: {raw_kind!r}") from e

    new = data.get("record", data.get("new"))
    old = data.get("old_record", data.get("old"))

    return ChangeEvent(
        kind=kind,
        new=dict(new) if new else None,
        old=dict(old) if old else None,
    )
