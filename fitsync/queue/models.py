from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional


class MutationOperation(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


@dataclass(frozen=True)
class MutationRecord:
    """
    One pending change awaiting transmission.

    The queue holds at most one record per (entity_type, entity_id); the
    payload always carries the entity's latest state.
    """
    entity_type: str
    entity_id: str
    operation: MutationOperation
    payload: str  # serialized entity snapshot, opaque to the queue
    created_at: int  # epoch milliseconds
    retry_count: int = 0
    last_error: Optional[str] = None
    # store-assigned on first insert
    id: Optional[int] = None

    @property
    def key(self) -> tuple[str, str]:
        return (self.entity_type, self.entity_id)

    def to_row(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "operation": self.operation.value,
            "payload": self.payload,
            "created_at": self.created_at,
            "retry_count": self.retry_count,
            "last_error": self.last_error,
        }

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "MutationRecord":
        return cls(
            id=int(row["id"]) if row.get("id") is not None else None,
            entity_type=row["entity_type"],
            entity_id=row["entity_id"],
            operation=MutationOperation(row["operation"]),
            payload=row["payload"],
            created_at=int(row["created_at"]),
            retry_count=int(row["retry_count"]),
            last_error=row.get("last_error") or None,
        )


def now_ms() -> int:
    return int(time.time() * 1000)
