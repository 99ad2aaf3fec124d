from __future__ import annotations

from dataclasses import replace
from typing import Optional

from .models import MutationOperation, MutationRecord


def merge(
    existing: Optional[MutationRecord],
    entity_type: str,
    entity_id: str,
    operation: MutationOperation,
    payload: str,
    *,
    now_ms: int,
) -> MutationRecord:
    """
    Combine an incoming local change with the record already queued for
    the same entity.

    Rules, applied in order:

    1. Nothing queued: a new record with ``created_at=now_ms`` and a zero
       retry count.
    2. Incoming DELETE: the result is DELETE whatever was queued. The
       queue position and retry budget are reset.
    3. Queued CREATE: stays CREATE with the latest payload. The remote has
       never seen the entity, so the new field values ride on the insert.
       Queue position and retry count are kept.
    4. Otherwise the incoming operation wins with the latest payload;
       queue position and retry count are kept.

    The existing record's id is always kept so the store replaces in place.

    Args:
        existing: Record currently queued for (entity_type, entity_id), or None
        entity_type: Entity type tag of the incoming change
        entity_id: Entity id of the incoming change
        operation: Incoming operation
        payload: Serialized snapshot of the entity after the change
        now_ms: Current time in epoch milliseconds

    Returns:
        The record to upsert into the queue

    Raises:
        ValueError: If ``existing`` belongs to a different entity
    """
    if existing is None:
        return MutationRecord(
            entity_type=entity_type,
            entity_id=entity_id,
            operation=operation,
            payload=payload,
            created_at=now_ms,
        )

    if existing.key != (entity_type, entity_id):
        raise ValueError(
            f"Cannot merge {entity_type}:{entity_id} into queued record for "
            f"{existing.entity_type}:{existing.entity_id}"
        )

    if operation == MutationOperation.DELETE:
        return replace(
            existing,
            operation=MutationOperation.DELETE,
            payload=payload,
            created_at=now_ms,
            retry_count=0,
            last_error=None,
        )

    if existing.operation == MutationOperation.CREATE:
        return replace(existing, payload=payload)

    return replace(existing, operation=operation, payload=payload)
