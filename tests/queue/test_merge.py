from __future__ import annotations

import pytest

from fitsync.queue.merge import merge
from fitsync.queue.models import MutationOperation, MutationRecord

CREATE = MutationOperation.CREATE
UPDATE = MutationOperation.UPDATE
DELETE = MutationOperation.DELETE


def _queued(operation: MutationOperation, *, retry_count: int = 0, last_error=None) -> MutationRecord:
    return MutationRecord(
        id=7,
        entity_type="workout",
        entity_id="abc",
        operation=operation,
        payload='{"v": 1}',
        created_at=1_000,
        retry_count=retry_count,
        last_error=last_error,
    )


def test_new_record_when_nothing_queued() -> None:
    record = merge(None, "workout", "abc", UPDATE, '{"v": 1}', now_ms=5_000)

    assert record.id is None
    assert record.key == ("workout", "abc")
    assert record.operation == UPDATE
    assert record.payload == '{"v": 1}'
    assert record.created_at == 5_000
    assert record.retry_count == 0
    assert record.last_error is None


@pytest.mark.parametrize("existing_op", [CREATE, UPDATE, DELETE])
def test_delete_supersedes_anything_and_resets_budget(existing_op: MutationOperation) -> None:
    existing = _queued(existing_op, retry_count=2, last_error="boom")

    record = merge(existing, "workout", "abc", DELETE, '{"v": 2}', now_ms=9_000)

    assert record.operation == DELETE
    assert record.payload == '{"v": 2}'
    assert record.created_at == 9_000
    assert record.retry_count == 0
    assert record.last_error is None
    assert record.id == 7


def test_update_is_absorbed_into_pending_create() -> None:
    existing = _queued(CREATE, retry_count=1)

    record = merge(existing, "workout", "abc", UPDATE, '{"v": 2}', now_ms=9_000)

    assert record.operation == CREATE
    assert record.payload == '{"v": 2}'
    assert record.created_at == 1_000
    assert record.retry_count == 1
    assert record.id == 7


def test_update_over_update_keeps_position_and_budget() -> None:
    existing = _queued(UPDATE, retry_count=2, last_error="timeout")

    record = merge(existing, "workout", "abc", UPDATE, '{"v": 3}', now_ms=9_000)

    assert record.operation == UPDATE
    assert record.payload == '{"v": 3}'
    assert record.created_at == 1_000
    assert record.retry_count == 2
    assert record.last_error == "timeout"


def test_update_after_queued_delete_takes_incoming_operation() -> None:
    # Rule 4 applies to anything that is not CREATE
    existing = _queued(DELETE)

    record = merge(existing, "workout", "abc", UPDATE, '{"v": 3}', now_ms=9_000)

    assert record.operation == UPDATE
    assert record.created_at == 1_000


def test_rejects_record_for_another_entity() -> None:
    with pytest.raises(ValueError, match="Cannot merge"):
        merge(_queued(UPDATE), "workout", "other", UPDATE, "{}", now_ms=1)
