from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from ..db.session import DbSession
from ..errors import QueueStoreError
from .base import MutationQueueStore
from .models import MutationRecord

logger = logging.getLogger(__name__)

_COLUMNS = "id, entity_type, entity_id, operation, payload, created_at, retry_count, last_error"


class SqlMutationQueueStore(MutationQueueStore):
    """
    Mutation queue backed by the ``sync_queue`` table.

    Every public method runs in its own DbSession, so each call commits or
    rolls back as a unit. The table is created by ``fitsync.db.create_schema``.
    """

    def __init__(self, engine: Engine) -> None:
        super().__init__()
        self.engine = engine

    def find(self, entity_type: str, entity_id: str) -> Optional[MutationRecord]:
        try:
            with DbSession(self.engine) as session:
                row = session.fetch_one(
                    f"SELECT {_COLUMNS} FROM sync_queue "
                    "WHERE entity_type = :entity_type AND entity_id = :entity_id",
                    {"entity_type": entity_type, "entity_id": entity_id},
                )
        except SQLAlchemyError as exc:
            raise QueueStoreError(str(exc)) from exc
        return MutationRecord.from_row(row) if row is not None else None

    def upsert(self, record: MutationRecord) -> int:
        key_params = {"entity_type": record.entity_type, "entity_id": record.entity_id}
        values = {
            "operation": record.operation.value,
            "payload": record.payload,
            "created_at": record.created_at,
            "retry_count": record.retry_count,
            "last_error": record.last_error,
        }
        try:
            with DbSession(self.engine) as session:
                existing_id = session.execute_scalar(
                    "SELECT id FROM sync_queue "
                    "WHERE entity_type = :entity_type AND entity_id = :entity_id",
                    key_params,
                )
                if existing_id is None:
                    record_id = session.insert_returning_id(
                        "INSERT INTO sync_queue "
                        "(entity_type, entity_id, operation, payload, created_at, retry_count, last_error) "
                        "VALUES (:entity_type, :entity_id, :operation, :payload, :created_at, "
                        ":retry_count, :last_error)",
                        {**key_params, **values},
                    )
                else:
                    record_id = int(existing_id)
                    session.execute(
                        "UPDATE sync_queue SET operation = :operation, payload = :payload, "
                        "created_at = :created_at, retry_count = :retry_count, "
                        "last_error = :last_error WHERE id = :id",
                        {**values, "id": record_id},
                    )
        except SQLAlchemyError as exc:
            raise QueueStoreError(str(exc)) from exc

        self._notify_count()
        return record_id

    def list_retryable(self, max_retries: int) -> list[MutationRecord]:
        return self._select(
            "WHERE retry_count < :max_retries ORDER BY created_at ASC, id ASC",
            {"max_retries": max_retries},
        )

    def list_parked(self, max_retries: int) -> list[MutationRecord]:
        return self._select(
            "WHERE retry_count >= :max_retries ORDER BY created_at ASC, id ASC",
            {"max_retries": max_retries},
        )

    def list_all(self) -> list[MutationRecord]:
        return self._select("ORDER BY created_at ASC, id ASC", {})

    def remove(self, record: MutationRecord) -> None:
        if record.id is None:
            raise QueueStoreError("Cannot remove a record that was never stored")
        self._delete("DELETE FROM sync_queue WHERE id = :id", {"id": record.id})

    def remove_entity(self, entity_type: str, entity_id: str) -> None:
        self._delete(
            "DELETE FROM sync_queue WHERE entity_type = :entity_type AND entity_id = :entity_id",
            {"entity_type": entity_type, "entity_id": entity_id},
        )

    def count(self) -> int:
        try:
            with DbSession(self.engine) as session:
                return int(session.execute_scalar("SELECT COUNT(*) FROM sync_queue"))
        except SQLAlchemyError as exc:
            raise QueueStoreError(str(exc)) from exc

    def clear(self) -> None:
        self._delete("DELETE FROM sync_queue", {})
        logger.info("Mutation queue cleared")

    def _select(self, clause: str, params: dict) -> list[MutationRecord]:
        try:
            with DbSession(self.engine) as session:
                rows = session.fetch_all(f"SELECT {_COLUMNS} FROM sync_queue {clause}", params)
        except SQLAlchemyError as exc:
            raise QueueStoreError(str(exc)) from exc
        return [MutationRecord.from_row(row) for row in rows]

    def _delete(self, sql: str, params: dict) -> None:
        try:
            with DbSession(self.engine) as session:
                session.execute(sql, params)
        except SQLAlchemyError as exc:
            raise QueueStoreError(str(exc)) from exc
        self._notify_count()
