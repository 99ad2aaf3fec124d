from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Optional

from ..db.helpers import validate_identifier
from ..errors import UnknownEntityTypeError
from ..queue.models import MutationOperation, MutationRecord
from ..remote.base import RemoteStore

logger = logging.getLogger(__name__)

RowBuilder = Callable[[MutationRecord, str], dict[str, Any]]
SyncedHook = Callable[[MutationRecord], None]

SOFT_DELETE_ROW = {"is_deleted": True}


@dataclass(frozen=True)
class EntityHandler:
    """
    How one entity type reaches its remote table.

    ``build_row`` turns a queued payload into the wire row for CREATE and
    UPDATE, attaching the authenticated user as owner. ``on_synced`` runs
    after the remote store confirmed the record (e.g. to flip the local
    entity to SYNCED).
    """
    entity_type: str
    table: str
    build_row: RowBuilder
    on_synced: Optional[SyncedHook] = None

    def __post_init__(self) -> None:
        validate_identifier(self.table, "table")

    def apply(self, remote: RemoteStore, record: MutationRecord, user_id: str) -> None:
        """
        Transmit one record.

        CREATE inserts, UPDATE updates by id, DELETE only sets the remote
        soft-delete flag; rows are never hard-deleted remotely.
        """
        if record.operation == MutationOperation.CREATE:
            logger.debug("CREATE %s %s", self.entity_type, record.entity_id)
            remote.insert(self.table, self.build_row(record, user_id))
        elif record.operation == MutationOperation.UPDATE:
            logger.debug("UPDATE %s %s", self.entity_type, record.entity_id)
            remote.update(self.table, self.build_row(record, user_id), id_value=record.entity_id)
        elif record.operation == MutationOperation.DELETE:
            logger.debug("DELETE %s %s", self.entity_type, record.entity_id)
            remote.update(self.table, dict(SOFT_DELETE_ROW), id_value=record.entity_id)
        else:
            raise ValueError(f"Unsupported operation: {record.operation}")


class HandlerRegistry:
    """Entity type tag -> EntityHandler. New entity types register here."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._handlers: dict[str, EntityHandler] = {}

    def register(self, handler: EntityHandler) -> None:
        with self._lock:
            if handler.entity_type in self._handlers:
                raise ValueError(f"Handler for {handler.entity_type!r} is already registered")
            self._handlers[handler.entity_type] = handler

    def get(self, entity_type: str) -> EntityHandler:
        with self._lock:
            handler = self._handlers.get(entity_type)
        if handler is None:
            raise UnknownEntityTypeError(f"No handler registered for entity type {entity_type!r}")
        return handler

    def __contains__(self, entity_type: str) -> bool:
        with self._lock:
            return entity_type in self._handlers
