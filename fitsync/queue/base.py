from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from typing import Callable, Optional

from .models import MutationRecord

logger = logging.getLogger(__name__)

CountListener = Callable[[int], None]


class MutationQueueStore(ABC):
    """
    Abstract base for durable mutation queue backends.

    Every method is atomic on its own. Callers that need read-merge-write
    atomicity across several calls (the sync engine) must serialise those
    calls themselves; backends only guarantee that a single call never
    leaves a partial write behind.

    Backends raise QueueStoreError for storage failures.
    """

    def __init__(self) -> None:
        self._listeners_lock = threading.Lock()
        self._count_listeners: list[CountListener] = []

    @abstractmethod
    def find(self, entity_type: str, entity_id: str) -> Optional[MutationRecord]:
        """Point lookup by entity key. Returns None on miss."""
        ...

    @abstractmethod
    def upsert(self, record: MutationRecord) -> int:
        """
        Insert or fully replace the record keyed by (entity_type, entity_id).

        A fresh monotonic id is assigned only on first insert; replacing an
        existing record keeps its id. Returns the record id.
        """
        ...

    @abstractmethod
    def list_retryable(self, max_retries: int) -> list[MutationRecord]:
        """Records with retry_count < max_retries, oldest created_at first."""
        ...

    @abstractmethod
    def list_parked(self, max_retries: int) -> list[MutationRecord]:
        """Records with retry_count >= max_retries, oldest created_at first."""
        ...

    @abstractmethod
    def list_all(self) -> list[MutationRecord]:
        ...

    @abstractmethod
    def remove(self, record: MutationRecord) -> None:
        """Delete the record by id. Missing records are ignored."""
        ...

    @abstractmethod
    def remove_entity(self, entity_type: str, entity_id: str) -> None:
        ...

    @abstractmethod
    def count(self) -> int:
        ...

    @abstractmethod
    def clear(self) -> None:
        """Drop every record (sign-out / reset)."""
        ...

    def subscribe_count(self, listener: CountListener) -> Callable[[], None]:
        """
        Register a listener called with the new count after every mutating
        call. Returns a callable that unregisters it.
        """
        with self._listeners_lock:
            self._count_listeners.append(listener)

        def _unsubscribe() -> None:
            with self._listeners_lock:
                if listener in self._count_listeners:
                    self._count_listeners.remove(listener)

        return _unsubscribe

    def _notify_count(self) -> None:
        with self._listeners_lock:
            listeners = list(self._count_listeners)
        if not listeners:
            return
        count = self.count()
        for listener in listeners:
            try:
                listener(count)
            except Exception:
                logger.exception("Queue count listener %r failed", listener)
