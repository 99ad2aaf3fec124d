from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import replace
from typing import Callable, Optional

from ..config import SyncConfig
from ..errors import QueueStoreError
from ..observable import Observable
from ..queue.base import MutationQueueStore
from ..queue.merge import merge
from ..queue.models import MutationOperation, MutationRecord, now_ms
from ..remote.base import RemoteStore
from .connectivity import ConnectivitySignal
from .handlers import HandlerRegistry
from .identity import IdentityProvider
from .metrics import observe_queue_pending, observe_sync_pass, observe_transmission
from .state import SyncResult, SyncState

logger = logging.getLogger(__name__)


class SyncEngine:
    """
    Drains the mutation queue into the remote store.

    One engine is built at application start and shared by every
    repository. It owns two observables for the UI: ``sync_state`` and
    ``pending_count``.

    Triggers:
    - connectivity turning online (after ``start()``)
    - ``enqueue()`` while online, as a background pass
    - ``sync_all()`` called directly (periodic scheduler, "sync now" button)

    Guarantees:
    - at most one pass runs at a time; a concurrent ``sync_all()`` returns
      "already in progress" immediately instead of waiting
    - records are transmitted sequentially, oldest first
    - a failing record never aborts the pass; it is retried on later
      passes until ``config.max_retries`` failures, then parked
    - precondition failures (busy, offline, signed out) and store errors
      are reported through SyncResult, never raised

    Usage:
        engine = SyncEngine(store, connectivity, identity, remote, registry)
        with engine:
            engine.enqueue("workout", sync_id, MutationOperation.CREATE, payload)
            result = engine.sync_all()
    """

    def __init__(
        self,
        store: MutationQueueStore,
        connectivity: ConnectivitySignal,
        identity: IdentityProvider,
        remote: RemoteStore,
        registry: HandlerRegistry,
        config: Optional[SyncConfig] = None,
        *,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.store = store
        self.connectivity = connectivity
        self.identity = identity
        self.remote = remote
        self.registry = registry
        self.config = config or SyncConfig()
        self._clock = clock

        self.sync_state: Observable[SyncState] = Observable(SyncState.IDLE)
        self.pending_count: Observable[int] = Observable(store.count())

        # Held for a whole pass; acquired without blocking.
        self._pass_lock = threading.Lock()
        # Serialises every read-merge-write on the queue.
        self._queue_lock = threading.RLock()
        self._stopping = threading.Event()

        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="fitsync-sync")
        self._futures_lock = threading.Lock()
        self._futures: set[Future] = set()
        self._queued: Optional[Future] = None
        self._unsubscribers: list[Callable[[], None]] = []

    def __enter__(self) -> "SyncEngine":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
        return False

    def start(self) -> None:
        """
        Subscribe to connectivity and queue-size changes, then run a first
        pass in the background if already online.
        """
        if self._unsubscribers:
            raise RuntimeError("SyncEngine is already started")
        self._unsubscribers.append(self.connectivity.subscribe(self._on_connectivity_change))
        self._unsubscribers.append(self.store.subscribe_count(self._on_count_change))
        self._on_count_change(self.store.count())
        if self.connectivity.is_online():
            self.trigger_sync()

    def close(self, wait: bool = True) -> None:
        """
        Stop the engine.

        Queued background passes are cancelled. A pass already running
        finishes the record in flight and then stops; if that record's
        transmission fails during shutdown it is left untouched rather
        than charged a retry.
        """
        self._stopping.set()
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()
        self._executor.shutdown(wait=wait, cancel_futures=True)

    # ---------------------------------------------------------------- enqueue

    def enqueue(
        self,
        entity_type: str,
        entity_id: str,
        operation: MutationOperation,
        payload: str,
    ) -> MutationRecord:
        """
        Merge a local change into the queue and, if online, start a
        background pass.

        The lookup, merge and upsert form one critical section, so two
        writers racing on the same entity cannot lose an update.

        Args:
            entity_type: Registered entity type tag (e.g. "workout")
            entity_id: Client-generated stable id of the entity (sync id)
            operation: CREATE, UPDATE or DELETE
            payload: Serialized snapshot of the entity after the change

        Returns:
            The record as stored

        Raises:
            QueueStoreError: If the queue cannot be read or written
        """
        operation = MutationOperation(operation)
        with self._queue_lock:
            existing = self.store.find(entity_type, entity_id)
            merged = merge(
                existing,
                entity_type,
                entity_id,
                operation,
                payload,
                now_ms=self._clock(),
            )
            record_id = self.store.upsert(merged)
        merged = replace(merged, id=record_id)
        logger.debug(
            "Queued %s %s:%s as %s (id=%s)",
            operation.value,
            entity_type,
            entity_id,
            merged.operation.value,
            record_id,
        )

        if self.connectivity.is_online():
            self.trigger_sync()
        return merged

    def trigger_sync(self) -> Optional[Future]:
        """
        Schedule a background pass. Returns its Future, or None once the
        engine is stopping.

        Triggers arriving while a pass is waiting to start collapse into
        that pass, since it will read the queue when it runs.
        """
        if self._stopping.is_set():
            return None
        with self._futures_lock:
            queued = self._queued
            if queued is not None and not queued.running() and not queued.done():
                return queued
            try:
                future = self._executor.submit(self.sync_all)
            except RuntimeError:
                # executor shut down between the check above and submit
                return None
            self._queued = future
            self._futures.add(future)
        future.add_done_callback(self._on_background_done)
        return future

    def wait_for_background(self, timeout: Optional[float] = None) -> bool:
        """Wait for scheduled passes. Returns False on timeout."""
        with self._futures_lock:
            pending = set(self._futures)
        if not pending:
            return True
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    # --------------------------------------------------------------- sync pass

    def sync_all(self) -> SyncResult:
        """
        Run one pass over every retryable record.

        Returns:
            SyncResult with ``success`` True only if every attempted record
            was transmitted. Preconditions that prevent a pass (already
            running, offline, not authenticated) return ``success=False``
            with a message and zero counts.
        """
        if not self._pass_lock.acquire(blocking=False):
            logger.debug("Sync already in progress")
            observe_sync_pass("skipped_busy")
            return SyncResult(success=False, message="Sync already in progress")

        try:
            if not self.connectivity.is_online():
                logger.debug("No network connection")
                observe_sync_pass("skipped_offline")
                return SyncResult(success=False, message="No network connection")

            user_id = self._current_user_id()
            if user_id is None:
                logger.debug("User not authenticated - skipping sync")
                observe_sync_pass("skipped_unauthenticated")
                return SyncResult(success=False, message="User not authenticated")

            self.sync_state.set(SyncState.SYNCING)
            try:
                result = self._drain(user_id)
            except Exception as exc:
                message = str(exc) or type(exc).__name__
                logger.exception("Sync failed")
                self.sync_state.set(SyncState.error(message))
                observe_sync_pass("failed")
                return SyncResult(success=False, message=message)

            self.sync_state.set(SyncState.IDLE)
            observe_sync_pass("completed")
            return result
        finally:
            self._pass_lock.release()

    def _drain(self, user_id: str) -> SyncResult:
        records = self.store.list_retryable(self.config.max_retries)
        logger.info("Syncing %d items for user %s", len(records), user_id)

        synced = 0
        errors = 0
        for record in records:
            if self._stopping.is_set():
                logger.info("Engine stopping; leaving remaining items for the next session")
                break
            try:
                self._transmit(record, user_id)
            except Exception as exc:
                if self._stopping.is_set():
                    logger.info(
                        "Transmission of %s:%s interrupted by shutdown",
                        record.entity_type,
                        record.entity_id,
                    )
                    break
                logger.warning(
                    "Failed to sync item %s (%s %s:%s): %s",
                    record.id,
                    record.operation.value,
                    record.entity_type,
                    record.entity_id,
                    exc,
                )
                errors += 1
                self._guarded(self._record_failure, record, exc)
            else:
                if self._guarded(self._record_success, record):
                    synced += 1
                else:
                    errors += 1

        return SyncResult(
            success=errors == 0,
            message=f"Synced {synced} items, {errors} errors",
            synced_count=synced,
            error_count=errors,
        )

    def _transmit(self, record: MutationRecord, user_id: str) -> None:
        handler = self.registry.get(record.entity_type)
        start_time = time.monotonic()
        status = "error"
        try:
            handler.apply(self.remote, record, user_id)
            status = "success"
        finally:
            observe_transmission(
                record.entity_type,
                record.operation.value,
                status,
                time.monotonic() - start_time,
            )

    def _guarded(self, fn: Callable[..., None], *args) -> bool:
        # Queue bookkeeping failures cost one record, not the whole pass.
        try:
            fn(*args)
        except QueueStoreError:
            logger.exception("Queue bookkeeping failed for item %s", args[0].id)
            return False
        return True

    def _record_success(self, record: MutationRecord) -> None:
        with self._queue_lock:
            current = self.store.find(record.entity_type, record.entity_id)
            if current is None:
                # queue cleared while the record was in flight
                return
            if _same_change(current, record):
                self.store.remove(current)
            elif (
                record.operation == MutationOperation.CREATE
                and current.operation == MutationOperation.CREATE
            ):
                # Edited while the insert was in flight: the row now exists
                # remotely, so the newer fields must go out as an update.
                self.store.upsert(replace(current, operation=MutationOperation.UPDATE))
                return
            else:
                return

            # Still under the queue lock: a local write enqueued after the
            # removal must not be marked synced by this record.
            handler = self.registry.get(record.entity_type)
            if handler.on_synced is None:
                return
            try:
                handler.on_synced(record)
            except Exception:
                logger.exception(
                    "on_synced hook failed for %s:%s", record.entity_type, record.entity_id
                )

    def _record_failure(self, record: MutationRecord, exc: Exception) -> None:
        message = str(exc) or type(exc).__name__
        with self._queue_lock:
            current = self.store.find(record.entity_type, record.entity_id)
            if current is None:
                return
            if current.created_at != record.created_at:
                # A delete was merged in mid-flight and got a fresh retry budget.
                return
            failed = replace(current, retry_count=current.retry_count + 1, last_error=message)
            self.store.upsert(failed)

        if failed.retry_count >= self.config.max_retries:
            logger.warning(
                "Item %s (%s %s:%s) parked after %d failed attempts: %s",
                failed.id,
                failed.operation.value,
                failed.entity_type,
                failed.entity_id,
                failed.retry_count,
                message,
            )

    # ------------------------------------------------------------- queue admin

    def get_pending_count(self) -> int:
        return self.store.count()

    def parked_records(self) -> list[MutationRecord]:
        """Records that exhausted their retry budget and are no longer sent."""
        return self.store.list_parked(self.config.max_retries)

    def clear_queue(self) -> None:
        """Drop every pending change (sign-out / reset)."""
        with self._queue_lock:
            self.store.clear()

    # -------------------------------------------------------------- listeners

    def _current_user_id(self) -> Optional[str]:
        try:
            return self.identity.current_user_id()
        except Exception:
            logger.exception("Failed to get user ID")
            return None

    def _on_connectivity_change(self, _online: bool) -> None:
        # Re-read the signal: a stale "offline" must not suppress a sync.
        if self.connectivity.is_online():
            logger.debug("Network connected - triggering sync")
            self.trigger_sync()

    def _on_count_change(self, count: int) -> None:
        self.pending_count.set(count)
        observe_queue_pending(count)

    def _on_background_done(self, future: Future) -> None:
        with self._futures_lock:
            self._futures.discard(future)
            if self._queued is future:
                self._queued = None
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.error("Background sync raised", exc_info=exc)


def _same_change(current: MutationRecord, transmitted: MutationRecord) -> bool:
    return (
        current.id == transmitted.id
        and current.operation == transmitted.operation
        and current.payload == transmitted.payload
        and current.created_at == transmitted.created_at
    )
