from __future__ import annotations

import json
import threading
from collections.abc import Iterator
from pathlib import Path
from typing import Any, Mapping

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from fitsync.config import SyncConfig
from fitsync.db import create_schema
from fitsync.errors import RemoteStoreError
from fitsync.queue import SqlMutationQueueStore
from fitsync.queue.models import MutationRecord
from fitsync.sync import (
    EntityHandler,
    HandlerRegistry,
    ManualConnectivitySignal,
    StaticIdentityProvider,
    SyncEngine,
)
from fitsync.workouts import WorkoutStore, workout_handler

NOTE_ENTITY_TYPE = "note"
NOTE_TABLE = "notes"


class FakeClock:
    """Epoch-ms clock that only moves when told to."""

    def __init__(self, start_ms: int = 1_700_000_000_000) -> None:
        self.now = start_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int = 1_000) -> int:
        self.now += ms
        return self.now


class FakeRemoteStore:
    """
    In-memory RemoteStore recording every call.

    - ``fail_ids``: entity ids whose calls raise RemoteStoreError(503)
    - ``fail_all``: every call raises
    - ``gate``: when set to an Event, calls block until it is set;
      ``entered`` is set as soon as a call starts
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, str, dict[str, Any], Any]] = []
        self.fail_ids: set[str] = set()
        self.fail_all = False
        self.gate: threading.Event | None = None
        self.entered = threading.Event()
        self._lock = threading.Lock()

    def insert(self, table: str, row: Mapping[str, Any]) -> None:
        self._call("insert", table, dict(row), row.get("id"))

    def update(self, table: str, row: Mapping[str, Any], *, id_value: Any) -> None:
        self._call("update", table, dict(row), id_value)

    def _call(self, method: str, table: str, row: dict[str, Any], id_value: Any) -> None:
        self.entered.set()
        if self.gate is not None:
            assert self.gate.wait(5), "test gate was never released"
        with self._lock:
            self.calls.append((method, table, row, id_value))
        if self.fail_all or id_value in self.fail_ids:
            raise RemoteStoreError("HTTP 503 service unavailable", status_code=503)


@pytest.fixture
def db_engine(tmp_path: Path) -> Iterator[Engine]:
    """File-backed SQLite engine with the fitsync schema, one per test."""
    eng = create_engine(
        f"sqlite:///{tmp_path / 'fitsync.db'}",
        connect_args={"check_same_thread": False},
    )
    create_schema(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def queue_store(db_engine: Engine) -> SqlMutationQueueStore:
    return SqlMutationQueueStore(db_engine)


@pytest.fixture
def workout_store(db_engine: Engine) -> WorkoutStore:
    return WorkoutStore(db_engine)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def remote() -> FakeRemoteStore:
    return FakeRemoteStore()


@pytest.fixture
def connectivity() -> ManualConnectivitySignal:
    return ManualConnectivitySignal(online=False)


@pytest.fixture
def identity() -> StaticIdentityProvider:
    return StaticIdentityProvider("user-1")


@pytest.fixture
def synced_notes() -> list[MutationRecord]:
    """Records passed to the note handler's on_synced hook."""
    return []


@pytest.fixture
def registry(workout_store: WorkoutStore, synced_notes: list[MutationRecord]) -> HandlerRegistry:
    def build_note_row(record: MutationRecord, user_id: str) -> dict[str, Any]:
        row = json.loads(record.payload)
        row["id"] = record.entity_id
        row["user_id"] = user_id
        return row

    reg = HandlerRegistry()
    reg.register(
        EntityHandler(
            entity_type=NOTE_ENTITY_TYPE,
            table=NOTE_TABLE,
            build_row=build_note_row,
            on_synced=synced_notes.append,
        )
    )
    reg.register(workout_handler(workout_store))
    return reg


@pytest.fixture
def sync_engine(
    queue_store: SqlMutationQueueStore,
    connectivity: ManualConnectivitySignal,
    identity: StaticIdentityProvider,
    remote: FakeRemoteStore,
    registry: HandlerRegistry,
    clock: FakeClock,
) -> Iterator[SyncEngine]:
    """
    Engine wired to fakes. Not started: tests call ``start()`` when they
    need connectivity-driven passes.
    """
    eng = SyncEngine(
        queue_store,
        connectivity,
        identity,
        remote,
        registry,
        SyncConfig(max_retries=3),
        clock=clock,
    )
    yield eng
    if remote.gate is not None:
        remote.gate.set()
    eng.close()
