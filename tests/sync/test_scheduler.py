from __future__ import annotations

import threading
from unittest.mock import MagicMock

import pytest

from fitsync.config import SyncConfig
from fitsync.sync import PeriodicSync, SyncResult


def _engine(result: SyncResult | None = None) -> MagicMock:
    engine = MagicMock()
    engine.config = SyncConfig(sync_interval_s=900)
    engine.sync_all.return_value = result or SyncResult(True, "Synced 0 items, 0 errors")
    return engine


def test_interval_defaults_to_engine_config() -> None:
    assert PeriodicSync(_engine()).interval_s == 900


def test_rejects_non_positive_interval() -> None:
    with pytest.raises(ValueError):
        PeriodicSync(_engine(), interval_s=0)


def test_run_once_survives_failures() -> None:
    engine = _engine()
    engine.sync_all.side_effect = [RuntimeError("boom"), SyncResult(False, "No network connection")]
    periodic = PeriodicSync(engine, interval_s=60)

    periodic.run_once()
    periodic.run_once()

    assert engine.sync_all.call_count == 2
    assert periodic.runs == 2


def test_scheduler_ticks_until_stopped() -> None:
    engine = _engine()
    ticked = threading.Event()

    def _sync_all() -> SyncResult:
        ticked.set()
        return SyncResult(True, "Synced 0 items, 0 errors")

    engine.sync_all.side_effect = _sync_all
    periodic = PeriodicSync(engine, interval_s=0.05)

    periodic.start()
    try:
        assert periodic.running
        assert ticked.wait(5)
        with pytest.raises(RuntimeError, match="already started"):
            periodic.start()
    finally:
        periodic.stop(wait=True)

    assert not periodic.running
    calls = engine.sync_all.call_count
    assert calls >= 1
    assert periodic.runs == calls


def test_stop_without_start_is_a_noop() -> None:
    periodic = PeriodicSync(_engine(), interval_s=60)

    periodic.stop()

    assert not periodic.running
