from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class SyncStateKind(str, Enum):
    IDLE = "idle"
    SYNCING = "syncing"
    ERROR = "error"


@dataclass(frozen=True)
class SyncState:
    """
    Observable engine state. ERROR is informational only: the next
    trigger starts a fresh pass exactly as from IDLE.
    """
    kind: SyncStateKind
    message: Optional[str] = None

    @classmethod
    def error(cls, message: str) -> "SyncState":
        return cls(SyncStateKind.ERROR, message)


SyncState.IDLE = SyncState(SyncStateKind.IDLE)
SyncState.SYNCING = SyncState(SyncStateKind.SYNCING)


@dataclass(frozen=True)
class SyncResult:
    success: bool
    message: str
    synced_count: int = 0
    error_count: int = 0
