from __future__ import annotations

from .connectivity import ConnectivitySignal, ManualConnectivitySignal
from .engine import SyncEngine
from .handlers import EntityHandler, HandlerRegistry
from .identity import IdentityProvider, StaticIdentityProvider
from .scheduler import PeriodicSync
from .state import SyncResult, SyncState, SyncStateKind

__all__ = [
    "ConnectivitySignal",
    "EntityHandler",
    "HandlerRegistry",
    "IdentityProvider",
    "ManualConnectivitySignal",
    "PeriodicSync",
    "StaticIdentityProvider",
    "SyncEngine",
    "SyncResult",
    "SyncState",
    "SyncStateKind",
]
