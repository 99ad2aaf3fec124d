from .config import RemoteConfig, SyncConfig
from .queue import MutationOperation, MutationRecord, SqlMutationQueueStore
from .sync import SyncEngine, SyncResult, SyncState

__all__ = [
    "MutationOperation",
    "MutationRecord",
    "RemoteConfig",
    "SqlMutationQueueStore",
    "SyncConfig",
    "SyncEngine",
    "SyncResult",
    "SyncState",
]
