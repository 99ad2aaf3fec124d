from __future__ import annotations

from .base import MutationQueueStore
from .merge import merge
from .models import MutationOperation, MutationRecord
from .redis_store import RedisMutationQueueStore
from .sql_store import SqlMutationQueueStore

__all__ = [
    "MutationOperation",
    "MutationQueueStore",
    "MutationRecord",
    "RedisMutationQueueStore",
    "SqlMutationQueueStore",
    "merge",
]
