from __future__ import annotations

import logging
from typing import Any, Optional

from redis import Redis
from redis.exceptions import RedisError, WatchError

from ..errors import QueueStoreError
from .base import MutationQueueStore
from .models import MutationRecord

logger = logging.getLogger(__name__)


class RedisMutationQueueStore(MutationQueueStore):
    """
    Mutation queue backed by Redis.

    Layout (all keys under ``key_prefix``):
    - ``{prefix}:rec:{entity_type}:{entity_id}``: hash holding one record
    - ``{prefix}:order``: sorted set of record keys scored by created_at
    - ``{prefix}:seq``: counter issuing monotonic record ids

    Writes use WATCH/MULTI/EXEC so a single call is applied atomically;
    the sequence counter is never reset, so ids stay monotonic across
    ``clear()``.
    """

    def __init__(self, redis: Redis, key_prefix: str = "fitsync:queue") -> None:
        super().__init__()
        self.redis = redis
        self.key_prefix = key_prefix
        self._order_key = f"{key_prefix}:order"
        self._seq_key = f"{key_prefix}:seq"

    def _record_key(self, entity_type: str, entity_id: str) -> str:
        return f"{self.key_prefix}:rec:{entity_type}:{entity_id}"

    def find(self, entity_type: str, entity_id: str) -> Optional[MutationRecord]:
        try:
            raw = self.redis.hgetall(self._record_key(entity_type, entity_id))
        except RedisError as exc:
            raise QueueStoreError(str(exc)) from exc
        return _decode_record(raw)

    def upsert(self, record: MutationRecord) -> int:
        key = self._record_key(record.entity_type, record.entity_id)
        try:
            with self.redis.pipeline() as pipe:
                while True:
                    try:
                        pipe.watch(key)
                        existing_id = pipe.hget(key, "id")
                        if existing_id is None:
                            record_id = int(self.redis.incr(self._seq_key))
                        else:
                            record_id = int(_text(existing_id))

                        row = record.to_row()
                        row["id"] = record_id
                        row["last_error"] = row["last_error"] or ""
                        pipe.multi()
                        pipe.hset(key, mapping=row)
                        pipe.zadd(self._order_key, {key: record.created_at})
                        pipe.execute()
                        break
                    except WatchError:
                        # Concurrent writer touched the record; re-read and retry.
                        continue
        except RedisError as exc:
            raise QueueStoreError(str(exc)) from exc

        self._notify_count()
        return record_id

    def list_retryable(self, max_retries: int) -> list[MutationRecord]:
        return [r for r in self.list_all() if r.retry_count < max_retries]

    def list_parked(self, max_retries: int) -> list[MutationRecord]:
        return [r for r in self.list_all() if r.retry_count >= max_retries]

    def list_all(self) -> list[MutationRecord]:
        try:
            keys = self.redis.zrange(self._order_key, 0, -1)
            if not keys:
                return []
            with self.redis.pipeline(transaction=False) as pipe:
                for key in keys:
                    pipe.hgetall(key)
                raws = pipe.execute()
        except RedisError as exc:
            raise QueueStoreError(str(exc)) from exc

        records = [r for r in (_decode_record(raw) for raw in raws) if r is not None]
        # zset ties are ordered lexicographically by member; FIFO wants insertion order
        records.sort(key=lambda r: (r.created_at, r.id or 0))
        return records

    def remove(self, record: MutationRecord) -> None:
        if record.id is None:
            raise QueueStoreError("Cannot remove a record that was never stored")
        key = self._record_key(record.entity_type, record.entity_id)
        try:
            with self.redis.pipeline() as pipe:
                while True:
                    try:
                        pipe.watch(key)
                        stored_id = pipe.hget(key, "id")
                        if stored_id is None or int(_text(stored_id)) != record.id:
                            pipe.unwatch()
                            return
                        pipe.multi()
                        pipe.delete(key)
                        pipe.zrem(self._order_key, key)
                        pipe.execute()
                        break
                    except WatchError:
                        continue
        except RedisError as exc:
            raise QueueStoreError(str(exc)) from exc
        self._notify_count()

    def remove_entity(self, entity_type: str, entity_id: str) -> None:
        key = self._record_key(entity_type, entity_id)
        try:
            with self.redis.pipeline() as pipe:
                pipe.delete(key)
                pipe.zrem(self._order_key, key)
                pipe.execute()
        except RedisError as exc:
            raise QueueStoreError(str(exc)) from exc
        self._notify_count()

    def count(self) -> int:
        try:
            return int(self.redis.zcard(self._order_key))
        except RedisError as exc:
            raise QueueStoreError(str(exc)) from exc

    def clear(self) -> None:
        try:
            with self.redis.pipeline() as pipe:
                while True:
                    try:
                        pipe.watch(self._order_key)
                        keys = pipe.zrange(self._order_key, 0, -1)
                        pipe.multi()
                        if keys:
                            pipe.delete(*keys)
                        pipe.delete(self._order_key)
                        pipe.execute()
                        break
                    except WatchError:
                        continue
        except RedisError as exc:
            raise QueueStoreError(str(exc)) from exc
        logger.info("Mutation queue cleared (prefix=%s)", self.key_prefix)
        self._notify_count()


def _text(value: Any) -> str:
    return value.decode("utf-8") if isinstance(value, bytes) else str(value)


def _decode_record(raw: dict) -> Optional[MutationRecord]:
    if not raw:
        return None
    row = {_text(k): _text(v) for k, v in raw.items()}
    return MutationRecord.from_row(row)
