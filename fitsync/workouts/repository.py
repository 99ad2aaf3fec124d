from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Callable, Optional

from ..queue.models import MutationOperation, MutationRecord, now_ms
from ..sync.engine import SyncEngine
from ..sync.handlers import EntityHandler
from .models import SyncStatus, Workout, WorkoutDto, parse_wire_date
from .store import WorkoutStore

logger = logging.getLogger(__name__)

WORKOUT_ENTITY_TYPE = "workout"
WORKOUT_TABLE = "workouts"
ANONYMOUS_USER = "anonymous"


def workout_handler(store: WorkoutStore) -> EntityHandler:
    """
    Handler for the "workout" entity type. Register it before building
    the SyncEngine.
    """

    def build_row(record: MutationRecord, user_id: str) -> dict[str, Any]:
        row = WorkoutDto.from_json(record.payload).to_row()
        row["user_id"] = user_id
        return row

    def on_synced(record: MutationRecord) -> None:
        dto = WorkoutDto.from_json(record.payload)
        store.mark_synced_by_sync_id(record.entity_id, parse_wire_date(dto.updated_at))

    return EntityHandler(
        entity_type=WORKOUT_ENTITY_TYPE,
        table=WORKOUT_TABLE,
        build_row=build_row,
        on_synced=on_synced,
    )


class WorkoutRepository:
    """
    Workout history with automatic cloud sync.

    Every write lands in the local store first and is then queued on the
    sync engine; callers never wait on the network.
    """

    def __init__(
        self,
        store: WorkoutStore,
        engine: SyncEngine,
        *,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.store = store
        self.engine = engine
        self._clock = clock

    def get_workout_history(self) -> list[Workout]:
        return self.store.list_history()

    def get_workout_history_by_muscle(self, muscle_id: int) -> list[Workout]:
        return self.store.list_history_by_muscle(muscle_id)

    def get_workout_history_by_date_range(self, start_ms: int, end_ms: int) -> list[Workout]:
        return self.store.list_history_between(start_ms, end_ms)

    def get_workout_by_id(self, workout_id: int) -> Optional[Workout]:
        return self.store.get_by_id(workout_id)

    def get_workout_by_sync_id(self, sync_id: str) -> Optional[Workout]:
        return self.store.get_by_sync_id(sync_id)

    def get_modified_since(self, since_ms: int) -> list[Workout]:
        """Workouts changed after ``since_ms``, deleted ones included, oldest change first."""
        return self.store.list_modified_since(since_ms)

    def record_workout(self, workout: Workout) -> int:
        """Insert a workout and queue its CREATE. Returns the local id."""
        workout_id = self.store.insert(workout)
        self._queue(replace(workout, workout_id=workout_id), MutationOperation.CREATE)
        return workout_id

    def record(
        self,
        exercise_id: int,
        muscle_id: int,
        region_id: Optional[int] = None,
        reps: Optional[int] = None,
        weight_kg: Optional[float] = None,
        user_id: Optional[str] = None,
    ) -> int:
        """Record a workout happening now."""
        now = self._clock()
        return self.record_workout(
            Workout(
                exercise_id=exercise_id,
                muscle_id=muscle_id,
                region_id=region_id,
                timestamp=now,
                reps=reps,
                weight_kg=weight_kg,
                user_id=user_id,
                updated_at=now,
            )
        )

    def update_workout(self, workout: Workout) -> Workout:
        """Persist edits, mark the row pending and queue an UPDATE."""
        updated = replace(workout, sync_status=SyncStatus.PENDING, updated_at=self._clock())
        if self.store.update(updated) == 0:
            raise LookupError(f"workout {workout.workout_id} does not exist")
        self._queue(updated, MutationOperation.UPDATE)
        return updated

    def delete_workout_by_id(self, workout_id: int) -> bool:
        """
        Soft-delete a workout and queue its DELETE.

        Returns False if there is no live workout with that id.
        """
        workout = self.store.get_by_id(workout_id)
        if workout is None:
            return False
        now = self._clock()
        self.store.soft_delete(workout_id, now)
        deleted = replace(
            workout,
            is_deleted=True,
            sync_status=SyncStatus.PENDING,
            updated_at=now,
        )
        self._queue(deleted, MutationOperation.DELETE)
        return True

    def get_pending_sync(self) -> list[Workout]:
        return self.store.list_pending_sync()

    def mark_synced(self, workout_id: int) -> None:
        self.store.mark_synced(workout_id)

    def clear_synced_deletes(self) -> int:
        removed = self.store.clear_synced_deletes()
        if removed:
            logger.debug("Removed %d synced deleted workouts", removed)
        return removed

    def _queue(self, workout: Workout, operation: MutationOperation) -> None:
        dto = WorkoutDto.from_entity(workout, workout.user_id or ANONYMOUS_USER)
        self.engine.enqueue(WORKOUT_ENTITY_TYPE, workout.sync_id, operation, dto.to_json())
