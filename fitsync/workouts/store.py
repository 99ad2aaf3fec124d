from __future__ import annotations

from typing import Optional

from sqlalchemy.engine import Engine

from ..db.session import DbSession
from ..queue.models import now_ms
from .models import SyncStatus, Workout

_COLUMNS = (
    "workout_id, user_id, exercise_id, muscle_id, region_id, timestamp, reps, "
    "weight_kg, sync_id, sync_status, updated_at, is_deleted"
)


class WorkoutStore:
    """
    Local ``workouts`` table.

    Read queries hide soft-deleted rows except ``get_by_sync_id`` and the
    sync-oriented listings, which must still see pending deletes.
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def insert(self, workout: Workout) -> int:
        row = workout.to_row()
        row.pop("workout_id")
        with DbSession(self.engine) as session:
            return session.insert_returning_id(
                "INSERT INTO workouts (user_id, exercise_id, muscle_id, region_id, timestamp, "
                "reps, weight_kg, sync_id, sync_status, updated_at, is_deleted) "
                "VALUES (:user_id, :exercise_id, :muscle_id, :region_id, :timestamp, :reps, "
                ":weight_kg, :sync_id, :sync_status, :updated_at, :is_deleted)",
                row,
            )

    def update(self, workout: Workout) -> int:
        with DbSession(self.engine) as session:
            return session.execute(
                "UPDATE workouts SET user_id = :user_id, exercise_id = :exercise_id, "
                "muscle_id = :muscle_id, region_id = :region_id, timestamp = :timestamp, "
                "reps = :reps, weight_kg = :weight_kg, sync_id = :sync_id, "
                "sync_status = :sync_status, updated_at = :updated_at, is_deleted = :is_deleted "
                "WHERE workout_id = :workout_id",
                workout.to_row(),
            )

    def soft_delete(self, workout_id: int, timestamp: Optional[int] = None) -> int:
        """Mark as deleted and pending; the row stays until the delete syncs."""
        with DbSession(self.engine) as session:
            return session.execute(
                "UPDATE workouts SET is_deleted = 1, sync_status = :status, updated_at = :ts "
                "WHERE workout_id = :id",
                {
                    "id": workout_id,
                    "status": SyncStatus.PENDING.value,
                    "ts": timestamp if timestamp is not None else now_ms(),
                },
            )

    def hard_delete_by_id(self, workout_id: int) -> int:
        with DbSession(self.engine) as session:
            return session.execute("DELETE FROM workouts WHERE workout_id = :id", {"id": workout_id})

    def get_by_id(self, workout_id: int) -> Optional[Workout]:
        return self._one("WHERE workout_id = :id AND is_deleted = 0", {"id": workout_id})

    def get_by_sync_id(self, sync_id: str) -> Optional[Workout]:
        return self._one("WHERE sync_id = :sync_id", {"sync_id": sync_id})

    def list_history(self) -> list[Workout]:
        return self._many("WHERE is_deleted = 0 ORDER BY timestamp DESC", {})

    def list_history_by_muscle(self, muscle_id: int) -> list[Workout]:
        return self._many(
            "WHERE muscle_id = :muscle_id AND is_deleted = 0 ORDER BY timestamp DESC",
            {"muscle_id": muscle_id},
        )

    def list_history_between(self, start_ms: int, end_ms: int) -> list[Workout]:
        return self._many(
            "WHERE timestamp BETWEEN :start AND :end AND is_deleted = 0 ORDER BY timestamp DESC",
            {"start": start_ms, "end": end_ms},
        )

    def list_pending_sync(self) -> list[Workout]:
        return self._many(
            "WHERE sync_status = :status ORDER BY workout_id",
            {"status": SyncStatus.PENDING.value},
        )

    def list_modified_since(self, since_ms: int) -> list[Workout]:
        return self._many("WHERE updated_at > :since ORDER BY updated_at", {"since": since_ms})

    def mark_synced(self, workout_id: int) -> int:
        return self.update_sync_status(workout_id, SyncStatus.SYNCED)

    def mark_synced_by_sync_id(self, sync_id: str, updated_at: int) -> int:
        """
        Mark the row SYNCED only if it still holds the transmitted version.

        A row edited or deleted after ``updated_at`` stays PENDING; its own
        queued change will mark it later.
        """
        with DbSession(self.engine) as session:
            return session.execute(
                "UPDATE workouts SET sync_status = :status "
                "WHERE sync_id = :sync_id AND updated_at = :updated_at",
                {"status": SyncStatus.SYNCED.value, "sync_id": sync_id, "updated_at": updated_at},
            )

    def update_sync_status(self, workout_id: int, status: SyncStatus) -> int:
        with DbSession(self.engine) as session:
            return session.execute(
                "UPDATE workouts SET sync_status = :status WHERE workout_id = :id",
                {"status": status.value, "id": workout_id},
            )

    def clear_synced_deletes(self) -> int:
        """Physically remove rows whose delete the remote store confirmed."""
        with DbSession(self.engine) as session:
            return session.execute(
                "DELETE FROM workouts WHERE is_deleted = 1 AND sync_status = :status",
                {"status": SyncStatus.SYNCED.value},
            )

    def _one(self, clause: str, params: dict) -> Optional[Workout]:
        with DbSession(self.engine) as session:
            row = session.fetch_one(f"SELECT {_COLUMNS} FROM workouts {clause}", params)
        return Workout.from_row(row) if row is not None else None

    def _many(self, clause: str, params: dict) -> list[Workout]:
        with DbSession(self.engine) as session:
            rows = session.fetch_all(f"SELECT {_COLUMNS} FROM workouts {clause}", params)
        return [Workout.from_row(row) for row in rows]
