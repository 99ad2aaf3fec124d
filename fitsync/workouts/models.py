from __future__ import annotations

import json
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping, Optional

from ..queue.models import now_ms

_WIRE_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


class SyncStatus(str, Enum):
    SYNCED = "SYNCED"
    PENDING = "PENDING"
    CONFLICT = "CONFLICT"
    SYNCING = "SYNCING"
    ERROR = "ERROR"


@dataclass(frozen=True)
class Workout:
    """
    A completed exercise, as stored locally.

    ``workout_id`` is the local row key (0 until inserted); ``sync_id`` is
    the UUID shared with the remote table. Deleting only sets
    ``is_deleted``; the row is removed once the delete has synced.
    """
    exercise_id: int
    muscle_id: int
    timestamp: int  # epoch ms
    workout_id: int = 0
    user_id: Optional[str] = None
    region_id: Optional[int] = None
    reps: Optional[int] = None
    weight_kg: Optional[float] = None
    sync_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    sync_status: SyncStatus = SyncStatus.PENDING
    updated_at: int = field(default_factory=now_ms)
    is_deleted: bool = False

    def to_row(self) -> dict[str, Any]:
        row = asdict(self)
        row["sync_status"] = self.sync_status.value
        return row

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Workout":
        return cls(
            workout_id=int(row["workout_id"]),
            user_id=row["user_id"],
            exercise_id=int(row["exercise_id"]),
            muscle_id=int(row["muscle_id"]),
            region_id=row["region_id"],
            timestamp=int(row["timestamp"]),
            reps=row["reps"],
            weight_kg=row["weight_kg"],
            sync_id=row["sync_id"],
            sync_status=SyncStatus(row["sync_status"]),
            updated_at=int(row["updated_at"]),
            is_deleted=bool(row["is_deleted"]),
        )


def format_wire_date(epoch_ms: int) -> str:
    """Epoch ms -> ``2024-05-01T10:15:30.123Z`` (UTC)."""
    moment = datetime.fromtimestamp(epoch_ms // 1000, tz=timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{epoch_ms % 1000:03d}Z"


def parse_wire_date(value: str) -> int:
    moment = datetime.strptime(value, _WIRE_DATE_FORMAT).replace(tzinfo=timezone.utc)
    return int(round(moment.timestamp() * 1000))


@dataclass(frozen=True)
class WorkoutDto:
    """Row of the remote ``workouts`` table; field names are the wire names."""
    id: str
    user_id: str
    exercise_id: int
    muscle_id: int
    workout_date: str
    updated_at: str
    region_id: Optional[int] = None
    reps: Optional[int] = None
    weight_kg: Optional[float] = None
    is_deleted: bool = False

    @classmethod
    def from_entity(cls, workout: Workout, user_id: str) -> "WorkoutDto":
        return cls(
            id=workout.sync_id,
            user_id=user_id,
            exercise_id=workout.exercise_id,
            muscle_id=workout.muscle_id,
            region_id=workout.region_id,
            workout_date=format_wire_date(workout.timestamp),
            reps=workout.reps,
            weight_kg=workout.weight_kg,
            is_deleted=workout.is_deleted,
            updated_at=format_wire_date(workout.updated_at),
        )

    def to_entity(self) -> Workout:
        """Local copy of a remote row, already in sync."""
        return Workout(
            user_id=self.user_id,
            exercise_id=self.exercise_id,
            muscle_id=self.muscle_id,
            region_id=self.region_id,
            timestamp=parse_wire_date(self.workout_date),
            reps=self.reps,
            weight_kg=self.weight_kg,
            sync_id=self.id,
            sync_status=SyncStatus.SYNCED,
            updated_at=parse_wire_date(self.updated_at),
            is_deleted=self.is_deleted,
        )

    def to_row(self) -> dict[str, Any]:
        return asdict(self)

    def to_json(self) -> str:
        return json.dumps(self.to_row(), sort_keys=True)

    @classmethod
    def from_json(cls, payload: str) -> "WorkoutDto":
        """
        Parse a queued payload. Unknown keys are ignored.

        Raises:
            ValueError: If the payload is not a JSON object or lacks a
                required field
        """
        data = json.loads(payload)
        if not isinstance(data, dict):
            raise ValueError("workout payload must be a JSON object")
        known = {name: data[name] for name in cls.__dataclass_fields__ if name in data}
        try:
            return cls(**known)
        except TypeError as exc:
            raise ValueError(f"invalid workout payload: {exc}") from exc
