from __future__ import annotations

from .models import SyncStatus, Workout, WorkoutDto
from .repository import WORKOUT_ENTITY_TYPE, WORKOUT_TABLE, WorkoutRepository, workout_handler
from .store import WorkoutStore

__all__ = [
    "SyncStatus",
    "WORKOUT_ENTITY_TYPE",
    "WORKOUT_TABLE",
    "Workout",
    "WorkoutDto",
    "WorkoutRepository",
    "WorkoutStore",
    "workout_handler",
]
