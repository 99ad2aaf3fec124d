from __future__ import annotations

import json

import pytest

from fitsync.workouts.models import (
    SyncStatus,
    Workout,
    WorkoutDto,
    format_wire_date,
    parse_wire_date,
)

EPOCH_MS = 1_700_000_000_123  # 2023-11-14T22:13:20.123Z


def test_wire_date_is_utc_with_millis() -> None:
    assert format_wire_date(EPOCH_MS) == "2023-11-14T22:13:20.123Z"
    assert format_wire_date(0) == "1970-01-01T00:00:00.000Z"


def test_parse_wire_date() -> None:
    assert parse_wire_date("2023-11-14T22:13:20.123Z") == EPOCH_MS


def test_dto_uses_remote_column_names() -> None:
    workout = Workout(
        exercise_id=4,
        muscle_id=2,
        region_id=1,
        timestamp=EPOCH_MS,
        reps=12,
        weight_kg=40.5,
        sync_id="abc",
        updated_at=EPOCH_MS,
    )

    row = WorkoutDto.from_entity(workout, "user-1").to_row()

    assert row == {
        "id": "abc",
        "user_id": "user-1",
        "exercise_id": 4,
        "muscle_id": 2,
        "region_id": 1,
        "workout_date": "2023-11-14T22:13:20.123Z",
        "reps": 12,
        "weight_kg": 40.5,
        "is_deleted": False,
        "updated_at": "2023-11-14T22:13:20.123Z",
    }


def test_dto_to_entity_is_marked_synced() -> None:
    dto = WorkoutDto(
        id="abc",
        user_id="user-1",
        exercise_id=4,
        muscle_id=2,
        workout_date="2023-11-14T22:13:20.123Z",
        updated_at="2023-11-14T22:13:20.123Z",
    )

    workout = dto.to_entity()

    assert workout.sync_id == "abc"
    assert workout.timestamp == EPOCH_MS
    assert workout.sync_status == SyncStatus.SYNCED
    assert workout.workout_id == 0


def test_from_json_ignores_unknown_keys() -> None:
    payload = json.dumps(
        {
            "id": "abc",
            "user_id": "u",
            "exercise_id": 1,
            "muscle_id": 1,
            "workout_date": "2023-11-14T22:13:20.123Z",
            "updated_at": "2023-11-14T22:13:20.123Z",
            "created_by_app_version": "2.1",
        }
    )

    assert WorkoutDto.from_json(payload).id == "abc"


@pytest.mark.parametrize("payload", ["[1, 2]", '{"id": "abc"}'])
def test_from_json_rejects_bad_payloads(payload: str) -> None:
    with pytest.raises(ValueError):
        WorkoutDto.from_json(payload)


def test_from_json_rejects_non_json() -> None:
    with pytest.raises(ValueError):
        WorkoutDto.from_json("not json")
