from __future__ import annotations

from sqlalchemy.engine import Engine

SYNC_QUEUE_DDL = (
    """
    CREATE TABLE IF NOT EXISTS sync_queue (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        entity_type VARCHAR(64) NOT NULL,
        entity_id VARCHAR(64) NOT NULL,
        operation VARCHAR(16) NOT NULL,
        payload TEXT NOT NULL,
        created_at BIGINT NOT NULL,
        retry_count INTEGER NOT NULL DEFAULT 0,
        last_error TEXT NULL
    )
    """,
    "CREATE UNIQUE INDEX IF NOT EXISTS ux_sync_queue_entity ON sync_queue (entity_type, entity_id)",
    "CREATE INDEX IF NOT EXISTS ix_sync_queue_created ON sync_queue (created_at, id)",
)

WORKOUTS_DDL = (
    """
    CREATE TABLE IF NOT EXISTS workouts (
        workout_id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id VARCHAR(64) NULL,
        exercise_id INTEGER NOT NULL,
        muscle_id INTEGER NOT NULL,
        region_id INTEGER NULL,
        timestamp BIGINT NOT NULL,
        reps INTEGER NULL,
        weight_kg REAL NULL,
        sync_id VARCHAR(64) NOT NULL,
        sync_status VARCHAR(16) NOT NULL DEFAULT 'PENDING',
        updated_at BIGINT NOT NULL,
        is_deleted BOOLEAN NOT NULL DEFAULT 0
    )
    """,
    "CREATE UNIQUE INDEX IF NOT EXISTS ux_workouts_sync_id ON workouts (sync_id)",
    "CREATE INDEX IF NOT EXISTS ix_workouts_user_id ON workouts (user_id)",
)


def create_schema(engine: Engine) -> None:
    """Create the local tables (idempotent). Targets SQLite."""
    with engine.begin() as conn:
        for ddl in SYNC_QUEUE_DDL + WORKOUTS_DDL:
            conn.exec_driver_sql(ddl)
