from __future__ import annotations

from typing import Any, Mapping

from sqlalchemy import text
from sqlalchemy.engine import Connection, CursorResult, Engine
from sqlalchemy.sql import TextClause


class DbSession:
    """
    One transaction on the local SQLite database.

    Every queue and workout store call opens its own session, so a call
    either lands completely or not at all: committed when the block exits
    cleanly, rolled back when it raises. Statements are plain SQL text with
    named parameters; rows come back as dicts ready for ``from_row``.

    Use as:
        with DbSession(engine) as session:
            record_id = session.insert_returning_id("INSERT INTO sync_queue ...", params)
            row = session.fetch_one("SELECT ... FROM sync_queue WHERE id = :id", {"id": record_id})
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self._conn: Connection | None = None
        self._tx = None

    def __enter__(self) -> "DbSession":
        if self._conn is not None:
            raise RuntimeError("DbSession is already active; nested sessions are not allowed")
        self._conn = self.engine.connect()
        self._tx = self._conn.begin()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            if self._tx is not None:
                if exc_type:
                    self._tx.rollback()
                else:
                    self._tx.commit()
        finally:
            if self._conn is not None:
                self._conn.close()

            self._conn = None
            self._tx = None

        return False

    def _run(self, sql: str | TextClause, params: Mapping[str, Any] | None) -> CursorResult:
        if self._conn is None:
            raise RuntimeError("DbSession is not active; use within a context manager")
        stmt = text(sql) if isinstance(sql, str) else sql
        return self._conn.execute(stmt, params or {})

    def execute(
        self,
        sql: str | TextClause,
        params: Mapping[str, Any] | None = None,
    ) -> int:
        """Run an UPDATE or DELETE; returns the number of rows it touched."""
        result = self._run(sql, params)
        if result.rowcount is None:
            raise RuntimeError("execute() got no rowcount; use it for UPDATE and DELETE only")
        return int(result.rowcount)

    def insert_returning_id(
        self,
        sql: str | TextClause,
        params: Mapping[str, Any] | None = None,
    ) -> int:
        """
        Run an INSERT into ``sync_queue`` or ``workouts`` and return the
        AUTOINCREMENT key SQLite assigned to the new row.
        """
        result = self._run(sql, params)
        if result.lastrowid is None:
            raise RuntimeError("insert_returning_id() did not receive a generated key")
        return int(result.lastrowid)

    def execute_scalar(
        self,
        sql: str | TextClause,
        params: Mapping[str, Any] | None = None,
    ) -> Any:
        """Single value of a one-row, one-column query (COUNT, id lookup), or None."""
        result = self._run(sql, params)
        return result.scalar_one_or_none()

    def fetch_one(
        self,
        sql: str | TextClause,
        params: Mapping[str, Any] | None = None,
    ) -> dict[str, Any] | None:
        """Row of a point lookup as a dict, or None. More than one row is an error."""
        result = self._run(sql, params)
        row = result.mappings().one_or_none()
        if row is None:
            return None
        return dict(row)

    def fetch_all(
        self,
        sql: str | TextClause,
        params: Mapping[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        """Every row of a listing query, as dicts in result order."""
        result = self._run(sql, params)
        return [dict(row) for row in result.mappings()]
