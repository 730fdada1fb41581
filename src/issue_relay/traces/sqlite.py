"""SQLite trace store: one JSON document per trace."""

import json
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from issue_relay.traces.models import AgenticTrace
from issue_relay.traces.store import ORDER_FIELDS, TraceStore

DEFAULT_DB_PATH = Path(".issue-relay/traces.db")


class SqliteTraceStore(TraceStore):
    """Trace store backed by a SQLite database.

    Attributes:
        db_path: Path to the SQLite database file.
    """

    def __init__(self, db_path: Path | str | None = None) -> None:
        """Initialize the store.

        Args:
            db_path: Path to the database file. Defaults to .issue-relay/traces.db
        """
        self.db_path = Path(db_path) if db_path is not None else DEFAULT_DB_PATH
        self._conn: sqlite3.Connection | None = None
        self._init_db()

    def _get_connection(self) -> sqlite3.Connection:
        if self._conn is None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(self.db_path), check_same_thread=False, timeout=30.0)
            self._conn.row_factory = sqlite3.Row
        return self._conn

    @contextmanager
    def _cursor(self) -> Iterator[sqlite3.Cursor]:
        """Get a database cursor with automatic commit/rollback."""
        conn = self._get_connection()
        cursor = conn.cursor()
        try:
            yield cursor
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()

    def _init_db(self) -> None:
        with self._cursor() as cursor:
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS traces (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    status TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    data TEXT NOT NULL
                )
                """
            )
            cursor.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_traces_status
                ON traces(status, created_at)
                """
            )

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def get(self, trace_id: str) -> AgenticTrace | None:
        with self._cursor() as cursor:
            cursor.execute("SELECT data FROM traces WHERE id = ?", (trace_id,))
            row = cursor.fetchone()
        return AgenticTrace.from_dict(json.loads(row["data"])) if row else None

    def _save(self, trace: AgenticTrace) -> None:
        with self._cursor() as cursor:
            cursor.execute(
                """
                INSERT OR REPLACE INTO traces (id, name, status, created_at, updated_at, data)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    trace.id,
                    trace.name,
                    trace.status,
                    trace.created_at,
                    trace.updated_at,
                    json.dumps(trace.to_dict()),
                ),
            )

    def _remove(self, trace_id: str) -> None:
        with self._cursor() as cursor:
            cursor.execute("DELETE FROM traces WHERE id = ?", (trace_id,))

    def _ordered(self, order_by: str, descending: bool, only_pending: bool) -> list[AgenticTrace]:
        column = ORDER_FIELDS[order_by]
        direction = "DESC" if descending else "ASC"
        query = "SELECT data FROM traces"
        params: tuple = ()
        if only_pending:
            query += " WHERE status = ?"
            params = ("pending",)
        query += f" ORDER BY {column} {direction}, id {direction}"
        with self._cursor() as cursor:
            cursor.execute(query, params)
            rows = cursor.fetchall()
        return [AgenticTrace.from_dict(json.loads(row["data"])) for row in rows]

