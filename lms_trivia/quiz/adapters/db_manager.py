import os
import sqlite3
from typing import Any

from lms_trivia.shared.telemetry import Telemetry, measure_time


class DatabaseManager:
    """
    Responsible for:
    1. Managing the SQLite connection lifecycle.
    2. Initializing the progress schema (DDL).
    3. Handling additive migrations.
    4. Staying picklable (the connection is dropped and re-opened lazily).
    """

    def __init__(self, db_path: str = "data/progress.db") -> None:
        self.db_path = db_path
        self.telemetry = Telemetry("DatabaseManager")
        self._shared_connection: sqlite3.Connection | None = None

        self._ensure_db_exists()

        # For in-memory DBs, we must keep the connection open immediately
        if self.db_path == ":memory:":
            self._shared_connection = sqlite3.connect(
                ":memory:", check_same_thread=False
            )

        self._init_schema()
        self._migrate_schema()

    # --- SERIALIZATION LOGIC (Pickle Safety) ---
    def __getstate__(self) -> dict[str, Any]:
        state = self.__dict__.copy()
        state.pop("_shared_connection", None)
        return state

    def __setstate__(self, state: dict[str, Any]) -> None:
        # In-memory data does not survive this; file-based DBs do.
        self.__dict__.update(state)
        self._shared_connection = None

    def get_connection(self) -> sqlite3.Connection:
        """Returns a usable database connection, reconnecting if necessary."""
        if self._shared_connection:
            try:
                self._shared_connection.execute("SELECT 1")
                return self._shared_connection
            except sqlite3.ProgrammingError:
                # Connection was closed externally
                self._shared_connection = None

        conn = sqlite3.connect(self.db_path, check_same_thread=False)

        if self.db_path != ":memory:":
            conn.execute("PRAGMA journal_mode=WAL")

        self._shared_connection = conn
        return conn

    def close(self) -> None:
        if self._shared_connection:
            self._shared_connection.close()
            self._shared_connection = None

    def _ensure_db_exists(self) -> None:
        if self.db_path == ":memory:":
            return
        dir_name = os.path.dirname(self.db_path)
        if dir_name:
            os.makedirs(dir_name, exist_ok=True)

    @measure_time("db_init_schema")
    def _init_schema(self) -> None:
        conn = self.get_connection()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS progress_records
                (
                    learner_id         TEXT    NOT NULL,
                    curriculum_id      TEXT    NOT NULL,
                    completed_unit_ids TEXT    NOT NULL DEFAULT '[]',
                    current_unit_index INTEGER NOT NULL DEFAULT 0,
                    total_score        INTEGER NOT NULL DEFAULT 0,
                    updated_at         TEXT,
                    PRIMARY KEY (learner_id, curriculum_id)
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS activities
                (
                    id            INTEGER PRIMARY KEY AUTOINCREMENT,
                    learner_id    TEXT    NOT NULL,
                    curriculum_id TEXT    NOT NULL,
                    unit_id       TEXT    NOT NULL,
                    score         INTEGER NOT NULL,
                    accuracy      REAL    NOT NULL,
                    max_streak    INTEGER NOT NULL,
                    completed     BOOLEAN NOT NULL,
                    timestamp     TEXT    NOT NULL
                )
                """
            )
            conn.commit()
        except sqlite3.Error as e:
            self.telemetry.log_error("Schema Init Failed", e)
            raise

    def _migrate_schema(self) -> None:
        conn = self.get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("PRAGMA table_info(progress_records)")
            columns = [info[1] for info in cursor.fetchall()]

            # Migration: best_streak arrived after the first release
            if "best_streak" not in columns:
                self.telemetry.log_info("Migrating: Adding best_streak to progress_records")
                cursor.execute(
                    "ALTER TABLE progress_records "
                    "ADD COLUMN best_streak INTEGER NOT NULL DEFAULT 0"
                )

            conn.commit()
        except sqlite3.Error as e:
            self.telemetry.log_error("Schema migration failed", e)
            raise
