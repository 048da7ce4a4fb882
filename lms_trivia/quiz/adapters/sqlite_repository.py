import json
import sqlite3
from datetime import datetime, timezone

from lms_trivia.quiz.adapters.db_manager import DatabaseManager
from lms_trivia.quiz.domain.errors import ProgressStoreError
from lms_trivia.quiz.domain.models import ActivityRecord, ProgressRecord
from lms_trivia.quiz.domain.ports import IProgressRepository
from lms_trivia.shared.telemetry import Telemetry, measure_time


class SQLiteProgressRepository(IProgressRepository):
    """
    Local Progress Store. Serves as the offline cache behind the network store.
    """

    def __init__(self, db_manager: DatabaseManager) -> None:
        self.telemetry = Telemetry("SQLiteProgressRepository")
        self.db_manager = db_manager

    def _get_connection(self) -> sqlite3.Connection:
        return self.db_manager.get_connection()

    @measure_time("db_get_or_create_progress")
    def get_or_create_progress(
        self, learner_id: str, curriculum_id: str
    ) -> ProgressRecord:
        conn = self._get_connection()
        try:
            row = conn.execute(
                """
                SELECT completed_unit_ids, current_unit_index, total_score,
                       best_streak, updated_at
                FROM progress_records
                WHERE learner_id = ? AND curriculum_id = ?
                """,
                (learner_id, curriculum_id),
            ).fetchone()

            if not row:
                record = ProgressRecord(learner_id=learner_id, curriculum_id=curriculum_id)
                self._upsert(conn, record)
                conn.commit()
                self.telemetry.log_info(
                    "Progress created", learner=learner_id, curriculum=curriculum_id
                )
                return record

            completed_json, current_index, total_score, best_streak, updated_at = row
            return ProgressRecord(
                learner_id=learner_id,
                curriculum_id=curriculum_id,
                completed_unit_ids=set(json.loads(completed_json or "[]")),
                current_unit_index=current_index,
                total_score=total_score,
                best_streak=best_streak,
                updated_at=datetime.fromisoformat(updated_at)
                if updated_at
                else datetime.now(timezone.utc),
            )
        except (sqlite3.Error, json.JSONDecodeError) as e:
            self.telemetry.log_error(f"get_or_create_progress failed for {learner_id}", e)
            raise ProgressStoreError(str(e)) from e

    @measure_time("db_save_progress")
    def save_progress(self, record: ProgressRecord) -> None:
        conn = self._get_connection()
        try:
            self._upsert(conn, record)
            conn.commit()
        except sqlite3.Error as e:
            self.telemetry.log_error(f"save_progress failed for {record.learner_id}", e)
            raise ProgressStoreError(str(e)) from e

    def _upsert(self, conn: sqlite3.Connection, record: ProgressRecord) -> None:
        conn.execute(
            """
            INSERT INTO progress_records (learner_id, curriculum_id, completed_unit_ids,
                                          current_unit_index, total_score, best_streak,
                                          updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(learner_id, curriculum_id) DO UPDATE SET
                completed_unit_ids = excluded.completed_unit_ids,
                current_unit_index = excluded.current_unit_index,
                total_score        = excluded.total_score,
                best_streak        = excluded.best_streak,
                updated_at         = excluded.updated_at
            """,
            (
                record.learner_id,
                record.curriculum_id,
                json.dumps(sorted(record.completed_unit_ids)),
                record.current_unit_index,
                record.total_score,
                record.best_streak,
                record.updated_at.isoformat(),
            ),
        )

    @measure_time("db_log_activity")
    def log_activity(self, activity: ActivityRecord) -> None:
        conn = self._get_connection()
        try:
            conn.execute(
                """
                INSERT INTO activities (learner_id, curriculum_id, unit_id, score,
                                        accuracy, max_streak, completed, timestamp)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    activity.learner_id,
                    activity.curriculum_id,
                    activity.unit_id,
                    activity.score,
                    activity.accuracy,
                    activity.max_streak,
                    activity.completed,
                    activity.timestamp.isoformat(),
                ),
            )
            conn.commit()
        except sqlite3.Error as e:
            self.telemetry.log_error(f"log_activity failed for {activity.learner_id}", e)
            raise ProgressStoreError(str(e)) from e

    def get_activities(
        self, learner_id: str, curriculum_id: str | None = None
    ) -> list[ActivityRecord]:
        conn = self._get_connection()
        sql = """
              SELECT learner_id, curriculum_id, unit_id, score, accuracy,
                     max_streak, completed, timestamp
              FROM activities
              WHERE learner_id = ?
              """
        params: list[str] = [learner_id]
        if curriculum_id is not None:
            sql += " AND curriculum_id = ?"
            params.append(curriculum_id)
        sql += " ORDER BY id DESC"

        try:
            rows = conn.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            self.telemetry.log_error(f"get_activities failed for {learner_id}", e)
            raise ProgressStoreError(str(e)) from e

        return [
            ActivityRecord(
                learner_id=row[0],
                curriculum_id=row[1],
                unit_id=row[2],
                score=row[3],
                accuracy=row[4],
                max_streak=row[5],
                completed=bool(row[6]),
                timestamp=datetime.fromisoformat(row[7]),
            )
            for row in rows
        ]

    def is_available(self) -> bool:
        try:
            self._get_connection().execute("SELECT 1")
            return True
        except sqlite3.Error:
            return False
