from typing import Any, cast

from postgrest.types import CountMethod

from lms_trivia.quiz.domain.errors import ProgressStoreError
from lms_trivia.quiz.domain.models import ActivityRecord, ProgressRecord
from lms_trivia.quiz.domain.ports import IProgressRepository
from lms_trivia.shared.telemetry import Telemetry, measure_time
from supabase import Client, create_client

PROGRESS_TABLE = "progress"
ACTIVITIES_TABLE = "activities"


class SupabaseProgressRepository(IProgressRepository):
    """
    Network Progress Store. Rows use the camelCase shape of the JSON API
    ({learnerId, curriculumId, completedUnitIds, currentUnitIndex, totalScore, ...}).
    """

    def __init__(self, url: str, key: str) -> None:
        self.telemetry = Telemetry("SupabaseProgressRepository")
        try:
            self.client: Client = create_client(url, key)
        except Exception as e:
            self.telemetry.log_error("Failed to initialize Supabase client", e)
            raise ProgressStoreError(str(e)) from e

    @measure_time("sb_get_or_create_progress")
    def get_or_create_progress(
        self, learner_id: str, curriculum_id: str
    ) -> ProgressRecord:
        try:
            response = (
                self.client.table(PROGRESS_TABLE)
                .select("*")
                .eq("learnerId", learner_id)
                .eq("curriculumId", curriculum_id)
                .execute()
            )
            data = cast(list[dict[str, Any]], response.data)

            if data:
                return ProgressRecord.model_validate(data[0])

            record = ProgressRecord(learner_id=learner_id, curriculum_id=curriculum_id)
            self.client.table(PROGRESS_TABLE).insert(self._payload(record)).execute()
            return record
        except Exception as e:
            self.telemetry.log_error(f"get_or_create_progress failed for {learner_id}", e)
            raise ProgressStoreError(str(e)) from e

    @measure_time("sb_save_progress")
    def save_progress(self, record: ProgressRecord) -> None:
        try:
            self.client.table(PROGRESS_TABLE).upsert(
                self._payload(record), on_conflict="learnerId,curriculumId"
            ).execute()
        except Exception as e:
            self.telemetry.log_error(f"save_progress failed for {record.learner_id}", e)
            raise ProgressStoreError(str(e)) from e

    @measure_time("sb_log_activity")
    def log_activity(self, activity: ActivityRecord) -> None:
        try:
            payload = activity.model_dump(mode="json", by_alias=True)
            self.client.table(ACTIVITIES_TABLE).insert(payload).execute()
        except Exception as e:
            self.telemetry.log_error(f"log_activity failed for {activity.learner_id}", e)
            raise ProgressStoreError(str(e)) from e

    def get_activities(
        self, learner_id: str, curriculum_id: str | None = None
    ) -> list[ActivityRecord]:
        try:
            query = (
                self.client.table(ACTIVITIES_TABLE)
                .select("*")
                .eq("learnerId", learner_id)
            )
            if curriculum_id is not None:
                query = query.eq("curriculumId", curriculum_id)
            response = query.order("timestamp", desc=True).execute()
            data = cast(list[dict[str, Any]], response.data)
            return [ActivityRecord.model_validate(row) for row in data]
        except Exception as e:
            self.telemetry.log_error(f"get_activities failed for {learner_id}", e)
            raise ProgressStoreError(str(e)) from e

    def is_available(self) -> bool:
        try:
            self.client.table(PROGRESS_TABLE).select(
                "learnerId", count=cast(CountMethod, "exact")
            ).limit(1).execute()
            return True
        except Exception as e:
            self.telemetry.log_warning("Supabase health check failed", error=str(e))
            return False

    @staticmethod
    def _payload(record: ProgressRecord) -> dict[str, Any]:
        return record.model_dump(mode="json", by_alias=True)
