from lms_trivia.quiz.domain.errors import ProgressStoreError
from lms_trivia.quiz.domain.models import ActivityRecord, ProgressRecord
from lms_trivia.quiz.domain.ports import IProgressRepository
from lms_trivia.shared.telemetry import Telemetry, measure_time


class FallbackProgressRepository(IProgressRepository):
    """
    Network store first, local cache second.

    Reads: primary, then the cache when the primary raises ProgressStoreError.
    A successful primary read is merged with the cached copy, so progress made
    while offline survives reconnecting; the merge is written back to
    whichever store was behind.
    Writes: always to the cache; forwarded to the primary, whose failure is
    logged and caught up by the next merging read.
    """

    def __init__(self, primary: IProgressRepository, cache: IProgressRepository) -> None:
        self.primary = primary
        self.cache = cache
        self.telemetry = Telemetry("FallbackProgressRepository")

    @measure_time("fallback_get_or_create_progress")
    def get_or_create_progress(
        self, learner_id: str, curriculum_id: str
    ) -> ProgressRecord:
        try:
            remote = self.primary.get_or_create_progress(learner_id, curriculum_id)
        except ProgressStoreError as e:
            self.telemetry.log_warning(
                "Primary store unreachable, reading local cache",
                learner=learner_id,
                error=str(e),
            )
            return self.cache.get_or_create_progress(learner_id, curriculum_id)

        try:
            local = self.cache.get_or_create_progress(learner_id, curriculum_id)
        except ProgressStoreError as e:
            self.telemetry.log_warning(
                "Local cache unreadable, using primary record",
                learner=learner_id,
                error=str(e),
            )
            self._refresh_cache(remote)
            return remote

        merged = remote.merged_with(local)
        if merged != remote:
            self.telemetry.log_info(
                "Pushing offline progress to primary store",
                learner=learner_id,
                curriculum=curriculum_id,
            )
            self._push_primary(merged)
        if merged != local:
            self._refresh_cache(merged)
        return merged

    @measure_time("fallback_save_progress")
    def save_progress(self, record: ProgressRecord) -> None:
        self.cache.save_progress(record)
        try:
            self.primary.save_progress(record)
        except ProgressStoreError as e:
            self.telemetry.log_warning(
                "Progress saved locally only", learner=record.learner_id, error=str(e)
            )

    def log_activity(self, activity: ActivityRecord) -> None:
        self.cache.log_activity(activity)
        try:
            self.primary.log_activity(activity)
        except ProgressStoreError as e:
            self.telemetry.log_warning(
                "Activity logged locally only", learner=activity.learner_id, error=str(e)
            )

    def get_activities(
        self, learner_id: str, curriculum_id: str | None = None
    ) -> list[ActivityRecord]:
        try:
            return self.primary.get_activities(learner_id, curriculum_id)
        except ProgressStoreError as e:
            self.telemetry.log_warning(
                "Primary store unreachable, reading local activities",
                learner=learner_id,
                error=str(e),
            )
            return self.cache.get_activities(learner_id, curriculum_id)

    def is_available(self) -> bool:
        return self.primary.is_available() or self.cache.is_available()

    def _push_primary(self, record: ProgressRecord) -> None:
        try:
            self.primary.save_progress(record)
        except ProgressStoreError as e:
            self.telemetry.log_warning(
                "Primary store rejected merged progress",
                learner=record.learner_id,
                error=str(e),
            )

    def _refresh_cache(self, record: ProgressRecord) -> None:
        try:
            self.cache.save_progress(record)
        except ProgressStoreError as e:
            self.telemetry.log_warning(
                "Local cache refresh failed", learner=record.learner_id, error=str(e)
            )
