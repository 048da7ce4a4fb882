from abc import ABC, abstractmethod

from lms_trivia.quiz.domain.models import ActivityRecord, ProgressRecord


class IProgressRepository(ABC):
    """
    The Progress Store. Adapters raise ProgressStoreError on I/O failure.
    """

    @abstractmethod
    def get_or_create_progress(
        self, learner_id: str, curriculum_id: str
    ) -> ProgressRecord:
        pass

    @abstractmethod
    def save_progress(self, record: ProgressRecord) -> None:
        pass

    @abstractmethod
    def log_activity(self, activity: ActivityRecord) -> None:
        pass

    @abstractmethod
    def get_activities(
        self, learner_id: str, curriculum_id: str | None = None
    ) -> list[ActivityRecord]:
        """Newest first."""
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """Cheap health check; never raises."""
        pass
