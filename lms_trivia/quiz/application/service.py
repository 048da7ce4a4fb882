from datetime import datetime, timezone

from lms_trivia.config import GameConfig
from lms_trivia.quiz.domain.errors import (
    SessionNotCompletedError,
    SessionUnitMismatchError,
    UnitLockedError,
    UnknownUnitError,
)
from lms_trivia.quiz.domain.models import (
    ActivityRecord,
    Curriculum,
    ProgressRecord,
    Unit,
    UnitView,
)
from lms_trivia.quiz.domain.ports import IProgressRepository
from lms_trivia.quiz.domain.session import TriviaSession
from lms_trivia.quiz.domain.unlock import UnlockGate
from lms_trivia.shared.telemetry import Telemetry, measure_time


class TriviaService:
    """
    Use cases around the engine: open a unit, run it, persist the outcome.
    """

    def __init__(self, repo: IProgressRepository):
        self.repo = repo
        self.telemetry = Telemetry("TriviaService")

    def get_progress(self, learner_id: str, curriculum: Curriculum) -> ProgressRecord:
        return self.repo.get_or_create_progress(learner_id, curriculum.id)

    def get_level_map(self, learner_id: str, curriculum: Curriculum) -> list[UnitView]:
        progress = self.get_progress(learner_id, curriculum)
        ordered = curriculum.ordered_unit_ids
        return [
            UnitView(
                index=i,
                unit_id=unit.id,
                title=unit.title,
                status=UnlockGate.unit_status(i, progress.completed_unit_ids, ordered),
                question_count=len(unit.questions),
            )
            for i, unit in enumerate(curriculum.units)
        ]

    def completion_percentage(self, learner_id: str, curriculum: Curriculum) -> int:
        progress = self.get_progress(learner_id, curriculum)
        return UnlockGate.completion_percentage(
            progress.completed_unit_ids, curriculum.ordered_unit_ids
        )

    @measure_time("start_unit")
    def start_unit(
        self, learner_id: str, curriculum: Curriculum, unit_index: int
    ) -> TriviaSession:
        unit = self._unit_at(curriculum, unit_index)
        progress = self.get_progress(learner_id, curriculum)
        self._ensure_unlocked(unit_index, progress, curriculum)

        Telemetry.start_trace()
        session = TriviaSession()
        session.start(unit.questions)
        self.telemetry.log_info(
            "Unit started",
            learner=learner_id,
            unit=unit.id,
            questions=len(unit.questions),
        )
        return session

    @measure_time("finalize_unit")
    def finalize_unit(
        self,
        learner_id: str,
        curriculum: Curriculum,
        unit_index: int,
        session: TriviaSession,
    ) -> ProgressRecord:
        """
        Folds a finished sitting into the learner's progress and persists it.
        The unit counts as completed when accuracy reaches PASSING_ACCURACY.
        The sitting must have run this unit's questions, and the unit must be
        unlocked, so no unit is completed ahead of its prerequisite.
        """
        unit = self._unit_at(curriculum, unit_index)
        if not session.is_complete:
            raise SessionNotCompletedError(
                f"session for unit {unit.id} is still {session.phase.value}"
            )
        if session.questions != tuple(unit.questions):
            raise SessionUnitMismatchError(
                f"session did not run the questions of unit {unit.id}"
            )

        progress = self.get_progress(learner_id, curriculum)
        self._ensure_unlocked(unit_index, progress, curriculum)
        summary = session.summary()
        passed = summary.accuracy >= GameConfig.PASSING_ACCURACY

        completed = set(progress.completed_unit_ids)
        if passed:
            completed = set(UnlockGate.mark_completed(unit.id, completed))

        updated = progress.model_copy(
            update={
                "completed_unit_ids": completed,
                "current_unit_index": max(
                    progress.current_unit_index,
                    UnlockGate.highest_unlocked_index(
                        completed, curriculum.ordered_unit_ids
                    ),
                ),
                "total_score": progress.total_score + summary.score,
                "best_streak": max(progress.best_streak, summary.max_streak),
                "updated_at": datetime.now(timezone.utc),
            }
        )
        self.repo.save_progress(updated)
        self.repo.log_activity(
            ActivityRecord(
                learner_id=learner_id,
                curriculum_id=curriculum.id,
                unit_id=unit.id,
                score=summary.score,
                accuracy=summary.accuracy,
                max_streak=summary.max_streak,
                completed=passed,
            )
        )

        self.telemetry.log_info(
            "Unit finalized",
            learner=learner_id,
            unit=unit.id,
            score=summary.score,
            accuracy=round(summary.accuracy, 2),
            passed=passed,
        )
        self.telemetry.record_sitting(
            curriculum.id, unit.id, summary.score_percentage, passed
        )
        return updated

    @staticmethod
    def _unit_at(curriculum: Curriculum, unit_index: int) -> Unit:
        if not 0 <= unit_index < len(curriculum.units):
            raise UnknownUnitError(
                f"unit index {unit_index} outside curriculum {curriculum.id}"
            )
        return curriculum.units[unit_index]

    @staticmethod
    def _ensure_unlocked(
        unit_index: int, progress: ProgressRecord, curriculum: Curriculum
    ) -> None:
        ordered = curriculum.ordered_unit_ids
        if not UnlockGate.is_unlocked(unit_index, progress.completed_unit_ids, ordered):
            raise UnitLockedError(
                f"unit {ordered[unit_index]} needs {ordered[unit_index - 1]} first"
            )
