import sqlite3
from unittest.mock import patch

import pytest

from lms_trivia.quiz.domain.errors import ProgressStoreError
from lms_trivia.quiz.domain.models import ActivityRecord, ProgressRecord


def _activity(learner_id, unit_id, score, curriculum_id="course-1"):
    return ActivityRecord(
        learner_id=learner_id,
        curriculum_id=curriculum_id,
        unit_id=unit_id,
        score=score,
        accuracy=1.0,
        max_streak=2,
        completed=True,
    )


class TestProgress:
    def test_get_or_create_progress_creates_new(self, in_memory_repo, learner_id):
        conn = in_memory_repo._get_connection()

        progress = in_memory_repo.get_or_create_progress(learner_id, "course-1")

        count = conn.execute(
            "SELECT count(*) FROM progress_records WHERE learner_id=?", (learner_id,)
        ).fetchone()[0]
        assert count == 1
        assert progress.completed_unit_ids == set()
        assert progress.current_unit_index == 0
        assert progress.total_score == 0

    def test_save_progress_round_trips(self, in_memory_repo, learner_id):
        record = ProgressRecord(
            learner_id=learner_id,
            curriculum_id="course-1",
            completed_unit_ids={"mod-2", "mod-1"},
            current_unit_index=2,
            total_score=2979,
            best_streak=3,
        )

        in_memory_repo.save_progress(record)
        fetched = in_memory_repo.get_or_create_progress(learner_id, "course-1")

        assert fetched.completed_unit_ids == {"mod-1", "mod-2"}
        assert fetched.current_unit_index == 2
        assert fetched.total_score == 2979
        assert fetched.best_streak == 3
        assert fetched.updated_at == record.updated_at

    def test_save_progress_overwrites(self, in_memory_repo, learner_id):
        first = in_memory_repo.get_or_create_progress(learner_id, "course-1")
        in_memory_repo.save_progress(first.model_copy(update={"total_score": 10}))
        in_memory_repo.save_progress(first.model_copy(update={"total_score": 20}))

        assert in_memory_repo.get_or_create_progress(learner_id, "course-1").total_score == 20

    def test_progress_is_kept_per_curriculum(self, in_memory_repo, learner_id):
        in_memory_repo.save_progress(
            ProgressRecord(learner_id=learner_id, curriculum_id="a", total_score=5)
        )

        assert in_memory_repo.get_or_create_progress(learner_id, "b").total_score == 0
        assert in_memory_repo.get_or_create_progress(learner_id, "a").total_score == 5


class TestActivities:
    def test_activities_come_back_newest_first(self, in_memory_repo, learner_id):
        in_memory_repo.log_activity(_activity(learner_id, "mod-1", 900))
        in_memory_repo.log_activity(_activity(learner_id, "mod-2", 1200))

        history = in_memory_repo.get_activities(learner_id)

        assert [a.unit_id for a in history] == ["mod-2", "mod-1"]
        assert history[0].score == 1200
        assert history[0].completed is True

    def test_activities_filter_by_curriculum(self, in_memory_repo, learner_id):
        in_memory_repo.log_activity(_activity(learner_id, "mod-1", 900, "course-1"))
        in_memory_repo.log_activity(_activity(learner_id, "intro", 300, "course-2"))
        in_memory_repo.log_activity(_activity("someone_else", "mod-1", 50, "course-1"))

        history = in_memory_repo.get_activities(learner_id, "course-2")

        assert [a.unit_id for a in history] == ["intro"]


class TestErrorHandling:
    def test_is_available(self, in_memory_repo):
        assert in_memory_repo.is_available() is True

    def test_database_errors_become_store_errors(self, in_memory_repo, learner_id):
        with patch.object(
            in_memory_repo,
            "_get_connection",
            return_value=_BrokenConnection(),
        ):
            with pytest.raises(ProgressStoreError):
                in_memory_repo.get_or_create_progress(learner_id, "course-1")
            with pytest.raises(ProgressStoreError):
                in_memory_repo.save_progress(
                    ProgressRecord(learner_id=learner_id, curriculum_id="course-1")
                )
            with pytest.raises(ProgressStoreError):
                in_memory_repo.get_activities(learner_id)
            assert in_memory_repo.is_available() is False


class _BrokenConnection:
    def execute(self, *args, **kwargs):
        raise sqlite3.OperationalError("disk I/O error")

    def commit(self):
        raise sqlite3.OperationalError("disk I/O error")
