import pytest

from lms_trivia.quiz.adapters.db_manager import DatabaseManager
from lms_trivia.quiz.adapters.sqlite_repository import SQLiteProgressRepository
from lms_trivia.quiz.domain.models import Curriculum, Unit
from tests.drivers.question_factory import make_question


@pytest.fixture
def sample_question():
    return make_question()


@pytest.fixture
def medium_questions():
    """Three medium single-choice questions worth 100 base points each."""
    return [make_question(f"Q{i}") for i in range(1, 4)]


@pytest.fixture
def sample_curriculum():
    return Curriculum(
        id="course-1",
        title="Course",
        units=[
            Unit(id="mod-1", title="Intro", questions=[make_question("m1-q1")]),
            Unit(
                id="mod-2",
                title="Loops",
                questions=[make_question("m2-q1"), make_question("m2-q2")],
            ),
            Unit(id="mod-3", title="I/O", questions=[make_question("m3-q1")]),
        ],
    )


@pytest.fixture
def learner_id():
    return "test_learner"


@pytest.fixture
def in_memory_repo():
    """Returns a clean, empty in-memory progress repository."""
    db_manager = DatabaseManager(db_path=":memory:")
    repo = SQLiteProgressRepository(db_manager=db_manager)
    yield repo
    db_manager.close()
