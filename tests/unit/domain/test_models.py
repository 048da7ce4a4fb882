# ==============================================================================
# ARCHITECTURE: UNIT TEST (CORE LOGIC)
# ------------------------------------------------------------------------------
# GOAL: Verify model validation and serialisation rules.
# CONSTRAINTS: No I/O.
# ==============================================================================
from fractions import Fraction

import pytest
from pydantic import TypeAdapter, ValidationError

from lms_trivia.quiz.domain.models import (
    AnswerPayload,
    AnswerSubmission,
    Curriculum,
    Difficulty,
    IndexSet,
    NoAnswer,
    ProgressRecord,
    Question,
    QuestionKind,
    SingleIndex,
    Unit,
)
from tests.drivers.question_factory import make_question


class TestQuestionValidation:
    @pytest.mark.parametrize("kind", list(QuestionKind))
    def test_factory_builds_every_kind(self, kind):
        assert make_question(kind=kind).kind == kind

    def test_choice_question_needs_index_in_range(self):
        with pytest.raises(ValidationError):
            make_question(correct_single=4)

    def test_choice_question_needs_an_answer_key(self):
        with pytest.raises(ValidationError):
            Question(id="x", kind=QuestionKind.SINGLE_CHOICE, options=("a", "b"))

    def test_true_false_needs_two_options(self):
        with pytest.raises(ValidationError):
            make_question(kind=QuestionKind.TRUE_FALSE, options=("yes", "no", "maybe"))

    def test_multi_select_indices_must_be_in_range(self):
        with pytest.raises(ValidationError):
            make_question(kind=QuestionKind.MULTI_SELECT, correct_multi=frozenset({0, 9}))

    def test_ordered_sequence_needs_a_full_permutation(self):
        with pytest.raises(ValidationError):
            make_question(kind=QuestionKind.ORDERED_SEQUENCE, correct_order=(0, 0, 1))

    def test_free_text_needs_expected_text(self):
        with pytest.raises(ValidationError):
            make_question(kind=QuestionKind.FREE_TEXT, correct_text="   ")

    @pytest.mark.parametrize("field", ["time_limit_seconds", "base_points"])
    def test_limits_must_be_positive(self, field):
        with pytest.raises(ValidationError):
            make_question(**{field: 0})

    def test_question_is_immutable(self):
        q = make_question()
        with pytest.raises(ValidationError):
            q.base_points = 1

    def test_parses_from_json_document(self):
        q = Question.model_validate(
            {
                "id": "j1",
                "kind": "multi-select",
                "options": ["a", "b", "c"],
                "correct_multi": [0, 2],
                "difficulty": "hard",
            }
        )
        assert q.correct_multi == frozenset({0, 2})
        assert q.difficulty == Difficulty.HARD


def test_difficulty_multipliers():
    assert Difficulty.EASY.multiplier == 1
    assert Difficulty.MEDIUM.multiplier == Fraction(3, 2)
    assert Difficulty.HARD.multiplier == 2


class TestPayloads:
    def test_tagged_union_dispatches_on_kind(self):
        adapter = TypeAdapter(AnswerPayload)
        assert adapter.validate_python({"kind": "single-index", "index": 1}) == SingleIndex(index=1)
        assert isinstance(
            adapter.validate_python({"kind": "index-set", "indices": [1, 2]}), IndexSet
        )
        assert isinstance(adapter.validate_python({"kind": "no-answer"}), NoAnswer)

    def test_unknown_tag_is_rejected(self):
        with pytest.raises(ValidationError):
            TypeAdapter(AnswerPayload).validate_python({"kind": "guess", "value": 1})

    def test_negative_elapsed_time_is_rejected(self):
        with pytest.raises(ValidationError):
            AnswerSubmission(question_id="Q1", submitted_at=-1, payload=NoAnswer())


class TestCurriculum:
    def test_ordered_unit_ids(self, sample_curriculum):
        assert sample_curriculum.ordered_unit_ids == ["mod-1", "mod-2", "mod-3"]

    def test_duplicate_unit_ids_are_rejected(self):
        with pytest.raises(ValidationError):
            Curriculum(id="c", units=[Unit(id="u"), Unit(id="u")])


class TestProgressRecord:
    def test_dumps_camel_case_for_the_network_store(self):
        record = ProgressRecord(
            learner_id="l1",
            curriculum_id="c1",
            completed_unit_ids={"b", "a"},
            current_unit_index=2,
            total_score=1500,
        )
        payload = record.model_dump(mode="json", by_alias=True)

        assert payload["completedUnitIds"] == ["a", "b"]
        assert payload["currentUnitIndex"] == 2
        assert payload["totalScore"] == 1500
        assert payload["learnerId"] == "l1"

    def test_round_trips_through_aliases(self):
        record = ProgressRecord(learner_id="l1", curriculum_id="c1", completed_unit_ids={"a"})
        restored = ProgressRecord.model_validate(record.model_dump(mode="json", by_alias=True))
        assert restored == record

    def test_negative_counters_are_rejected(self):
        with pytest.raises(ValidationError):
            ProgressRecord(learner_id="l", curriculum_id="c", total_score=-5)
