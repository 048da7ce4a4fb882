import pytest

from lms_trivia.config import UnitStatus
from lms_trivia.quiz.domain.errors import UnknownUnitError
from lms_trivia.quiz.domain.unlock import UnlockGate

ORDER = ["intro", "loops", "functions", "io"]


class TestIsUnlocked:
    @pytest.mark.parametrize("completed", [set(), {"io"}, {"intro", "loops"}])
    def test_first_unit_is_always_unlocked(self, completed):
        assert UnlockGate.is_unlocked(0, completed, ORDER) is True

    def test_unit_opens_when_predecessor_is_completed(self):
        assert UnlockGate.is_unlocked(1, {"intro"}, ORDER) is True
        assert UnlockGate.is_unlocked(2, {"intro"}, ORDER) is False

    def test_out_of_order_completion_only_opens_its_successor(self):
        completed = {"functions"}
        assert UnlockGate.is_unlocked(3, completed, ORDER) is True
        assert UnlockGate.is_unlocked(1, completed, ORDER) is False
        assert UnlockGate.is_unlocked(2, completed, ORDER) is False

    def test_predecessor_rule_holds_for_every_position(self):
        completed = {"intro", "functions"}
        for n in range(1, len(ORDER)):
            assert UnlockGate.is_unlocked(n, completed, ORDER) == (ORDER[n - 1] in completed)

    def test_unknown_completed_ids_are_ignored(self):
        assert UnlockGate.is_unlocked(1, {"removed-unit", "intro"}, ORDER) is True
        assert UnlockGate.is_unlocked(2, {"removed-unit"}, ORDER) is False

    @pytest.mark.parametrize("index", [-1, 4, 99])
    def test_index_out_of_range_fails(self, index):
        with pytest.raises(UnknownUnitError):
            UnlockGate.is_unlocked(index, set(), ORDER)

    def test_empty_curriculum_has_no_units(self):
        with pytest.raises(UnknownUnitError):
            UnlockGate.is_unlocked(0, set(), [])


class TestMarkCompleted:
    def test_adds_the_unit(self):
        assert UnlockGate.mark_completed("loops", {"intro"}) == {"intro", "loops"}

    def test_is_idempotent(self):
        once = UnlockGate.mark_completed("loops", {"intro"})
        twice = UnlockGate.mark_completed("loops", once)
        assert once == twice

    def test_does_not_mutate_the_input(self):
        completed = {"intro"}
        UnlockGate.mark_completed("loops", completed)
        assert completed == {"intro"}


class TestProgressViews:
    def test_unit_status(self):
        completed = {"intro"}
        assert UnlockGate.unit_status(0, completed, ORDER) == UnitStatus.COMPLETED
        assert UnlockGate.unit_status(1, completed, ORDER) == UnitStatus.UNLOCKED
        assert UnlockGate.unit_status(2, completed, ORDER) == UnitStatus.LOCKED

    def test_highest_unlocked_index(self):
        assert UnlockGate.highest_unlocked_index(set(), ORDER) == 0
        assert UnlockGate.highest_unlocked_index({"intro", "loops"}, ORDER) == 2
        # Last unit completed: nothing beyond it to open.
        assert UnlockGate.highest_unlocked_index(set(ORDER), ORDER) == 3

    def test_completion_percentage_counts_only_declared_units(self):
        assert UnlockGate.completion_percentage({"intro", "ghost"}, ORDER) == 25
        assert UnlockGate.completion_percentage(set(ORDER), ORDER) == 100
        assert UnlockGate.completion_percentage({"x"}, []) == 0

    def test_completion_percentage_rounds(self):
        assert UnlockGate.completion_percentage({"a"}, ["a", "b", "c"]) == 33
        assert UnlockGate.completion_percentage({"a", "b"}, ["a", "b", "c"]) == 67
