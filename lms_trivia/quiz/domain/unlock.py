from collections.abc import Collection, Sequence

from lms_trivia.config import UnitStatus
from lms_trivia.quiz.domain.errors import UnknownUnitError


class UnlockGate:
    """
    Pure domain logic for a strictly linear curriculum.
    A unit opens only when the unit right before it is completed, so no
    score lets a learner skip ahead. Completed ids the curriculum does not
    declare are ignored, which keeps old progress valid when units change.
    """

    @staticmethod
    def is_unlocked(
        unit_index: int,
        completed_unit_ids: Collection[str],
        ordered_unit_ids: Sequence[str],
    ) -> bool:
        """
        Example:
            >>> UnlockGate.is_unlocked(1, {"intro"}, ["intro", "loops", "io"])
            True
            >>> UnlockGate.is_unlocked(2, {"intro"}, ["intro", "loops", "io"])
            False
        """
        UnlockGate._check_index(unit_index, ordered_unit_ids)
        if unit_index == 0:
            return True
        return ordered_unit_ids[unit_index - 1] in completed_unit_ids

    @staticmethod
    def is_completed(
        unit_index: int,
        completed_unit_ids: Collection[str],
        ordered_unit_ids: Sequence[str],
    ) -> bool:
        UnlockGate._check_index(unit_index, ordered_unit_ids)
        return ordered_unit_ids[unit_index] in completed_unit_ids

    @staticmethod
    def unit_status(
        unit_index: int,
        completed_unit_ids: Collection[str],
        ordered_unit_ids: Sequence[str],
    ) -> UnitStatus:
        if UnlockGate.is_completed(unit_index, completed_unit_ids, ordered_unit_ids):
            return UnitStatus.COMPLETED
        if UnlockGate.is_unlocked(unit_index, completed_unit_ids, ordered_unit_ids):
            return UnitStatus.UNLOCKED
        return UnitStatus.LOCKED

    @staticmethod
    def mark_completed(unit_id: str, completed_unit_ids: Collection[str]) -> frozenset[str]:
        """Returns a new set; marking a unit twice changes nothing."""
        return frozenset(completed_unit_ids) | {unit_id}

    @staticmethod
    def highest_unlocked_index(
        completed_unit_ids: Collection[str], ordered_unit_ids: Sequence[str]
    ) -> int:
        """Highest position the learner may open (0 for an untouched curriculum)."""
        highest = 0
        for n in range(1, len(ordered_unit_ids)):
            if ordered_unit_ids[n - 1] in completed_unit_ids:
                highest = n
        return highest

    @staticmethod
    def completion_percentage(
        completed_unit_ids: Collection[str], ordered_unit_ids: Sequence[str]
    ) -> int:
        """Rounded share of declared units that are completed, 0-100."""
        if not ordered_unit_ids:
            return 0
        done = sum(1 for uid in set(ordered_unit_ids) if uid in completed_unit_ids)
        return round(done * 100 / len(ordered_unit_ids))

    @staticmethod
    def _check_index(unit_index: int, ordered_unit_ids: Sequence[str]) -> None:
        if not 0 <= unit_index < len(ordered_unit_ids):
            raise UnknownUnitError(
                f"unit index {unit_index} outside curriculum of "
                f"{len(ordered_unit_ids)} units"
            )
