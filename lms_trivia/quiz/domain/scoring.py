import math
from fractions import Fraction

from lms_trivia.config import GameConfig
from lms_trivia.quiz.domain.models import (
    CHOICE_KINDS,
    AnswerPayload,
    AnswerResult,
    AnswerSubmission,
    FreeText,
    IndexSet,
    Permutation,
    Question,
    QuestionKind,
    SingleIndex,
)

_MISSED = AnswerResult(correct=False, points_awarded=0, time_bonus=0)


class ScoringCalculator:
    """
    Pure domain logic for scoring a single answered question.
    No clock, no I/O: the elapsed time travels inside the submission.
    """

    @staticmethod
    def is_correct(question: Question, payload: AnswerPayload) -> bool:
        """
        Checks the payload against the question's answer key.
        A payload of the wrong shape for the question's kind is simply wrong.
        """
        if question.kind in CHOICE_KINDS:
            return (
                isinstance(payload, SingleIndex)
                and payload.index == question.correct_single
            )

        if question.kind == QuestionKind.MULTI_SELECT:
            return isinstance(payload, IndexSet) and not (
                payload.indices ^ (question.correct_multi or frozenset())
            )

        if question.kind == QuestionKind.FREE_TEXT:
            expected = (question.correct_text or "").strip().lower()
            return isinstance(payload, FreeText) and (
                payload.text.strip().lower() == expected
            )

        if question.kind == QuestionKind.ORDERED_SEQUENCE:
            return isinstance(payload, Permutation) and (
                tuple(payload.order) == question.correct_order
            )

        return False

    @staticmethod
    def is_timed_out(question: Question, elapsed_seconds: float) -> bool:
        return elapsed_seconds >= question.time_limit_seconds

    @staticmethod
    def time_bonus(question: Question, elapsed_seconds: float) -> int:
        """
        Linear speed bonus: the full cap for an instant answer, 0 at the deadline.
        """
        limit = question.time_limit_seconds
        ratio = (limit - Fraction(elapsed_seconds)) / limit
        ratio = min(Fraction(1), max(Fraction(0), ratio))
        return math.floor(ratio * GameConfig.TIME_BONUS_CAP)

    @staticmethod
    def evaluate(
        question: Question, submission: AnswerSubmission, streak_before: int
    ) -> AnswerResult:
        """
        Scores one answer.

        Args:
            question: The question being answered.
            submission: The learner's answer and its elapsed time.
            streak_before: Consecutive correct answers before this one.

        Returns:
            AnswerResult with points = floor((base + time bonus)
            * difficulty multiplier * 1.1 ** streak_before), or all zeros
            when the answer is wrong or late.

        Example:
            >>> # base 100, medium, answered instantly, streak 2
            >>> # floor((100 + 500) * 1.5 * 1.21) == 1089
        """
        if streak_before < 0:
            raise ValueError("streak_before must be non-negative")

        if ScoringCalculator.is_timed_out(question, submission.submitted_at):
            return _MISSED

        if not ScoringCalculator.is_correct(question, submission.payload):
            return _MISSED

        bonus = ScoringCalculator.time_bonus(question, submission.submitted_at)
        points = (
            (question.base_points + bonus)
            * question.difficulty.multiplier
            * GameConfig.streak_multiplier(streak_before)
        )
        return AnswerResult(
            correct=True, points_awarded=math.floor(points), time_bonus=bonus
        )

    @staticmethod
    def score_percentage(score: int, nominal_points: int, time_bonus_total: int) -> int:
        """
        Score as a share of base points plus the speed bonuses earned, rounded
        half up. Multipliers can push it past 100. Returns 0 with no points.
        """
        attainable = nominal_points + time_bonus_total
        if attainable <= 0:
            return 0
        return math.floor(Fraction(score * 100, attainable) + Fraction(1, 2))
