from collections.abc import Sequence

from lms_trivia.config import GameConfig
from lms_trivia.fsm import SessionAction, SessionPhase, SessionPhaseMachine
from lms_trivia.quiz.domain.errors import (
    DuplicateAnswerError,
    InvalidSessionError,
    NoCurrentQuestionError,
    SessionCompletedError,
    SessionNotActiveError,
    UnansweredQuestionError,
    UnexpectedQuestionError,
)
from lms_trivia.quiz.domain.models import (
    AnswerResult,
    AnswerSubmission,
    NoAnswer,
    Question,
    SessionState,
    SessionSummary,
)
from lms_trivia.quiz.domain.scoring import ScoringCalculator


class TriviaSession:
    """
    One sitting through an ordered list of questions.

    Lifecycle: start() -> (submit_answer() | timeout()) -> advance() -> ...
    At most one answer is accepted per question, so a timer firing timeout()
    and a late click on the same question resolve to whichever came first.
    Every rejected call leaves the state untouched.
    """

    def __init__(self) -> None:
        self._fsm = SessionPhaseMachine()
        self._state = SessionState()

    # --- Commands ---

    def start(self, questions: Sequence[Question]) -> None:
        if not self._fsm.can(SessionAction.START):
            raise InvalidSessionError(
                f"start() not allowed in phase {self._fsm.current_phase.value}"
            )
        if not questions:
            raise InvalidSessionError("a session needs at least one question")

        self._state.reset(tuple(questions))
        self._state.phase = self._fsm.transition(SessionAction.START)

    def submit_answer(self, submission: AnswerSubmission) -> AnswerResult:
        question = self._answerable_question()

        if submission.question_id != question.id:
            answered = {q.id for q in self._state.questions[: self._state.current_index]}
            if submission.question_id in answered:
                raise DuplicateAnswerError(
                    f"question {submission.question_id} was already scored"
                )
            raise UnexpectedQuestionError(
                f"expected an answer for {question.id}, got {submission.question_id}"
            )

        result = ScoringCalculator.evaluate(question, submission, self._state.streak)
        self._state.record_result(result)
        return result

    def timeout(self) -> AnswerResult:
        question = self._answerable_question()
        submission = AnswerSubmission(
            question_id=question.id,
            submitted_at=question.time_limit_seconds,
            payload=NoAnswer(),
        )
        return self.submit_answer(submission)

    def advance(self) -> None:
        if not self._fsm.can(SessionAction.FINISH):
            raise NoCurrentQuestionError(
                f"advance() not allowed in phase {self._fsm.current_phase.value}"
            )
        if not self._current_is_scored():
            raise UnansweredQuestionError(
                f"question {self._state.current_index} has not been answered"
            )

        self._state.current_index += 1
        if self._state.current_index == len(self._state.questions):
            self._state.phase = self._fsm.transition(SessionAction.FINISH)
        else:
            self._state.phase = self._fsm.transition(SessionAction.NEXT_QUESTION)

    # --- Queries ---

    def current_question(self) -> Question:
        if self._fsm.current_phase != SessionPhase.IN_PROGRESS:
            raise SessionNotActiveError(
                f"no active question in phase {self._fsm.current_phase.value}"
            )
        return self._state.questions[self._state.current_index]

    @property
    def phase(self) -> SessionPhase:
        return self._fsm.current_phase

    @property
    def is_complete(self) -> bool:
        return self._fsm.current_phase == SessionPhase.COMPLETED

    @property
    def current_index(self) -> int:
        return self._state.current_index

    @property
    def score(self) -> int:
        return self._state.score

    @property
    def streak(self) -> int:
        return self._state.streak

    @property
    def max_streak(self) -> int:
        return self._state.max_streak

    @property
    def results(self) -> tuple[AnswerResult, ...]:
        return tuple(self._state.results)

    @property
    def questions(self) -> tuple[Question, ...]:
        return self._state.questions

    @property
    def accuracy(self) -> float:
        results = self._state.results
        if not results:
            return 0.0
        return sum(1 for r in results if r.correct) / len(results)

    def summary(self) -> SessionSummary:
        nominal = sum(q.base_points for q in self._state.questions)
        percentage = ScoringCalculator.score_percentage(
            self._state.score,
            nominal,
            sum(r.time_bonus for r in self._state.results),
        )
        return SessionSummary(
            score=self._state.score,
            max_streak=self._state.max_streak,
            accuracy=self.accuracy,
            correct_count=sum(1 for r in self._state.results if r.correct),
            total_questions=len(self._state.questions),
            nominal_points=nominal,
            score_percentage=percentage,
            rank=GameConfig.rank_for(percentage),
        )

    def snapshot(self) -> SessionState:
        """Deep copy of the internal state, safe to hand to a UI."""
        return self._state.model_copy(deep=True)

    # --- Internals ---

    def _current_is_scored(self) -> bool:
        return len(self._state.results) > self._state.current_index

    def _answerable_question(self) -> Question:
        phase = self._fsm.current_phase
        if phase == SessionPhase.COMPLETED:
            raise SessionCompletedError("the session is already completed")
        if phase != SessionPhase.IN_PROGRESS:
            raise SessionNotActiveError("start() has not been called")
        if self._current_is_scored():
            raise DuplicateAnswerError(
                f"question {self._state.current_index} already has a result"
            )
        return self._state.questions[self._state.current_index]
