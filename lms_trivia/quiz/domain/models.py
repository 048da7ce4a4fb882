from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from fractions import Fraction
from typing import Annotated, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    model_validator,
)
from pydantic.alias_generators import to_camel

from lms_trivia.config import GameConfig, UnitStatus
from lms_trivia.fsm import SessionPhase


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# --- Enums ---
class QuestionKind(str, Enum):
    SINGLE_CHOICE = "single-choice"
    TRUE_FALSE = "true-false"
    SELECT_IMAGE = "select-image"
    FREE_TEXT = "free-text"
    MULTI_SELECT = "multi-select"
    ORDERED_SEQUENCE = "ordered-sequence"


# Kinds answered by picking exactly one option.
CHOICE_KINDS: frozenset[QuestionKind] = frozenset(
    {QuestionKind.SINGLE_CHOICE, QuestionKind.TRUE_FALSE, QuestionKind.SELECT_IMAGE}
)


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"

    @property
    def multiplier(self) -> Fraction:
        return GameConfig.difficulty_multiplier(self.value)


# --- Entities ---
class Question(BaseModel):
    """
    Static description of a quiz question.
    Exactly one of the correct_* fields is meaningful, chosen by `kind`.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    kind: QuestionKind
    text: str = ""
    options: tuple[str, ...] = ()
    correct_single: int | None = None
    correct_multi: frozenset[int] | None = None
    correct_text: str | None = None
    correct_order: tuple[int, ...] | None = None
    time_limit_seconds: int = Field(default=30, gt=0)
    base_points: int = Field(default=100, gt=0)
    difficulty: Difficulty = Difficulty.EASY
    explanation: str | None = None
    image_url: str | None = None
    category: str = "General"

    @model_validator(mode="after")
    def _check_answer_key(self) -> "Question":
        n = len(self.options)

        if self.kind in CHOICE_KINDS:
            if self.kind == QuestionKind.TRUE_FALSE and n != 2:
                raise ValueError("true-false questions need exactly two options")
            if n < 2:
                raise ValueError(f"{self.kind.value} questions need options")
            if self.correct_single is None or not 0 <= self.correct_single < n:
                raise ValueError("correct_single must index into options")

        elif self.kind == QuestionKind.MULTI_SELECT:
            if n < 2:
                raise ValueError("multi-select questions need options")
            if not self.correct_multi:
                raise ValueError("correct_multi must name at least one option")
            if any(not 0 <= i < n for i in self.correct_multi):
                raise ValueError("correct_multi must index into options")

        elif self.kind == QuestionKind.FREE_TEXT:
            if self.correct_text is None or not self.correct_text.strip():
                raise ValueError("free-text questions need correct_text")

        elif self.kind == QuestionKind.ORDERED_SEQUENCE:
            if n < 2:
                raise ValueError("ordered-sequence questions need options")
            if self.correct_order is None or sorted(self.correct_order) != list(
                range(n)
            ):
                raise ValueError("correct_order must be a permutation of the options")

        return self


# --- Answer payloads (tagged union keyed by `kind`) ---
class SingleIndex(BaseModel):
    model_config = ConfigDict(frozen=True)
    kind: Literal["single-index"] = "single-index"
    index: int


class IndexSet(BaseModel):
    model_config = ConfigDict(frozen=True)
    kind: Literal["index-set"] = "index-set"
    indices: frozenset[int]


class FreeText(BaseModel):
    model_config = ConfigDict(frozen=True)
    kind: Literal["free-text"] = "free-text"
    text: str


class Permutation(BaseModel):
    model_config = ConfigDict(frozen=True)
    kind: Literal["permutation"] = "permutation"
    order: tuple[int, ...]


class NoAnswer(BaseModel):
    """Sentinel payload used when the question's timer runs out."""

    model_config = ConfigDict(frozen=True)
    kind: Literal["no-answer"] = "no-answer"


AnswerPayload = Annotated[
    SingleIndex | IndexSet | FreeText | Permutation | NoAnswer,
    Field(discriminator="kind"),
]


class AnswerSubmission(BaseModel):
    model_config = ConfigDict(frozen=True)

    question_id: str
    submitted_at: float = Field(ge=0)  # seconds since the question was shown
    payload: AnswerPayload


class AnswerResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    correct: bool
    points_awarded: int = 0
    time_bonus: int = 0


class SessionState(BaseModel):
    """
    Encapsulates the state of one sitting.
    Only TriviaSession mutates it.
    """

    questions: tuple[Question, ...] = ()
    current_index: int = 0
    score: int = 0
    streak: int = 0
    max_streak: int = 0
    results: list[AnswerResult] = []
    phase: SessionPhase = SessionPhase.NOT_STARTED

    def record_result(self, result: AnswerResult) -> None:
        self.results.append(result)
        self.score += result.points_awarded
        if result.correct:
            self.streak += 1
            self.max_streak = max(self.max_streak, self.streak)
        else:
            self.streak = 0

    def reset(self, questions: tuple[Question, ...]) -> None:
        self.questions = questions
        self.current_index = 0
        self.score = 0
        self.streak = 0
        self.max_streak = 0
        self.results = []


class SessionSummary(BaseModel):
    """What the UI shows when a sitting ends."""

    score: int
    max_streak: int
    accuracy: float
    correct_count: int
    total_questions: int
    nominal_points: int
    score_percentage: int
    rank: str


# --- Curriculum ---
class Unit(BaseModel):
    id: str
    title: str = ""
    questions: list[Question] = []


class Curriculum(BaseModel):
    id: str
    title: str = ""
    units: list[Unit] = []

    @model_validator(mode="after")
    def _unique_unit_ids(self) -> "Curriculum":
        ids = self.ordered_unit_ids
        if len(set(ids)) != len(ids):
            raise ValueError("unit ids must be unique within a curriculum")
        return self

    @property
    def ordered_unit_ids(self) -> list[str]:
        return [u.id for u in self.units]


# --- Progress Store records ---
class ProgressRecord(BaseModel):
    """
    Per-learner, per-curriculum progress.
    Serialised with camelCase aliases for the network store.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    learner_id: str
    curriculum_id: str
    completed_unit_ids: set[str] = Field(default_factory=set)
    current_unit_index: int = Field(default=0, ge=0)
    total_score: int = Field(default=0, ge=0)
    best_streak: int = Field(default=0, ge=0)
    updated_at: datetime = Field(default_factory=_utcnow)

    @field_serializer("completed_unit_ids")
    def _sorted_ids(self, ids: set[str]) -> list[str]:
        return sorted(ids)

    def merged_with(self, other: "ProgressRecord") -> "ProgressRecord":
        """
        Combines two copies of the same learner's progress (network store and
        offline cache). Completed units are never dropped; counters keep the
        higher value.
        """
        return self.model_copy(
            update={
                "completed_unit_ids": (
                    self.completed_unit_ids | other.completed_unit_ids
                ),
                "current_unit_index": max(
                    self.current_unit_index, other.current_unit_index
                ),
                "total_score": max(self.total_score, other.total_score),
                "best_streak": max(self.best_streak, other.best_streak),
                "updated_at": max(self.updated_at, other.updated_at),
            }
        )


class ActivityRecord(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    learner_id: str
    curriculum_id: str
    unit_id: str
    score: int
    accuracy: float
    max_streak: int
    completed: bool
    timestamp: datetime = Field(default_factory=_utcnow)


# --- (Data Transfer Object) ---
@dataclass
class UnitView:
    """
    One entry of the level map, decoupled from the progress record.
    """

    index: int
    unit_id: str
    title: str
    status: UnitStatus
    question_count: int
