import argparse
import time

from lms_trivia.config import GameConfig, UnitStatus
from lms_trivia.quiz.adapters.curriculum_loader import CurriculumLoader
from lms_trivia.quiz.adapters.db_manager import DatabaseManager
from lms_trivia.quiz.adapters.fallback_repository import FallbackProgressRepository
from lms_trivia.quiz.adapters.sqlite_repository import SQLiteProgressRepository
from lms_trivia.quiz.adapters.supabase_repository import SupabaseProgressRepository
from lms_trivia.quiz.application.service import TriviaService
from lms_trivia.quiz.domain.errors import TriviaEngineError
from lms_trivia.quiz.domain.models import (
    CHOICE_KINDS,
    AnswerPayload,
    AnswerSubmission,
    FreeText,
    IndexSet,
    Permutation,
    Question,
    QuestionKind,
    SingleIndex,
)
from lms_trivia.quiz.domain.ports import IProgressRepository
from lms_trivia.quiz.domain.session import TriviaSession
from lms_trivia.shared.observability import configure_logging, configure_observability


# --- 1. Dependency Injection (Composition Root) ---
def build_repository(db_path: str = GameConfig.DB_PATH) -> IProgressRepository:
    cache = SQLiteProgressRepository(DatabaseManager(db_path))
    if not GameConfig.supabase_configured():
        return cache

    url, key = GameConfig.SUPABASE_URL, GameConfig.SUPABASE_KEY
    if not url or not key:
        raise ValueError("SUPABASE_URL and SUPABASE_KEY must both be set")
    return FallbackProgressRepository(SupabaseProgressRepository(url, key), cache)


# --- 2. Terminal input -> payload ---
def parse_payload(question: Question, raw: str) -> AnswerPayload:
    """Options are shown 1-based; indices travel 0-based."""
    if question.kind == QuestionKind.FREE_TEXT:
        return FreeText(text=raw)

    numbers = [int(p) - 1 for p in raw.replace(" ", "").split(",") if p]
    if question.kind in CHOICE_KINDS:
        if len(numbers) != 1:
            raise ValueError("pick exactly one option")
        return SingleIndex(index=numbers[0])
    if question.kind == QuestionKind.MULTI_SELECT:
        return IndexSet(indices=frozenset(numbers))
    return Permutation(order=tuple(numbers))


def ask(question: Question) -> str:
    print(f"\n[{question.difficulty.value}] {question.text}  ({question.time_limit_seconds}s)")
    for i, option in enumerate(question.options, start=1):
        print(f"  {i}. {option}")
    hints = {
        QuestionKind.MULTI_SELECT: "numbers separated by commas",
        QuestionKind.ORDERED_SEQUENCE: "all numbers in the right order",
        QuestionKind.FREE_TEXT: "type your answer",
    }
    return input(f"> ({hints.get(question.kind, 'one number')}) ")


def play(session: TriviaSession) -> None:
    while not session.is_complete:
        question = session.current_question()
        shown_at = time.monotonic()
        raw = ask(question)
        elapsed = time.monotonic() - shown_at

        if elapsed >= question.time_limit_seconds:
            result = session.timeout()
            print("⏰ Time's up!")
        else:
            try:
                payload = parse_payload(question, raw)
            except ValueError:
                print("Could not read that answer, counted as wrong.")
                payload = FreeText(text=raw)
            result = session.submit_answer(
                AnswerSubmission(
                    question_id=question.id, submitted_at=elapsed, payload=payload
                )
            )

        if result.correct:
            print(f"✅ +{result.points_awarded} (speed bonus {result.time_bonus})")
        else:
            print("❌ Wrong")
        if question.explanation:
            print(f"   {question.explanation}")
        print(f"   Score {session.score} | Streak {session.streak}")
        session.advance()


def main() -> None:
    parser = argparse.ArgumentParser(description="Play trivia units from the terminal.")
    parser.add_argument("curriculum", nargs="?", default=GameConfig.DEFAULT_CURRICULUM_PATH)
    parser.add_argument("--learner", default="student")
    parser.add_argument("--db", default=GameConfig.DB_PATH)
    args = parser.parse_args()

    configure_logging()
    configure_observability()

    curriculum = CurriculumLoader().load(args.curriculum)
    service = TriviaService(build_repository(args.db))

    while True:
        print(f"\n=== {curriculum.title} "
              f"({service.completion_percentage(args.learner, curriculum)}%) ===")
        level_map = service.get_level_map(args.learner, curriculum)
        for view in level_map:
            print(f"  {view.index + 1}. {view.status.icon} {view.title}")

        choice = input("Unit number (empty to quit): ").strip()
        if not choice:
            return
        if not choice.isdigit() or int(choice) < 1:
            continue

        unit_index = int(choice) - 1
        try:
            if level_map[unit_index].status == UnitStatus.LOCKED:
                print("🔒 Finish the previous unit first.")
                continue
            session = service.start_unit(args.learner, curriculum, unit_index)
        except (IndexError, TriviaEngineError) as e:
            print(f"Cannot open that unit: {e}")
            continue

        play(session)
        summary = session.summary()
        progress = service.finalize_unit(args.learner, curriculum, unit_index, session)
        print(
            f"\n🏁 {summary.rank} {summary.score} points ({summary.score_percentage}%) | "
            f"best streak {summary.max_streak} | accuracy {summary.accuracy:.0%} | "
            f"total {progress.total_score}"
        )


if __name__ == "__main__":
    main()
