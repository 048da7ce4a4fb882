import os
from enum import Enum
from fractions import Fraction
from typing import Final


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class UnitStatus(Enum):
    # Enum Member = ("status key", "Icon")
    LOCKED = ("locked", "🔒")
    UNLOCKED = ("unlocked", "▶️")
    COMPLETED = ("completed", "✅")

    def __init__(self, key: str, icon: str):
        self.key = key
        self.icon = icon


class GameConfig:
    # --- Infrastructure Switch ---
    USE_SUPABASE: bool = _env_flag("LMS_TRIVIA_USE_SUPABASE")
    SUPABASE_URL: str | None = os.getenv("SUPABASE_URL")
    SUPABASE_KEY: str | None = os.getenv("SUPABASE_KEY")

    # Local cache (the offline fallback store)
    DB_PATH: str = os.getenv("LMS_TRIVIA_DB_PATH", "data/progress.db")

    # --- Observability ---
    LOG_LEVEL: str = os.getenv("LMS_TRIVIA_LOG_LEVEL", "INFO")
    METRICS_PORT: int = int(os.getenv("LMS_TRIVIA_METRICS_PORT", "0"))

    # --- Content ---
    DEFAULT_CURRICULUM_PATH = "data/demo_curriculum.json"

    # --- Scoring Rules ---
    TIME_BONUS_CAP: Final[int] = 500
    STREAK_BONUS_RATE: Final[str] = "0.1"  # compounding, per prior correct answer
    DIFFICULTY_MULTIPLIERS: Final[dict[str, str]] = {
        "easy": "1.0",
        "medium": "1.5",
        "hard": "2.0",
    }

    # End-of-sitting rank: (minimum score percentage, badge), best first
    RANK_TIERS: Final[tuple[tuple[int, str], ...]] = (
        (95, "🏆"),
        (85, "🥇"),
        (75, "🥈"),
        (65, "🥉"),
    )
    DEFAULT_RANK: Final[str] = "🎯"

    # --- Progression Rules ---
    # Minimum accuracy of a finished sitting for the unit to count as completed.
    PASSING_ACCURACY: float = 0.0

    @staticmethod
    def difficulty_multiplier(difficulty: str) -> Fraction:
        """Exact multiplier for a difficulty key (e.g. 'medium' -> 3/2)."""
        return Fraction(GameConfig.DIFFICULTY_MULTIPLIERS[difficulty])

    @staticmethod
    def streak_multiplier(streak: int) -> Fraction:
        """(1 + rate) ** streak, kept exact so floors are never off by one."""
        return (1 + Fraction(GameConfig.STREAK_BONUS_RATE)) ** streak

    @staticmethod
    def rank_for(score_percentage: int) -> str:
        for threshold, badge in GameConfig.RANK_TIERS:
            if score_percentage >= threshold:
                return badge
        return GameConfig.DEFAULT_RANK

    @staticmethod
    def supabase_configured() -> bool:
        return bool(
            GameConfig.USE_SUPABASE
            and GameConfig.SUPABASE_URL
            and GameConfig.SUPABASE_KEY
        )
