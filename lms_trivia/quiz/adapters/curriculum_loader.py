import os

from pydantic import ValidationError

from lms_trivia.config import GameConfig
from lms_trivia.quiz.domain.models import Curriculum
from lms_trivia.shared.telemetry import Telemetry, measure_time


class CurriculumLoader:
    """
    Reads course content (units and their trivia questions) from JSON.
    """

    def __init__(self) -> None:
        self.telemetry = Telemetry("CurriculumLoader")

    @measure_time("load_curriculum")
    def load(self, path: str = GameConfig.DEFAULT_CURRICULUM_PATH) -> Curriculum:
        if not os.path.exists(path):
            error = FileNotFoundError(f"Missing curriculum file: {path}")
            self.telemetry.log_error("Curriculum file NOT found", error)
            raise error

        with open(path, encoding="utf-8") as f:
            raw = f.read()

        try:
            curriculum = Curriculum.model_validate_json(raw)
        except ValidationError as e:
            self.telemetry.log_error(f"Invalid curriculum in {path}", e)
            raise

        self.telemetry.log_info(
            "Curriculum loaded",
            curriculum=curriculum.id,
            units=len(curriculum.units),
            questions=sum(len(u.questions) for u in curriculum.units),
        )
        return curriculum
