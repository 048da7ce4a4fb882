import logging
import sys
import time
import uuid
from collections.abc import Callable
from contextvars import ContextVar
from functools import wraps
from typing import Any, ParamSpec, TypeVar, cast

# --- Prometheus Imports ---
from prometheus_client import REGISTRY, Counter, Histogram

from lms_trivia.config import GameConfig

# --- Context for Correlation IDs ---
correlation_id_ctx: ContextVar[str] = ContextVar("correlation_id", default="system")

# --- Prometheus Metric Definitions ---
METRIC_NAME = "lms_trivia_method_duration_seconds"
SITTINGS_METRIC = "lms_trivia_sittings"
SCORE_METRIC = "lms_trivia_sitting_score_percentage"

M = TypeVar("M", Counter, Histogram)


def _registered(factory: Callable[[], M], name: str) -> M:
    try:
        return factory()
    except ValueError:
        # Module re-imported (tests, reloads): reuse the registered collector.
        return cast(M, REGISTRY._names_to_collectors[name])


METHOD_DURATION = _registered(
    lambda: Histogram(
        METRIC_NAME, "Time spent in trivia engine methods", ["component", "method"]
    ),
    METRIC_NAME,
)
SITTINGS = _registered(
    lambda: Counter(
        SITTINGS_METRIC, "Finished sittings by outcome", ["curriculum", "outcome"]
    ),
    f"{SITTINGS_METRIC}_total",
)
# Multipliers push good sittings past 100%.
SITTING_SCORE = _registered(
    lambda: Histogram(
        SCORE_METRIC,
        "Sitting score as a percentage of base points plus time bonus",
        ["curriculum"],
        buckets=(25, 50, 65, 75, 85, 95, 100, 125, 150, 200),
    ),
    SCORE_METRIC,
)

# --- Type Definitions for Decorator ---
P = ParamSpec("P")
R = TypeVar("R")


def measure_time(metric_name: str) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """
    Decorator for timing instance methods + logging.
    Reads `self.telemetry` when present; always records the histogram.
    """

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        @wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            start = time.perf_counter()

            self_obj: Any = args[0] if args else None
            component = self_obj.__class__.__name__ if self_obj else "Unknown"
            method = func.__name__
            telemetry = getattr(self_obj, "telemetry", None)

            try:
                result = func(*args, **kwargs)
            except Exception as e:
                duration = time.perf_counter() - start
                METHOD_DURATION.labels(component=component, method=method).observe(
                    duration
                )
                if telemetry:
                    telemetry.log_error(
                        f"💥 Failed: {metric_name}",
                        e,
                        duration_ms=round(duration * 1000, 2),
                    )
                raise

            duration = time.perf_counter() - start
            METHOD_DURATION.labels(component=component, method=method).observe(
                duration
            )
            if telemetry:
                telemetry.log_info(
                    f"⏱️ {metric_name}", duration_ms=round(duration * 1000, 2)
                )
            return result

        return wrapper

    return decorator


class Telemetry:
    """
    Facade for Logs, Metrics, and Tracing.
    """

    def __init__(self, component_name: str) -> None:
        self.component = component_name
        self.logger: logging.Logger
        self._setup_logger()

    def _setup_logger(self) -> None:
        """Initializes the logger. Safe to call multiple times."""
        self.logger = logging.getLogger(f"lms_trivia.{self.component}")

        if not self.logger.handlers:
            handler = logging.StreamHandler(sys.stdout)
            formatter = logging.Formatter(
                "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)
            level = logging.getLevelName(GameConfig.LOG_LEVEL.upper())
            self.logger.setLevel(level if isinstance(level, int) else logging.INFO)

    def __getstate__(self) -> dict[str, Any]:
        """Pickling: Save everything EXCEPT the logger."""
        state = self.__dict__.copy()
        state.pop("logger", None)
        return state

    def __setstate__(self, state: dict[str, Any]) -> None:
        """Unpickling: Restore state and re-create logger."""
        self.__dict__.update(state)
        self._setup_logger()

    @staticmethod
    def start_trace() -> str:
        c_id = str(uuid.uuid4())[:8]
        correlation_id_ctx.set(c_id)
        return c_id

    @staticmethod
    def get_trace_id() -> str:
        return correlation_id_ctx.get()

    def log_info(self, event: str, **kwargs: Any) -> None:
        self.logger.info(f"[{self.get_trace_id()}] {event} | {kwargs}")

    def log_warning(self, event: str, **kwargs: Any) -> None:
        self.logger.warning(f"[{self.get_trace_id()}] ⚠️ {event} | {kwargs}")

    def log_error(self, event: str, error: Exception, **kwargs: Any) -> None:
        msg = f"[{self.get_trace_id()}] ❌ {event} | Error: {error} | {kwargs}"
        self.logger.error(msg, exc_info=error)

    def record_sitting(
        self, curriculum_id: str, unit_id: str, score_percentage: int, passed: bool
    ) -> None:
        """Counts a finished sitting and observes its score percentage."""
        outcome = "passed" if passed else "failed"
        SITTINGS.labels(curriculum=curriculum_id, outcome=outcome).inc()
        SITTING_SCORE.labels(curriculum=curriculum_id).observe(score_percentage)
        self.log_info(
            "🏁 Sitting recorded",
            unit=unit_id,
            outcome=outcome,
            score_percentage=score_percentage,
        )
