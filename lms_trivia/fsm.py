import logging
from enum import Enum, auto

from lms_trivia.quiz.domain.errors import InvalidTransitionError

logger = logging.getLogger(__name__)


class SessionPhase(str, Enum):
    NOT_STARTED = "not-started"  # Session created, questions not set yet
    IN_PROGRESS = "in-progress"  # Questions being answered
    COMPLETED = "completed"  # Last question advanced past; terminal


class SessionAction(Enum):
    START = auto()
    NEXT_QUESTION = auto()
    FINISH = auto()


class SessionPhaseMachine:
    """
    Pure FSM Logic.
    Only knows which phase changes are legal; scoring lives elsewhere.
    """

    def __init__(self, initial_phase: SessionPhase = SessionPhase.NOT_STARTED):
        self._phase = initial_phase

    @property
    def current_phase(self) -> SessionPhase:
        return self._phase

    def can(self, action: SessionAction) -> bool:
        return self._next_phase(action) is not None

    def transition(self, action: SessionAction) -> SessionPhase:
        """
        Applies the action or raises InvalidTransitionError.
        COMPLETED has no outgoing transitions.
        """
        previous = self._phase
        target = self._next_phase(action)
        if target is None:
            raise InvalidTransitionError(
                f"{previous.value} does not accept {action.name}"
            )

        self._phase = target
        logger.debug(f"FSM: {previous.value} --[{action.name}]--> {target.value}")
        return target

    def _next_phase(self, action: SessionAction) -> SessionPhase | None:
        """The Transition Table."""
        match (self._phase, action):
            # NOT_STARTED -> IN_PROGRESS
            case (SessionPhase.NOT_STARTED, SessionAction.START):
                return SessionPhase.IN_PROGRESS

            # IN_PROGRESS -> IN_PROGRESS (Next) or COMPLETED (Finish)
            case (SessionPhase.IN_PROGRESS, SessionAction.NEXT_QUESTION):
                return SessionPhase.IN_PROGRESS
            case (SessionPhase.IN_PROGRESS, SessionAction.FINISH):
                return SessionPhase.COMPLETED

            case _:
                return None
