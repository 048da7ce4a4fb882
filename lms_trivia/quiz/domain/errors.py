class TriviaEngineError(Exception):
    """Base class for usage errors raised by the trivia engine."""


# --- Session ---
class InvalidSessionError(TriviaEngineError):
    """start() called with no questions, or from a phase other than not-started."""


class SessionCompletedError(TriviaEngineError):
    """Mutation attempted after the session reached the completed phase."""


class SessionNotActiveError(TriviaEngineError):
    """An active question was required but the session is not in progress."""


class DuplicateAnswerError(TriviaEngineError):
    """A second answer arrived for a question that already has a result."""


class UnexpectedQuestionError(TriviaEngineError):
    """A submission named a question the session has not reached yet."""


class UnansweredQuestionError(TriviaEngineError):
    """advance() called before the current question was scored."""


class NoCurrentQuestionError(TriviaEngineError):
    """advance() called outside the in-progress phase."""


class InvalidTransitionError(TriviaEngineError):
    """The phase machine does not allow this action from the current phase."""


class SessionNotCompletedError(TriviaEngineError):
    """A finished sitting was required but the session is still open."""


class SessionUnitMismatchError(TriviaEngineError):
    """A sitting was finalized against a unit whose questions it did not run."""


# --- Progression ---
class UnknownUnitError(TriviaEngineError):
    """Unit index outside the declared curriculum ordering."""


class UnitLockedError(TriviaEngineError):
    """The requested unit's prerequisite has not been completed."""


# --- Infrastructure ---
class ProgressStoreError(Exception):
    """A Progress Store adapter could not read or write."""
