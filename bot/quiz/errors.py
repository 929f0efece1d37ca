class QuizError(Exception):
    """Base class for quiz engine failures. None of them is fatal to the process."""


class SourceUnavailable(QuizError):
    """The question bank could not be reached or returned no questions."""


class NoActiveSession(QuizError):
    def __init__(self, user_id: int) -> None:
        super().__init__(f"no active session for user {user_id}")
        self.user_id = user_id


class NoActiveQuestion(QuizError):
    """Advance was requested while no question is in flight."""


class DeliveryFailure(QuizError):
    """A chat transport call failed."""


class PersistenceFailure(QuizError):
    """A persistence gateway call failed."""
