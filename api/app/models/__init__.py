from api.app.models.quiz_models import BotUser, Option, Question, QuizResult, UserAnswer

__all__ = [
    "BotUser",
    "Option",
    "Question",
    "QuizResult",
    "UserAnswer",
]
