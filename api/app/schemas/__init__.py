from api.app.schemas.quiz import (
    AnswerRead,
    AnswerUpsert,
    OptionCreate,
    OptionRead,
    QuestionCreate,
    QuestionRead,
    ResultCreate,
    ResultRead,
    UserRead,
    UserUpsert,
)
from api.app.schemas.stats import StatsResponse

__all__ = [
    "AnswerRead",
    "AnswerUpsert",
    "OptionCreate",
    "OptionRead",
    "QuestionCreate",
    "QuestionRead",
    "ResultCreate",
    "ResultRead",
    "UserRead",
    "UserUpsert",
    "StatsResponse",
]
