from functools import lru_cache
from typing import Literal, Optional

from pydantic import HttpUrl, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from bot.quiz.controller import QuizOptions
from bot.quiz.scoring import ScoringPolicy


class BotSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_prefix="BOT_", extra="ignore")

    bot_token: str = ""
    api_base_url: HttpUrl | str = "http://api:8000/api/v1"
    api_timeout: float = 10.0
    question_count: Optional[int] = 5
    test_duration_seconds: Optional[float] = 30
    delivery_mode: Literal["buttons", "poll"] = "buttons"
    restart_policy: Literal["finalize", "discard"] = "finalize"
    score_correct: int = 4
    score_incorrect: int = -1
    score_unattempted: int = 0

    @field_validator("question_count", "test_duration_seconds", mode="before")
    @classmethod
    def zero_means_unset(cls, value):
        if isinstance(value, str):
            value = value.strip()
            if not value:
                return None
        if value is not None and float(value) <= 0:
            return None
        return value

    def quiz_options(self) -> QuizOptions:
        return QuizOptions(
            question_count=self.question_count,
            duration_seconds=self.test_duration_seconds,
            restart_policy=self.restart_policy,
            scoring=ScoringPolicy(
                correct=self.score_correct,
                incorrect=self.score_incorrect,
                unattempted=self.score_unattempted,
            ),
        )


@lru_cache(maxsize=1)
def get_settings() -> BotSettings:
    return BotSettings()
