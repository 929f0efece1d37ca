from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class OptionBase(BaseModel):
    order_num: int
    text: str
    is_correct: bool = False


class OptionCreate(OptionBase):
    pass


class OptionRead(OptionBase):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID


class QuestionBase(BaseModel):
    order_num: int = 0
    text: str = Field(min_length=1)


class QuestionCreate(QuestionBase):
    options: list[OptionCreate] = Field(min_length=2)

    @model_validator(mode="after")
    def check_single_correct(self) -> QuestionCreate:
        correct = sum(1 for option in self.options if option.is_correct)
        if correct != 1:
            raise ValueError(f"exactly one option must be correct, got {correct}")
        return self


class QuestionRead(QuestionBase):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    options: list[OptionRead]


class UserUpsert(BaseModel):
    username: str | None = None
    first_name: str | None = None
    last_name: str | None = None


class UserRead(UserUpsert):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    telegram_id: int
    created_at: datetime


class AnswerUpsert(BaseModel):
    chosen_option: int = Field(ge=0)


class AnswerRead(AnswerUpsert):
    model_config = ConfigDict(from_attributes=True)

    telegram_id: int
    question_id: uuid.UUID
    answered_at: datetime


class ResultCreate(BaseModel):
    started_at: datetime
    ended_at: datetime
    total_questions: int = Field(ge=0)
    attempted: int = Field(ge=0)
    correct: int = Field(ge=0)
    incorrect: int = Field(ge=0)
    unattempted: int = Field(ge=0)
    total_score: int
    answers: list[int | None] = Field(default_factory=list)

    @field_validator("ended_at")
    @classmethod
    def ended_after_start(cls, value: datetime, info) -> datetime:
        started_at = info.data.get("started_at")
        if started_at is not None and value < started_at:
            raise ValueError("ended_at precedes started_at")
        return value

    @model_validator(mode="after")
    def check_counts(self) -> ResultCreate:
        if self.attempted + self.unattempted != self.total_questions:
            raise ValueError("attempted + unattempted must equal total_questions")
        if self.correct + self.incorrect != self.attempted:
            raise ValueError("correct + incorrect must equal attempted")
        return self


class ResultRead(ResultCreate):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    telegram_id: int
    created_at: datetime
