from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Union


class Mark(Enum):
    UNSET = "unset"
    SKIPPED = "skipped"


UNSET = Mark.UNSET
SKIPPED = Mark.SKIPPED

AnswerSlot = Union[int, Mark]


class SessionState(str, Enum):
    AWAITING_START = "awaiting_start"
    QUESTION_ACTIVE = "question_active"
    FINALIZING = "finalizing"
    COMPLETED = "completed"


@dataclass(frozen=True)
class Question:
    id: str
    text: str
    options: tuple[str, ...]
    correct_option_index: int

    def __post_init__(self) -> None:
        if not self.options:
            raise ValueError(f"question {self.id} has no options")
        if not 0 <= self.correct_option_index < len(self.options):
            raise ValueError(
                f"question {self.id}: correct option {self.correct_option_index} "
                f"is outside {len(self.options)} options"
            )

    @classmethod
    def from_api(cls, data: dict) -> Question:
        """Build a question from the API payload (options ordered by ``order_num``)."""
        options = sorted(data.get("options", []), key=lambda item: item.get("order_num", 0))
        correct = [idx for idx, option in enumerate(options) if option.get("is_correct")]
        if len(correct) != 1:
            raise ValueError(f"question {data.get('id')} must have exactly one correct option")
        return cls(
            id=str(data["id"]),
            text=data.get("text", ""),
            options=tuple(option.get("text") or "" for option in options),
            correct_option_index=correct[0],
        )


@dataclass
class QuizSession:
    user_id: int
    chat_id: int
    questions: list[Question]
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    cursor: int = 0
    answers: list[AnswerSlot] = field(default_factory=list)
    active_delivery_token: Optional[str] = None
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    state: SessionState = SessionState.AWAITING_START
    deadline: Optional[asyncio.Task] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        self.questions = list(self.questions)
        if not self.answers:
            self.answers = [UNSET] * len(self.questions)
        if len(self.answers) != len(self.questions):
            raise ValueError("answers must have one slot per question")

    @property
    def current_question(self) -> Question | None:
        if self.cursor < len(self.questions):
            return self.questions[self.cursor]
        return None

    @property
    def is_live(self) -> bool:
        return self.state is not SessionState.COMPLETED

    def activate(self, token: str) -> None:
        """Record the delivery token of the question at the cursor."""
        self.active_delivery_token = token

    def cancel_deadline(self) -> None:
        task = self.deadline
        self.deadline = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()


@dataclass(frozen=True)
class ScoreSummary:
    total: int
    attempted: int
    correct: int
    incorrect: int
    unattempted: int
    total_score: int

    def as_dict(self) -> dict[str, int]:
        return {
            "total": self.total,
            "attempted": self.attempted,
            "correct": self.correct,
            "incorrect": self.incorrect,
            "unattempted": self.unattempted,
            "total_score": self.total_score,
        }


@dataclass(frozen=True)
class FinalReport:
    user_id: int
    session_id: str
    summary: ScoreSummary
    started_at: datetime
    ended_at: datetime
    raw_answers: list[Optional[int]]
    persisted: bool = True

    @property
    def elapsed_seconds(self) -> float:
        return (self.ended_at - self.started_at).total_seconds()
