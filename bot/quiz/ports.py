"""Contracts the quiz engine consumes from the chat transport and the API."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Protocol, Sequence

from bot.quiz.models import Question, ScoreSummary


class ChatTransport(Protocol):
    async def send_question(self, chat_id: int, question: Question, index: int, total: int) -> str:
        """Deliver a question and return its delivery token."""

    async def close_delivery(self, token: str) -> None:
        """Stop accepting answers on a delivered question."""

    async def update_control(self, token: str, answered: bool) -> None:
        """Swap the Skip control for Next once the question is answered."""

    async def send_text(self, chat_id: int, text: str, start_button: bool = False) -> None:
        ...


class PersistenceGateway(Protocol):
    async def ensure_user(self, user_id: int, profile: dict[str, Any]) -> None:
        ...

    async def record_answer(self, user_id: int, question_id: str, option_index: int) -> None:
        ...

    async def save_test_result(
        self,
        user_id: int,
        started_at: datetime,
        ended_at: datetime,
        summary: ScoreSummary,
        raw_answers: Sequence[Optional[int]],
    ) -> None:
        ...


class QuestionBank(Protocol):
    async def load_questions(self, limit: Optional[int] = None) -> list[Question]:
        ...
