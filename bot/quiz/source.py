from __future__ import annotations

import logging
import random
from typing import Optional

from bot.quiz.errors import SourceUnavailable
from bot.quiz.models import Question
from bot.quiz.ports import QuestionBank

logger = logging.getLogger(__name__)


class QuestionSource:
    def __init__(self, bank: QuestionBank, *, rng: random.Random | None = None) -> None:
        self._bank = bank
        self._rng = rng or random.Random()

    async def fetch(self, count: Optional[int] = None) -> list[Question]:
        """Return a randomly ordered question set; ``count=None`` means the whole bank."""
        try:
            questions = list(await self._bank.load_questions(count))
        except SourceUnavailable:
            raise
        except Exception as exc:
            logger.exception("question bank failed: %s", exc)
            raise SourceUnavailable(str(exc)) from exc

        if not questions:
            raise SourceUnavailable("question bank is empty")

        self._rng.shuffle(questions)
        if count is not None:
            questions = questions[:count]
        return questions
