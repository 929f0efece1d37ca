from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional, Sequence

import httpx

from bot.config import get_settings
from bot.quiz.errors import PersistenceFailure, SourceUnavailable
from bot.quiz.models import Question, ScoreSummary

logger = logging.getLogger(__name__)


class ApiClient:
    """HTTP client for the quiz API: question bank and persistence gateway."""

    def __init__(self, base_url: str | None = None, *, transport: httpx.AsyncBaseTransport | None = None) -> None:
        settings = get_settings()
        self.base_url = (base_url or str(settings.api_base_url)).rstrip("/")
        self._client = httpx.AsyncClient(base_url=self.base_url, timeout=settings.api_timeout, transport=transport)

    async def load_questions(self, limit: Optional[int] = None) -> list[Question]:
        params = {"count": limit} if limit else None
        try:
            response = await self._client.get("/questions/sample", params=params)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise SourceUnavailable(f"question bank unreachable: {exc}") from exc
        questions = []
        for item in response.json():
            try:
                questions.append(Question.from_api(item))
            except (KeyError, ValueError) as exc:
                logger.warning("skipping malformed question %s: %s", item.get("id"), exc)
        return questions

    async def ensure_user(self, user_id: int, profile: dict[str, Any]) -> None:
        payload = {key: profile.get(key) for key in ("username", "first_name", "last_name")}
        await self._send("PUT", f"/users/{user_id}", json=payload)

    async def record_answer(self, user_id: int, question_id: str, option_index: int) -> None:
        await self._send(
            "PUT",
            f"/users/{user_id}/answers/{question_id}",
            json={"chosen_option": option_index},
        )

    async def save_test_result(
        self,
        user_id: int,
        started_at: datetime,
        ended_at: datetime,
        summary: ScoreSummary,
        raw_answers: Sequence[Optional[int]],
    ) -> None:
        payload = {
            "started_at": started_at.isoformat(),
            "ended_at": ended_at.isoformat(),
            "total_questions": summary.total,
            "attempted": summary.attempted,
            "correct": summary.correct,
            "incorrect": summary.incorrect,
            "unattempted": summary.unattempted,
            "total_score": summary.total_score,
            "answers": list(raw_answers),
        }
        await self._send("POST", f"/users/{user_id}/results", json=payload)

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise PersistenceFailure(f"{method} {url}: {exc}") from exc
        return response

    async def aclose(self) -> None:
        await self._client.aclose()
