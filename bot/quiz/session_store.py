from __future__ import annotations

import asyncio
import weakref
from typing import Dict, Optional, Sequence

from bot.quiz.models import Question, QuizSession


class SessionStore:
    """Live quiz sessions keyed by user id, at most one per user.

    Callers hold ``lock(user_id)`` around every read-modify-write of a user's
    session. Locks of different users are independent.
    """

    def __init__(self) -> None:
        self._sessions: Dict[int, QuizSession] = {}
        self._locks: "weakref.WeakValueDictionary[int, asyncio.Lock]" = weakref.WeakValueDictionary()

    def lock(self, user_id: int) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[user_id] = lock
        return lock

    def begin(
        self, *, user_id: int, chat_id: int, questions: Sequence[Question]
    ) -> tuple[QuizSession, Optional[QuizSession]]:
        """Install a fresh session; returns it with the live session it replaced, if any."""
        replaced = self._sessions.pop(user_id, None)
        if replaced is not None and not replaced.is_live:
            replaced = None

        session = QuizSession(user_id=user_id, chat_id=chat_id, questions=list(questions))
        self._sessions[user_id] = session
        return session, replaced

    def get(self, user_id: int) -> Optional[QuizSession]:
        return self._sessions.get(user_id)

    def remove(self, user_id: int, session_id: str | None = None) -> Optional[QuizSession]:
        session = self._sessions.get(user_id)
        if session is None:
            return None
        if session_id is not None and session.session_id != session_id:
            return None
        return self._sessions.pop(user_id)

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._sessions
