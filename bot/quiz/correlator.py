from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from bot.quiz.models import SKIPPED, UNSET, QuizSession, SessionState
from bot.quiz.sequencer import Step, advance

logger = logging.getLogger(__name__)


class AnswerOutcome(str, Enum):
    ACCEPTED = "accepted"
    STALE = "stale"
    OUT_OF_RANGE = "out_of_range"


@dataclass(frozen=True)
class AnswerResult:
    outcome: AnswerOutcome
    # False for a duplicate answer on an already answered question
    recorded: bool = False


def is_current(session: QuizSession, token: str | None) -> bool:
    return (
        session.state is SessionState.QUESTION_ACTIVE
        and token is not None
        and token == session.active_delivery_token
    )


def record_answer(session: QuizSession, token: str | None, option_index: int) -> AnswerResult:
    if not is_current(session, token):
        logger.debug(
            "stale answer user=%s token=%s active=%s",
            session.user_id,
            token,
            session.active_delivery_token,
        )
        return AnswerResult(AnswerOutcome.STALE)

    question = session.questions[session.cursor]
    if not 0 <= option_index < len(question.options):
        return AnswerResult(AnswerOutcome.OUT_OF_RANGE)

    if session.answers[session.cursor] is not UNSET:
        return AnswerResult(AnswerOutcome.ACCEPTED, recorded=False)

    session.answers[session.cursor] = option_index
    return AnswerResult(AnswerOutcome.ACCEPTED, recorded=True)


def record_skip(session: QuizSession) -> Step:
    """Mark the current question skipped unless answered, then advance."""
    if is_current(session, session.active_delivery_token):
        if session.answers[session.cursor] is UNSET:
            session.answers[session.cursor] = SKIPPED
    return advance(session)
