from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from bot.quiz.errors import NoActiveQuestion
from bot.quiz.models import Question, QuizSession, SessionState


@dataclass(frozen=True)
class Deliver:
    question: Question
    index: int


@dataclass(frozen=True)
class Terminal:
    pass


Step = Union[Deliver, Terminal]


def advance(session: QuizSession) -> Step:
    """Move the session to its next question.

    From AWAITING_START this enters the first question without moving the
    cursor. From QUESTION_ACTIVE it moves past the delivered question. The
    caller delivers a ``Deliver`` result and records the token with
    ``session.activate``.
    """
    if session.state is SessionState.AWAITING_START:
        pass
    elif session.state is SessionState.QUESTION_ACTIVE:
        if session.active_delivery_token is None:
            raise NoActiveQuestion(f"session {session.session_id} has no delivered question")
        session.cursor += 1
        session.active_delivery_token = None
    else:
        raise NoActiveQuestion(f"session {session.session_id} is {session.state.value}")

    if session.cursor >= len(session.questions):
        session.cursor = len(session.questions)
        session.state = SessionState.FINALIZING
        return Terminal()

    session.state = SessionState.QUESTION_ACTIVE
    return Deliver(question=session.questions[session.cursor], index=session.cursor)
