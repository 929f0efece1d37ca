from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from api.app.models import BotUser, Option, Question, QuizResult, UserAnswer
from api.app.schemas import AnswerUpsert, QuestionCreate, ResultCreate, UserUpsert


def create_question(db: Session, payload: QuestionCreate) -> Question:
    data = payload.model_dump()
    options = data.pop("options", [])
    question = Question(**data)
    db.add(question)
    db.flush()
    for option in options:
        db.add(Option(question=question, **option))
    db.flush()
    db.refresh(question)
    return question


def get_question(db: Session, question_id: uuid.UUID) -> Question | None:
    return db.query(Question).filter(Question.id == question_id).first()


def list_questions(db: Session) -> list[Question]:
    return (
        db.query(Question)
        .options(selectinload(Question.options))
        .order_by(Question.order_num, Question.created_at)
        .all()
    )


def sample_questions(db: Session, count: int | None = None) -> list[Question]:
    query = db.query(Question).options(selectinload(Question.options)).order_by(func.random())
    if count is not None:
        query = query.limit(count)
    return query.all()


def get_user(db: Session, telegram_id: int) -> BotUser | None:
    return db.query(BotUser).filter(BotUser.telegram_id == telegram_id).first()


def ensure_user(db: Session, telegram_id: int, payload: UserUpsert) -> tuple[BotUser, bool]:
    """Insert the user if absent; an existing row is returned untouched."""
    user = get_user(db, telegram_id)
    if user is not None:
        return user, False
    user = BotUser(telegram_id=telegram_id, **payload.model_dump())
    db.add(user)
    db.flush()
    return user, True


def upsert_answer(db: Session, telegram_id: int, question_id: uuid.UUID, payload: AnswerUpsert) -> UserAnswer:
    answer = (
        db.query(UserAnswer)
        .filter(UserAnswer.telegram_id == telegram_id, UserAnswer.question_id == question_id)
        .first()
    )
    if answer is None:
        answer = UserAnswer(telegram_id=telegram_id, question_id=question_id, chosen_option=payload.chosen_option)
        db.add(answer)
    else:
        answer.chosen_option = payload.chosen_option
        answer.answered_at = datetime.now(timezone.utc)
    db.flush()
    return answer


def create_result(db: Session, telegram_id: int, payload: ResultCreate) -> QuizResult:
    result = QuizResult(telegram_id=telegram_id, **payload.model_dump())
    db.add(result)
    db.flush()
    db.refresh(result)
    return result


def list_results(db: Session, telegram_id: int) -> list[QuizResult]:
    return (
        db.query(QuizResult)
        .filter(QuizResult.telegram_id == telegram_id)
        .order_by(QuizResult.ended_at.desc())
        .all()
    )
