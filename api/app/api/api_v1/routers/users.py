from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from api.app.crud.quiz import create_result, ensure_user, get_question, list_results, upsert_answer
from api.app.db.session import get_db
from api.app.schemas import AnswerRead, AnswerUpsert, ResultCreate, ResultRead, UserRead, UserUpsert

logger = logging.getLogger("api.users")

router = APIRouter(prefix="/users", tags=["users"])


@router.put("/{telegram_id}", response_model=UserRead)
def ensure_user_handler(
    telegram_id: int,
    payload: UserUpsert,
    response: Response,
    db: Session = Depends(get_db),
):
    user, created = ensure_user(db, telegram_id, payload)
    db.commit()
    if created:
        logger.info("registered user telegram_id=%s username=%s", telegram_id, payload.username)
        response.status_code = status.HTTP_201_CREATED
    return user


@router.put("/{telegram_id}/answers/{question_id}", response_model=AnswerRead)
def upsert_answer_handler(
    telegram_id: int,
    question_id: uuid.UUID,
    payload: AnswerUpsert,
    db: Session = Depends(get_db),
):
    question = get_question(db, question_id)
    if not question:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Question not found")
    if payload.chosen_option >= len(question.options):
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Option out of range")
    answer = upsert_answer(db, telegram_id, question_id, payload)
    db.commit()
    return answer


@router.post("/{telegram_id}/results", response_model=ResultRead, status_code=status.HTTP_201_CREATED)
def create_result_handler(telegram_id: int, payload: ResultCreate, db: Session = Depends(get_db)):
    result = create_result(db, telegram_id, payload)
    db.commit()
    logger.info(
        "saved result telegram_id=%s score=%s correct=%s/%s",
        telegram_id,
        payload.total_score,
        payload.correct,
        payload.total_questions,
    )
    return result


@router.get("/{telegram_id}/results", response_model=list[ResultRead])
def list_results_handler(telegram_id: int, db: Session = Depends(get_db)):
    return list_results(db, telegram_id)
