from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from api.app.core.config import get_settings
from api.app.crud.quiz import create_question, list_questions, sample_questions
from api.app.db.session import get_db
from api.app.schemas import QuestionCreate, QuestionRead

router = APIRouter(prefix="/questions", tags=["questions"])


@router.get("/", response_model=list[QuestionRead])
def get_questions(db: Session = Depends(get_db)):
    return list_questions(db)


@router.post("/", response_model=QuestionRead, status_code=status.HTTP_201_CREATED)
def create_question_handler(payload: QuestionCreate, db: Session = Depends(get_db)):
    question = create_question(db, payload)
    db.commit()
    db.refresh(question)
    return question


@router.get("/sample", response_model=list[QuestionRead])
def get_question_sample(
    count: int | None = Query(default=None, ge=1),
    db: Session = Depends(get_db),
):
    """Random questions; the whole bank when ``count`` is omitted or exceeds it."""
    if count is not None:
        count = min(count, get_settings().sample_max)
    return sample_questions(db, count)
