from datetime import date, datetime, time, timedelta, timezone

from fastapi import APIRouter, Depends
from sqlalchemy import func
from sqlalchemy.orm import Session

from api.app.db.session import get_db
from api.app.models import BotUser, QuizResult
from api.app.schemas.stats import StatsResponse

router = APIRouter(prefix="/stats", tags=["stats"], redirect_slashes=False)


def _range_for_day(day_value: date) -> tuple[datetime, datetime]:
    start = datetime.combine(day_value, time.min, tzinfo=timezone.utc)
    end = start + timedelta(days=1)
    return start, end


@router.get("", response_model=StatsResponse)
@router.get("/", response_model=StatsResponse)
def get_stats(day: date | None = None, db: Session = Depends(get_db)):
    users = db.query(func.count(BotUser.id)).scalar() or 0
    tests_completed = db.query(func.count(QuizResult.id)).scalar() or 0
    average_score = db.query(func.avg(QuizResult.total_score)).scalar()
    best_score = db.query(func.max(QuizResult.total_score)).scalar()

    day_value = day or datetime.now(timezone.utc).date()
    day_start, day_end = _range_for_day(day_value)

    daily_tests_completed = (
        db.query(func.count(QuizResult.id))
        .filter(QuizResult.ended_at >= day_start, QuizResult.ended_at < day_end)
        .scalar()
        or 0
    )
    daily_completed_users = (
        db.query(func.count(func.distinct(QuizResult.telegram_id)))
        .filter(QuizResult.ended_at >= day_start, QuizResult.ended_at < day_end)
        .scalar()
        or 0
    )
    return StatsResponse(
        users=users,
        tests_completed=tests_completed,
        average_score=round(float(average_score), 2) if average_score is not None else None,
        best_score=best_score,
        daily_completed_users=daily_completed_users,
        daily_tests_completed=daily_tests_completed,
    )
