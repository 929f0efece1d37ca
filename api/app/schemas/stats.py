from pydantic import BaseModel


class StatsResponse(BaseModel):
    users: int
    tests_completed: int
    average_score: float | None
    best_score: int | None
    daily_completed_users: int
    daily_tests_completed: int
