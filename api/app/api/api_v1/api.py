from fastapi import APIRouter

from api.app.api.api_v1.routers.questions import router as questions_router
from api.app.api.api_v1.routers.stats import router as stats_router
from api.app.api.api_v1.routers.users import router as users_router

api_router = APIRouter()
api_router.include_router(questions_router)
api_router.include_router(users_router)
api_router.include_router(stats_router)
