from fastapi import APIRouter

from propwatch.api.dashboard import router as dashboard_router
from propwatch.api.odds import router as odds_router

api_router = APIRouter()
api_router.include_router(odds_router)
api_router.include_router(dashboard_router)
