from fastapi import APIRouter
from app.api.routes_daily_logs.daily_log_routes import router as daily_log_routes

router = APIRouter(prefix="/daily-logs", tags=["Daily Logs"])
router.include_router(daily_log_routes)
