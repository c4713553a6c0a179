from fastapi import APIRouter
from app.api.routes_intervals.interval_routes import router as interval_routes

router = APIRouter(prefix="/intervals", tags=["Intervals"])
router.include_router(interval_routes)
