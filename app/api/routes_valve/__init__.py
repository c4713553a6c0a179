from fastapi import APIRouter
from app.api.routes_valve.valve_routes import router as valve_routes

router = APIRouter(prefix="/valve", tags=["Valve"])
router.include_router(valve_routes)
