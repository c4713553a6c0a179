from fastapi import APIRouter
from app.api.routes_sensors.sensor_routes import router as sensor_routes

router = APIRouter(prefix="/sensors", tags=["Sensors"])
router.include_router(sensor_routes)
