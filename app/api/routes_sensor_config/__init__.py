from fastapi import APIRouter
from app.api.routes_sensor_config.sensor_config_routes import router as sensor_config_routes

router = APIRouter(prefix="/sensor-config", tags=["Sensor Config"])
router.include_router(sensor_config_routes)
