from fastapi import APIRouter
from app.api.routes_esp32.esp32_routes import router as esp32_routes

router = APIRouter(prefix="/esp32", tags=["ESP32"])
router.include_router(esp32_routes)
