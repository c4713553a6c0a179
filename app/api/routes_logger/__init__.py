from fastapi import APIRouter
from app.api.routes_logger.logger_routes import router as logger_routes

router = APIRouter(prefix="/logger", tags=["Logger"])
router.include_router(logger_routes)
