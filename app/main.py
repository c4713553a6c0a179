# app/main.py
from fastapi import FastAPI
from contextlib import asynccontextmanager
import logging
from app.services.scheduler_service import scheduler_service, start_scheduler
from app.services.logger_service import logging_controller
from app.api import (
    routes_auth,
    routes_daily_logs,
    routes_esp32,
    routes_intervals,
    routes_logger,
    routes_schema,
    routes_sensor_config,
    routes_sensors,
    routes_users,
    routes_valve,
)
from app.core.config import settings
from app.core.logging_config import setup_logging
from app.db.init_db import init_db
from fastapi.middleware.cors import CORSMiddleware

logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application startup and shutdown events."""
    setup_logging(settings.LOG_LEVEL)
    logger.info("Starting application...")

    init_db()
    logger.info("Database ready.")

    start_scheduler()
    logger.info("Scheduler started.")

    yield

    stopped = logging_controller.stop_all()
    if stopped:
        logger.info(f"Stopped {stopped} logging session(s).")
    scheduler_service.stop()
    logger.info("Application shutdown complete.")

app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.PROJECT_VERSION,
    description="IoT Desalination Monitoring and Data Logging API",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(routes_auth.router)
app.include_router(routes_users.router)
app.include_router(routes_intervals.router)
app.include_router(routes_logger.router)
app.include_router(routes_sensors.router)
app.include_router(routes_sensor_config.router)
app.include_router(routes_esp32.router)
app.include_router(routes_valve.router)
app.include_router(routes_schema.router)
app.include_router(routes_daily_logs.router)

@app.get("/", tags=["Health"])
def health_check():
    """Basic health endpoint for uptime monitoring."""
    return {
        "status": "ok",
        "project": settings.PROJECT_NAME,
        "version": settings.PROJECT_VERSION,
    }
