import logging
import pytz
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from app.core.config import settings
from app.services.daily_log_service import generate_daily_logs_job

logger = logging.getLogger(__name__)

class SchedulerService:
    """
    Owns the single background scheduler of the process.
    Runs the daily CSV log job; logging sessions add their own interval jobs
    to the same scheduler.
    """

    def __init__(self, timezone: str = "Asia/Jakarta"):
        self.timezone = pytz.timezone(timezone)
        self.scheduler = BackgroundScheduler(
            timezone=self.timezone,
            job_defaults={
                "coalesce": True,
                "max_instances": 1,
                "misfire_grace_time": 30,
            },
        )
        logger.info("SchedulerService initialized with timezone: %s", timezone)

    def start(self):
        """Register recurring jobs and start the scheduler thread."""
        self._add_recurring_jobs()
        if not self.scheduler.running:
            self.scheduler.start()
        logger.info("Background scheduler started successfully.")
        return self.scheduler

    def _add_recurring_jobs(self):
        """Adds the daily log job (one CSV per user for the current day)."""
        self.scheduler.add_job(
            generate_daily_logs_job,
            trigger=CronTrigger(
                hour=settings.DAILY_LOG_HOUR,
                minute=settings.DAILY_LOG_MINUTE,
                timezone=self.timezone,
            ),
            id="daily_logs",
            replace_existing=True,
        )

        logger.info(
            "Jobs configured: daily logs at %02d:%02d.",
            settings.DAILY_LOG_HOUR,
            settings.DAILY_LOG_MINUTE,
        )

    def stop(self):
        """Gracefully stop the scheduler."""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Background scheduler stopped cleanly.")


scheduler_service = SchedulerService(settings.TIMEZONE)


def start_scheduler():
    """Entry point for external use (e.g., from FastAPI lifespan)."""
    return scheduler_service.start()
