# app/core/logging_config.py
import logging
import sys

# Polling dashboards hit /logger/status and /esp32/realtime every few seconds,
# and every logging session adds an APScheduler job run
QUIET_LOGGERS = ("uvicorn.access", "apscheduler", "urllib3")


def setup_logging(level: str = "INFO"):
    """
    Configures global logging for the whole backend, once, on stdout.
    The thread name is included because logging ticks run on scheduler
    worker threads while requests run on the server's threadpool.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s (%(threadName)s): %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    logging.getLogger(__name__).info("Logging configured (level=%s).", logging.getLevelName(log_level))
