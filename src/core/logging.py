import sys
from loguru import logger
from .config import settings


def setup_logging():
    """Install the stderr sink configured by LOG_LEVEL / LOG_JSON and return the logger."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=settings.log_level.upper(),
        serialize=settings.log_json,
        backtrace=False,
        diagnose=settings.app_env == "dev",
    )
    logger.info("Logging configured", app=settings.app_name, env=settings.app_env, level=settings.log_level)
    return logger
