import os
from loguru import logger
from coinmatrix.core.config import settings

# Base directory for logs
LOG_DIR = settings.LOG_DIR
os.makedirs(LOG_DIR, exist_ok=True)

LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level} | {name}:{line} | {message}"

# Main app log
APP_LOG_PATH = os.path.join(LOG_DIR, "app.log")
logger.add(
    APP_LOG_PATH,
    rotation="10 MB",
    level=settings.LOG_LEVEL,
    enqueue=True,
    backtrace=True,
    diagnose=False,
    format=LOG_FORMAT,
)

# Upstream/storage failures end up here as well as in the app log
ERROR_LOG_PATH = os.path.join(LOG_DIR, "errors.log")
logger.add(
    ERROR_LOG_PATH,
    rotation="10 MB",
    level="WARNING",
    enqueue=True,
    backtrace=True,
    diagnose=False,
    format=LOG_FORMAT,
)


def get_logger():
    """Return the global logger."""
    return logger
