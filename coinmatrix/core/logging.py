import logging
import os

from coinmatrix.core.config import settings


def setup_early_logging():
    """Log startup failures before loguru sinks are configured."""
    os.makedirs(settings.LOG_DIR, exist_ok=True)
    early_logger = logging.getLogger("startup")
    if early_logger.handlers:
        return early_logger
    early_logger.setLevel(logging.ERROR)
    formatter = logging.Formatter("%(asctime)s - %(levelname)s - %(message)s")
    fh = logging.FileHandler(os.path.join(settings.LOG_DIR, "startup.log"))
    fh.setFormatter(formatter)
    early_logger.addHandler(fh)
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    early_logger.addHandler(console_handler)
    return early_logger
