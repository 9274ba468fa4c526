import logging
import sys
from typing import Optional

PACKAGE_LOGGER = "slide_frame_aligner"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: int = logging.INFO, log_file: Optional[str] = None) -> None:
    """Send ``slide_frame_aligner`` records to stdout, and to ``log_file`` when given."""
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)
    # main() may run more than once per interpreter
    logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S")
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, mode="w", encoding="utf-8"))
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)
