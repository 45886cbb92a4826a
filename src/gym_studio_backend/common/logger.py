'''
Application-wide logger.
Every module logs through `log`; the level comes from LOG_LEVEL.
'''
import logging
import sys

from .config import settings

LOG_FORMAT = '%(asctime)s - %(module)s - %(levelname)s\n - %(message)s'

def setup_logger(name: str = 'gym-studio', level: str | None = None) -> logging.Logger:
    """
    Builds the shared stdout logger once; later calls return the same instance.
    In TEST_MODE warnings and above are kept so pytest output stays readable.
    """
    logger = logging.getLogger(name)
    if level is None:
        level = "WARNING" if settings.TEST_MODE else settings.LOG_LEVEL
    logger.setLevel(logging.getLevelName(level.upper()))

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
        # uvicorn configures the root logger; avoid printing twice
        logger.propagate = False

    return logger

log = setup_logger()
