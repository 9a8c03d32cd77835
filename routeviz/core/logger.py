# routeviz/core/logger.py
from loguru import logger
import sys

from routeviz.core.config import settings

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "{message}"
)

# One stdout sink for the service; variable values in tracebacks only outside production
logger.remove()
logger.add(
    sys.stdout,
    format=LOG_FORMAT,
    level=settings.LOG_LEVEL,
    diagnose=settings.ENVIRONMENT != "production",
)

__all__ = ["LOG_FORMAT", "logger"]
