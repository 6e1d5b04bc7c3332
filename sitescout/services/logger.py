"""Centralized logging service using loguru."""

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from loguru import logger

from sitescout.config import settings

# Remove default handler
logger.remove()

logger.add(
    sys.stderr,
    format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
    level=settings.app_log_level.upper(),
    colorize=True,
)

if settings.log_dir:
    LOG_DIR = Path(settings.log_dir)
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    logger.add(
        LOG_DIR / "sitescout_{time:YYYY-MM-DD}.log",
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
        level="DEBUG",
        rotation="00:00",
        retention="7 days",
        compression="zip",
    )

# Reduce noise from network/browser libraries
for logger_name in (
    "httpx",
    "httpcore",
    "hpack",
    "asyncio",
    "playwright",
    "redis",
):
    logging.getLogger(logger_name).setLevel(settings.noisy_log_level.upper())


def log_fetch(
    url: str,
    status: int,
    used_browser: bool,
    duration_ms: int = 0,
    error: Optional[str] = None,
) -> None:
    """Log a single page acquisition."""
    fetch_data = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "url": url,
        "status": status,
        "used_browser": used_browser,
        "duration_ms": duration_ms,
        "error": error,
    }
    if error:
        logger.warning(f"FETCH_FAILED: {fetch_data}")
    else:
        logger.info(f"FETCH: {fetch_data}")


def log_discovery(
    domain: str,
    stage: str,
    status: str,
    url: Optional[str] = None,
) -> None:
    """Log the outcome of one discovery stage."""
    stage_data = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "domain": domain,
        "stage": stage,
        "status": status,
        "url": url,
    }
    logger.info(f"DISCOVERY_STAGE: {stage_data}")


def log_event(
    event_type: str,
    message: str,
    **kwargs,
) -> None:
    """Log a generic event."""
    event_data = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "event_type": event_type,
        "message": message,
        **kwargs,
    }
    logger.info(f"EVENT: {event_data}")
