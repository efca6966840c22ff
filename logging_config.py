"""Logging setup (loguru) and request logging middleware."""
import sys
import time

from fastapi import Request
from loguru import logger

from config import Settings

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"


def configure_logging(settings: Settings) -> None:
    """Replace loguru's default sink with the configured ones."""
    logger.remove()

    logger.add(
        sys.stdout,
        colorize=True,
        format=CONSOLE_FORMAT,
        level=settings.log_level.upper(),
    )

    if settings.log_dir is None:
        return

    log_dir = settings.log_dir
    log_dir.mkdir(parents=True, exist_ok=True)

    # All logs
    logger.add(
        log_dir / "gallery.log",
        rotation="10 MB",
        retention="30 days",
        compression="zip",
        format=FILE_FORMAT,
        level="DEBUG",
    )

    # Errors only
    logger.add(
        log_dir / "error.log",
        rotation="10 MB",
        retention="30 days",
        compression="zip",
        format=FILE_FORMAT,
        level="ERROR",
    )


async def log_requests(request: Request, call_next):
    """Log every request/response pair with its latency."""
    start_time = time.time()
    logger.info(f"-> {request.method} {request.url.path}")

    try:
        response = await call_next(request)
    except Exception as e:
        process_time = (time.time() - start_time) * 1000
        logger.error(
            f"!! {request.method} {request.url.path} "
            f"- Error: {e} "
            f"- Time: {process_time:.2f}ms"
        )
        logger.exception("Exception details:")
        raise

    process_time = (time.time() - start_time) * 1000
    logger.info(
        f"<- {request.method} {request.url.path} "
        f"- Status: {response.status_code} "
        f"- Time: {process_time:.2f}ms"
    )
    return response
