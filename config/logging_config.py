import sys
from pathlib import Path
from loguru import logger
from config.settings import settings

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)

def setup_logging(level: str = settings.LOG_LEVEL, log_dir: Path = settings.LOG_DIR):
    logger.remove()  # Remove default handler
    log_dir = Path(log_dir)

    logger.add(sys.stderr, level=level, format=CONSOLE_FORMAT)

    # Errors from every component
    logger.add(
        log_dir / "errors.log",
        rotation="10 MB",
        retention="1 week",
        level="ERROR",
        compression="zip"
    )

    # Catalog fetches and retries only; noisy enough to keep apart
    logger.add(
        log_dir / "scraping.log",
        rotation="1 day",
        retention="1 week",
        level="DEBUG",
        filter="scraping"
    )

    # Conversation, persistence and timers
    logger.add(
        log_dir / "app.log",
        rotation="1 day",
        retention="1 month",
        level=level,
        filter=lambda record: not record["name"].startswith("scraping")
    )

    return logger

log = setup_logging()
