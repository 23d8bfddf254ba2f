import sys

from loguru import logger


def setup_logging(level: str = "INFO") -> None:
    """Переставляет стандартный вывод loguru на нужный уровень."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | {name}:{line} - {message}",
    )
