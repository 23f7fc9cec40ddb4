import sys

from loguru import logger


def configure_logging(debug: bool = False) -> None:
    """Replace loguru's default handler with a single stderr sink."""
    logger.remove()
    logger.add(
        sys.stderr,
        level="DEBUG" if debug else "INFO",
        format="{time} {level} {message}",
    )

