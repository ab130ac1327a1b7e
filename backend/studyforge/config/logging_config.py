"""
Logging setup shared by the API process and Celery workers.

Usage:
    from studyforge.config.logging_config import setup_logging

    setup_logging(debug=settings.DEBUG)
"""

import logging

NOISY_LOGGERS = ("httpx", "httpcore", "LiteLLM", "sqlalchemy.engine", "sqlalchemy.pool")


def setup_logging(debug: bool = False) -> None:
    """Configure logging based on debug flag."""
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S",
    )
    # Reduce noise from HTTP, model, and database libraries (unless debug)
    if not debug:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
