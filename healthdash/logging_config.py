"""
Logging setup
"""
import logging

from healthdash.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_configured = False


def configure_logging(level: str = None) -> None:
    """Configure root logging once; later calls only adjust the level."""
    global _configured
    level = (level or settings.LOG_LEVEL or "INFO").upper()

    if not _configured:
        logging.basicConfig(level=level, format=LOG_FORMAT)
        _configured = True
    logging.getLogger("healthdash").setLevel(level)
