"""Logging setup shared by the API process and the Celery workers."""

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure the root logger once; later calls only adjust the level."""
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    root.setLevel(level.upper())
    # urllib3 logs every connection at DEBUG, which drowns the sync logs
    logging.getLogger("urllib3").setLevel(logging.WARNING)
