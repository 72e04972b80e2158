"""
CivicReport - Logging Configuration
Shared logging setup for the API process and the moderation worker.
"""

import logging
import sys
from typing import Optional

from civicreport.core.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | {component} | %(name)s:%(lineno)d | %(message)s"

# Third-party loggers that are chatty at INFO
QUIET_LOGGERS = ("botocore", "boto3", "s3transfer", "urllib3", "httpx", "multipart")


def setup_logging(level: Optional[str] = None, component: str = "api") -> logging.Logger:
    """
    Configure stdout logging for one process.

    Args:
        level: Log level name; defaults to ``settings.log_level``
        component: Process label included in every line (``api`` or ``worker``)

    Returns:
        The ``civicreport`` package logger
    """
    log_level = getattr(logging, (level or settings.log_level).upper(), logging.INFO)

    logging.basicConfig(
        level=log_level,
        format=LOG_FORMAT.format(component=component),
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    logger = logging.getLogger("civicreport")
    logger.setLevel(log_level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    # SQL echo is controlled by DB_ECHO, not by the application level
    if not settings.db_echo:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    return logger
