"""Application logger shared by the engine, the data sources and the API layer."""

import logging
import sys

from fee_ledger.core.config import settings


def setup_logger() -> logging.Logger:
    """
    Configures and returns the application logger.
    """
    logger = logging.getLogger("fee-ledger")
    logger.setLevel(settings.log_level.upper())

    handler = logging.StreamHandler(sys.stdout)
    formatter = logging.Formatter(
        "%(asctime)s - %(module)s - %(levelname)s - %(message)s"
    )
    handler.setFormatter(formatter)

    if not logger.handlers:
        logger.addHandler(handler)

    return logger


log = setup_logger()
