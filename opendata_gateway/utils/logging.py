"""
Logging setup for the open-data gateway.

Every module logs through ``logging.getLogger(__name__)``; those loggers are
children of ``opendata_gateway`` and inherit the handlers installed here.
"""

import logging
import sys
from pathlib import Path
from typing import Iterable, Optional


LOGGER_NAME = "opendata_gateway"
LOG_FILE_NAME = "gateway.log"
LOG_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)s | %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# Chatty at DEBUG, not useful for gateway users
NOISY_LOGGERS = ("aiohttp.access", "aiohttp.client", "asyncio")


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return the gateway logger, or a named child of it."""
    if name is None:
        return logging.getLogger(LOGGER_NAME)
    if name == LOGGER_NAME or name.startswith(LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{LOGGER_NAME}.{name}")


def setup_logging(
    log_dir: Optional[Path] = None,
    verbose: bool = False,
    quiet: Iterable[str] = NOISY_LOGGERS,
) -> logging.Logger:
    """
    Install console (and optionally file) handlers on the gateway logger.

    Args:
        log_dir: Directory for gateway.log; console only when None
        verbose: Console level DEBUG instead of INFO
        quiet: Third-party loggers capped at WARNING

    Returns:
        The gateway logger
    """
    logger = get_logger()
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    console_handler.setFormatter(formatter)

    logger.setLevel(logging.DEBUG)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.addHandler(console_handler)
    logger.propagate = False

    for name in quiet:
        logging.getLogger(name).setLevel(logging.WARNING)

    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        log_file = log_dir / LOG_FILE_NAME
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
        logger.debug(f"Writing log file {log_file}")

    return logger
