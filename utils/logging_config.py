"""
Centralized logging configuration.
All modules should use get_logger() instead of print().
"""

import logging
import sys

ROOT_LOGGER_NAME = 'sambooru'

DEFAULT_FORMAT = '%(asctime)s [%(name)s] %(levelname)s: %(message)s'

# Third-party loggers that are chatty at INFO
NOISY_LOGGERS = ('urllib3', 'PIL')

_loggers = {}


def setup_logging(level: str = None, log_file: str = None):
    """
    Configure the application logger tree. Call once at startup.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional file path that receives a copy of the output
    """
    log_level = getattr(logging, (level or 'INFO').upper(), logging.INFO)

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(log_level)

    # create_app() may run more than once (tests); avoid stacking handlers
    root_logger.handlers.clear()

    formatter = logging.Formatter(DEFAULT_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))


def get_logger(name: str) -> logging.Logger:
    """
    Get a named child of the application logger.

    Usage:
        logger = get_logger('Pipeline')
        logger.info(f"Post {post_id} committed")
    """
    if name not in _loggers:
        _loggers[name] = logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
    return _loggers[name]
