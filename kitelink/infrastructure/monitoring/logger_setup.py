"""Logging configuration for kitelink.

One root configuration shared by the client and the CLI: a stdout handler,
an optional UTF-8 file handler, and the HTTP libraries' own loggers held at
WARNING so per-request chatter from httpx/urllib3 does not drown out the
pipeline's rate limit and retry messages.
"""

import logging
import sys
from typing import List, Optional, Tuple

DEFAULT_LOG_LEVEL = logging.INFO
DEFAULT_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Transport libraries that log every request at INFO/DEBUG.
HTTP_LIBRARY_LOGGERS = ('httpx', 'httpcore', 'urllib3')

logger = logging.getLogger(__name__)


def _build_handlers(log_format: str, log_file: Optional[str]) -> Tuple[List[logging.Handler], Optional[OSError]]:
    formatter = logging.Formatter(log_format)
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    file_error = None
    if log_file:
        try:
            handlers.append(logging.FileHandler(log_file, encoding='utf-8'))
        except OSError as e:
            file_error = e
    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers, file_error


def setup_logging(
    log_level: int = DEFAULT_LOG_LEVEL,
    log_format: str = DEFAULT_LOG_FORMAT,
    log_file: Optional[str] = None,
) -> None:
    """Replaces the root logger's handlers with kitelink's console/file pair.

    Args:
        log_level: Minimum level for kitelink's own loggers.
        log_format: Format string shared by every handler.
        log_file: Optional path; appended to, never truncated.
    """
    handlers, file_error = _build_handlers(log_format, log_file)

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    root_logger.setLevel(log_level)
    for handler in handlers:
        root_logger.addHandler(handler)

    quiet_level = max(log_level, logging.WARNING)
    for name in HTTP_LIBRARY_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)

    if file_error is not None:
        logger.error("Cannot open log file %s, logging to console only: %s", log_file, file_error)
    logger.info("Logging configured: level=%s file=%s", logging.getLevelName(log_level), log_file or "-")


def level_from_name(name: Optional[str], default: int = DEFAULT_LOG_LEVEL) -> int:
    """Turns 'debug' / 'INFO' into a logging level, falling back to `default`."""
    if not name:
        return default
    level = logging.getLevelName(str(name).upper())
    return level if isinstance(level, int) else default
