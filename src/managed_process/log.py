"""Logging setup for managed-process.

Modules log through ``logging.getLogger(__name__)``; applications that want
the package's own output routed somewhere call :func:`setup_logging` once.
"""

from __future__ import annotations

import logging
import sys

from .config import Config, get_config

__all__ = ["setup_logging", "LOG_FORMAT"]

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(config: Config | None = None) -> logging.Handler:
    """Configure handlers for the ``managed_process`` namespace.

    In debug mode logs go to ``config.log_file`` at DEBUG level, otherwise
    to stderr at INFO. The root logger stays at WARNING to keep third-party
    noise down.

    Args:
        config: Configuration to use (default: global config)

    Returns:
        The handler that was installed
    """
    config = config or get_config()

    handler: logging.Handler
    if config.log_debug and config.log_file:
        handler = logging.FileHandler(config.log_file, encoding="utf-8")
        log_level = logging.DEBUG
    else:
        handler = logging.StreamHandler(sys.stderr)
        log_level = logging.INFO
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    logging.basicConfig(level=logging.WARNING, handlers=[handler])
    package_logger = logging.getLogger("managed_process")
    package_logger.setLevel(log_level)
    if handler not in logging.getLogger().handlers:
        # basicConfig is a no-op once the root already has handlers
        package_logger.addHandler(handler)
        package_logger.propagate = False

    return handler
