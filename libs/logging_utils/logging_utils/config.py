"""Logging configuration shared by the print services."""

import sys
from typing import Optional

from loguru import logger as loguru_logger

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<magenta>{extra[service]}</magenta> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {extra[service]} | {name}:{function}:{line} - {message}"

# Records logged through the bare loguru logger still render with a service column
loguru_logger.configure(extra={"service": "-"})


def setup_service_logger(
    service_name: str,
    log_level: str = "INFO",
    log_file: Optional[str] = None,
) -> loguru_logger:
    """Configure the process-wide sinks for a service.

    Args:
        service_name: Name of the service (e.g., 'print-service')
        log_level: Logging level (default: INFO)
        log_file: Optional path to a rotating log file

    Returns:
        logger: Loguru logger bound to the service name
    """
    # Remove any existing handlers
    loguru_logger.remove()

    loguru_logger.add(
        sys.stderr,
        level=log_level,
        format=CONSOLE_FORMAT,
        colorize=True,
        enqueue=True,
        backtrace=True,
        diagnose=False,
    )

    if log_file:
        loguru_logger.add(
            log_file,
            level=log_level,
            format=FILE_FORMAT,
            rotation="10 MB",
            retention="1 week",
            compression="gz",
            enqueue=True,
        )

    return loguru_logger.bind(service=service_name)


def get_component_logger(service_name: str, component: str) -> loguru_logger:
    """Get a logger for one component of a service.

    Sinks are left untouched, so modules can call this at import time and
    pick up whatever `setup_service_logger` installs later.

    Args:
        service_name: Name of the service
        component: Component name (e.g., 'dispatcher', 'feed')

    Returns:
        logger: Logger bound to ``service_name.component``
    """
    return loguru_logger.bind(service=f"{service_name}.{component}")
