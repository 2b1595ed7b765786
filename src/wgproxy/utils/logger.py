"""
Logging helpers for wgproxy, built on loguru.

All modules obtain their logger through get_logger(__name__); the returned
logger is bound to the module name so every line carries its component.
configure_logging() replaces loguru's default sink once at startup.
"""

import sys
import traceback

from loguru import logger as _logger

from wgproxy.models.enums import LogLevel

_LEVEL_MAP = {
    LogLevel.FULL: "DEBUG",
    LogLevel.DEBUG: "DEBUG",
    LogLevel.INFO: "INFO",
    LogLevel.WARNING: "WARNING",
}

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[component]}</cyan> - <level>{message}</level>"
)

_logger.configure(extra={"component": "wgproxy"})

_full_tracebacks = False


def get_logger(name: str):
    """Get a loguru logger bound to a component name."""
    return _logger.bind(component=name)


def configure_logging(level: LogLevel | str = LogLevel.INFO, sink=None) -> int:
    """
    Configure loguru output for wgproxy.

    Removes every existing sink and installs a single one, so calling this
    again only changes the level.

    Args:
        level: Verbosity level (LogLevel or its string value).
        sink: Where to write, defaults to stderr.

    Returns:
        The loguru handler id of the installed sink.
    """
    global _full_tracebacks

    level = LogLevel(level)
    _full_tracebacks = level == LogLevel.FULL

    _logger.remove()
    return _logger.add(
        sink if sink is not None else sys.stderr,
        level=_LEVEL_MAP[level],
        format=LOG_FORMAT,
        colorize=sink is None,
        backtrace=_full_tracebacks,
        diagnose=_full_tracebacks,
    )


def full_tracebacks_enabled() -> bool:
    """Whether LogLevel.FULL was requested."""
    return _full_tracebacks


def format_traceback(exc: BaseException) -> str:
    """Render an exception with its traceback as a single string."""
    return "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
