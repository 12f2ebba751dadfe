"""Logging for the plugin: loguru for components, structlog for audit-memory events.

Both backends take their level and output format from Settings, so a single
LOG_LEVEL / LOG_FORMAT pair controls everything the plugin writes. Request
context (action, room, task) set with action_context() shows up on records
from either backend.
"""

import sys
from contextlib import contextmanager
from typing import Any, Iterator, Optional

import structlog
from loguru import logger
from structlog.contextvars import bound_contextvars, merge_contextvars

from raiinmaker_verification.config.settings import settings

SECRET_KEYS = frozenset({"api_key", "app_secret", "appSecret", "precheck_api_key", "gemini_api_key"})
MASK = "***"

_CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{extra[component]}</cyan> | <level>{message}</level>"
)


def _mask(fields: dict) -> None:
    for key in SECRET_KEYS.intersection(fields):
        if fields[key]:
            fields[key] = MASK


def _mask_record(record: dict) -> None:
    _mask(record["extra"])


def mask_secrets(_logger: Any, _method: str, event_dict: dict) -> dict:
    """structlog processor hiding credential values."""
    _mask(event_dict)
    return event_dict


def use_console_output(log_format: Optional[str] = None) -> bool:
    fmt = (log_format or settings.log_format).lower()
    return fmt == "console" and sys.stderr.isatty()


def configure_logging(level: Optional[str] = None, log_format: Optional[str] = None) -> None:
    """
    (Re)configure loguru and structlog from settings.

    Console output goes to stderr with colours; anything else is one JSON
    object per line on stdout.
    """
    level = (level or settings.log_level).upper()
    console = use_console_output(log_format)
    stream = sys.stderr if console else sys.stdout

    logger.remove()
    if console:
        logger.add(stream, format=_CONSOLE_FORMAT, level=level, colorize=True)
    else:
        logger.add(stream, format="{message}", level=level, serialize=True, diagnose=False)

    renderer = structlog.dev.ConsoleRenderer(colors=True) if console else structlog.processors.JSONRenderer()
    structlog.configure(
        processors=[
            merge_contextvars,
            mask_secrets,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        cache_logger_on_first_use=False,
    )


def get_logger(component: str):
    """Loguru logger bound to a component name, e.g. ``get_logger("client.raiinmaker")``."""
    return logger.bind(component=component)


def get_event_logger(name: str, **context: Any) -> structlog.typing.FilteringBoundLogger:
    """structlog logger for event-style records such as ``memory_created``."""
    log = structlog.get_logger(name)
    return log.bind(**context) if context else log


@contextmanager
def action_context(action: str, room_id: Optional[str] = None, **fields: Any) -> Iterator[None]:
    """Attach action/room (and any extra ids) to every record logged inside the block."""
    context = {"action": action, **fields}
    if room_id:
        context["room_id"] = room_id
    with logger.contextualize(**context), bound_contextvars(**context):
        yield


logger.configure(extra={"component": "raiinmaker"}, patcher=_mask_record)
configure_logging()

__all__ = [
    "action_context",
    "configure_logging",
    "get_event_logger",
    "get_logger",
    "logger",
    "mask_secrets",
]
