"""structlog setup.

Chat payloads stay out of the logs: any event field named like message
content is replaced before rendering.
"""

import logging

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from gatedchat.config import Settings

_REDACTED_FIELDS = frozenset({"content", "new_content", "display_name"})

# Chatty third-party loggers, capped regardless of the configured level
_NOISY_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "aiosqlite", "asyncio")


def redact_chat_content(_logger: WrappedLogger, _method: str, event_dict: EventDict) -> EventDict:
    for field in _REDACTED_FIELDS.intersection(event_dict):
        event_dict[field] = "[redacted]"
    return event_dict


def setup_logging(settings: Settings) -> None:
    """Configure structlog with a JSON renderer in production, console otherwise."""
    renderer: Processor
    if settings.log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            redact_chat_content,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    level = logging.getLevelName(settings.log_level.upper())
    logging.basicConfig(level=level if isinstance(level, int) else logging.INFO, format="%(message)s")
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(logging.WARNING, logging.getLogger().level))
