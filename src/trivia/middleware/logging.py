"""Structured logging configuration with structlog.

Every event carries the service name, version and environment so API logs
can be told apart from the migration runner and worker logs in the same sink.
"""

import logging

import structlog

from trivia.config import Settings

SERVICE_NAME = "daily-trivia-api"

# Chatty at INFO/DEBUG; only surfaced in debug mode
_NOISY_LOGGERS = ("sqlalchemy.engine", "aiosqlite", "asyncio")


def _service_fields(settings: Settings) -> structlog.types.Processor:
    fields = {"service": SERVICE_NAME, "version": settings.app_version, "env": settings.environment}

    def add_service_fields(
        _logger: object, _method: str, event_dict: structlog.types.EventDict
    ) -> structlog.types.EventDict:
        for key, value in fields.items():
            event_dict.setdefault(key, value)
        return event_dict

    return add_service_fields


def setup_logging(settings: Settings) -> None:
    """Configure structlog for JSON (production) or console (local) output."""
    json_output = settings.log_format == "json"
    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if json_output:
        # Console output stays short for local runs
        processors.append(_service_fields(settings))
    processors += [
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer(),
    ]

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(level=level)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if settings.debug else logging.WARNING)
