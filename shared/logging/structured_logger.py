"""Structured logging setup for the weather service.

structlog events and plain ``logging`` records (uvicorn, slowapi, aiohttp)
go through one stdout handler, so both are rendered the same way: JSON lines
in deployed environments, colourised key/value text when ``log_format`` is
``"text"``. Every line carries the service name and environment it was
configured with, plus any request context bound with :func:`bind_context`.
"""

import logging
import sys
from typing import Any, Dict, List

import structlog
from structlog.types import EventDict, Processor


HANDLER_NAME = "weather-app-stdout"

LOG_FORMATS = ("json", "text")


class ServiceTagger:
    """Processor stamping each event with the service and its environment."""

    def __init__(self, service_name: str, environment: str):
        self.tags: Dict[str, str] = {"service": service_name, "environment": environment}

    def __call__(self, logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
        for key, value in self.tags.items():
            event_dict.setdefault(key, value)
        return event_dict


def _pre_chain(tagger: ServiceTagger) -> List[Processor]:
    # Shared by structlog events and foreign stdlib records.
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        tagger,
    ]


def _renderer(log_format: str) -> List[Processor]:
    if log_format == "json":
        return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    return [structlog.dev.ConsoleRenderer()]


def configure_logging(
    log_level: str = "INFO",
    log_format: str = "json",
    service_name: str = "weather-app",
    environment: str = "production",
) -> logging.Handler:
    """Route structlog and stdlib logging to stdout.

    Args:
        log_level: Minimum level name, e.g. ``"INFO"``
        log_format: ``"json"`` or ``"text"``
        service_name: Value of the ``service`` key on every line
        environment: Value of the ``environment`` key on every line

    Returns:
        The installed handler. Calling again replaces it.

    Raises:
        ValueError: If ``log_format`` or ``log_level`` is unknown
    """
    log_format = log_format.lower()
    if log_format not in LOG_FORMATS:
        raise ValueError(f"log_format must be one of {list(LOG_FORMATS)}, got: {log_format}")

    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {log_level}")

    pre_chain = _pre_chain(ServiceTagger(service_name, environment))

    structlog.configure(
        processors=pre_chain + [
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta]
            + _renderer(log_format),
        )
    )

    root = logging.getLogger()
    for existing in [h for h in root.handlers if h.get_name() == HANDLER_NAME]:
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    return handler


def bind_context(**kwargs: Any) -> None:
    """Bind context variables to all subsequent log entries in this context."""
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    """Unbind context variables."""
    structlog.contextvars.unbind_contextvars(*keys)
