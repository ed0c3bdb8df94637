"""Structured logging for the conversion service.

Debug runs render one pipe-separated line per event with an icon prefix.
Otherwise each event is a JSON line tagged with the service name and the
request's correlation id.
"""

import logging
from dataclasses import dataclass, field
from enum import StrEnum

import orjson
import structlog
from asgi_correlation_id import correlation_id
from beartype import beartype

from msgjson.core.settings import settings

EVENT_MAX_LENGTH = 80


class LoggerError(Exception):
    """Exception for logger related issues."""


class LogLevel(StrEnum):
    """Threshold levels: everything in debug runs, info and above otherwise."""
    DEBUG = "DEBUG"
    INFO = "INFO"


class LogIcon(StrEnum):
    """Icon mappings for different log categories."""

    DEFAULT = "📋"

    # Status & Results
    SUCCESS = "✅"
    ERROR = "❌"
    WARNING = "⚠️"
    CRITICAL = "🔴"

    # Lifespan & pipeline stages
    START = "🚀"
    PROCESSING = "🔄"
    DETECTION = "🔍"
    COMPLETE = "✨"
    PROCESSOR = "⚙️"
    ADAPTER = "🔌"

    # Requests
    NETWORK = "🌐"
    HEALTHCHECK = "❤️"
    FORBIDDEN = "🚫"

    # Uploaded documents
    FILE = "📄"
    JSON = "📝"
    UPLOAD = "📤"


@dataclass
class LoggerConfig:
    """Logger configuration derived from settings."""
    debug: bool = field(default_factory=lambda: settings.DEBUG)
    service: str = field(default_factory=lambda: settings.API_NAME)
    log_level: LogLevel = field(default_factory=lambda: LogLevel.DEBUG if settings.DEBUG else LogLevel.INFO)


def add_correlation_id(logger, method_name: str, event_dict: dict) -> dict:
    """Add correlation_id to event_dict if present in context."""
    request_id = correlation_id.get()
    if request_id:
        event_dict["correlation_id"] = request_id
    return event_dict


class BusinessRulesProcessor:
    """
    Normalise log events before rendering.

    - Event messages are uppercased and cut to ``EVENT_MAX_LENGTH`` characters.
    - The ``icon`` kwarg must be a LogIcon member; it is dropped from the event.
    - In debug mode the icon prefixes the message.
    """

    def __init__(self, debug: bool) -> None:
        self.debug = debug

    @beartype
    def __call__(self, logger, name: str, event_dict: dict) -> dict:
        try:
            event = str(event_dict.get("event", ""))[:EVENT_MAX_LENGTH].upper()
            icon_enum = LogIcon(event_dict.pop("icon", LogIcon.DEFAULT))
        except ValueError as err:
            raise LoggerError("Wrong Icon chosen, please choose a valid LogIcon enum member") from err

        event_dict["event"] = f"{icon_enum.value} {event}" if self.debug else event
        return event_dict


class ServiceNameProcessor:
    """Stamp every event with the service that emitted it."""

    def __init__(self, service: str) -> None:
        self.service = service

    def __call__(self, logger, name: str, event_dict: dict) -> dict:
        event_dict.setdefault("service", self.service)
        return event_dict


def dev_pipeline_renderer(logger, name: str, event_dict: dict) -> str:
    """Render log events in human-readable format with pipe-separated fields."""
    reserved_keys = {"timestamp", "level", "event", "filename", "lineno"}

    timestamp = event_dict.get("timestamp", "")
    level = event_dict.get("level", LogLevel.INFO.value).upper()
    event = event_dict.get("event", "")
    filename = event_dict.get("filename", "")
    lineno = event_dict.get("lineno", "")

    location = f"{filename}:{lineno}" if filename else ""

    extra_kwargs = " | ".join(
        f"{k}={v}" for k, v in event_dict.items() if k not in reserved_keys
    )

    parts = [timestamp, level, event, extra_kwargs, location]
    return " | ".join(filter(None, parts))


def setup_logging(config: LoggerConfig) -> None:
    """Configure structlog; pipe renderer in debug, JSON lines otherwise."""
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.CallsiteParameterAdder(
            parameters=[
                structlog.processors.CallsiteParameter.FILENAME,
                structlog.processors.CallsiteParameter.LINENO,
            ],
            additional_ignores=["logger"]
        ),
        BusinessRulesProcessor(debug=config.debug),
        add_correlation_id,
    ]

    if config.debug:
        processors = shared_processors + [structlog.processors.format_exc_info, dev_pipeline_renderer]
        logger_factory = structlog.PrintLoggerFactory()
    else:
        processors = shared_processors + [
            ServiceNameProcessor(config.service),
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(serializer=orjson.dumps),
        ]
        # orjson renders bytes
        logger_factory = structlog.BytesLoggerFactory()

    structlog.configure(
        processors=processors,
        logger_factory=logger_factory,
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(config.log_level.value)),
        cache_logger_on_first_use=True,
    )


# Configure logger by default
setup_logging(LoggerConfig())

logger = structlog.get_logger()
