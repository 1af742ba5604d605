"""structlog configuration for http-items.

Log output goes to stderr so it never mixes with the request dump printed
on stdout.
"""

import logging
import sys
from dataclasses import dataclass, field

import structlog


@dataclass
class LoggerConfig:
    """Logger configuration selected from the command line."""

    debug: bool = field(default=False)
    app_name: str = field(default="http-items")
    log_level: int = field(default=logging.INFO)


def add_app_name(app_name: str):
    def processor(logger, method_name: str, event_dict: dict) -> dict:
        event_dict.setdefault("app", app_name)
        return event_dict

    return processor


def stderr_logger_factory(*args):
    return structlog.PrintLogger(file=sys.stderr)


def setup_logging(config: LoggerConfig) -> None:
    """Configure structlog with a console renderer in debug mode, JSON otherwise."""
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        add_app_name(config.app_name),
    ]

    if config.debug:
        processors = shared_processors + [structlog.dev.ConsoleRenderer(colors=False)]
        level = logging.DEBUG
    else:
        processors = shared_processors + [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]
        level = config.log_level

    structlog.configure(
        processors=processors,
        logger_factory=stderr_logger_factory,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=False,
    )


setup_logging(LoggerConfig())

logger = structlog.get_logger()
