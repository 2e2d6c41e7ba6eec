import logging
import os
import sys

import structlog
from structlog.contextvars import merge_contextvars


def configure_logging(level: str | None = None, *, json_output: bool | None = None) -> None:
    """Route structlog events through stdlib logging on stdout.

    ``level`` falls back to ``LOG_LEVEL``; JSON rendering is used outside
    ``APP_ENV`` local/dev unless ``json_output`` says otherwise.
    """
    log_level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    log_level = getattr(logging, log_level_name, logging.INFO)
    if json_output is None:
        json_output = os.getenv("APP_ENV", "local") not in {"local", "dev"}

    shared_processors = [
        merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    renderer = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
        force=True,
    )

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
