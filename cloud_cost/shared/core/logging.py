import sys
import logging

import structlog

from cloud_cost.shared.core.config import get_settings

SECRET_FIELDS = {
    "aws_access_key_id", "aws_secret_access_key", "aws_session_token",
    "access_key_id", "secret_access_key", "session_token",
    "token", "secret", "password", "credentials",
}


def secret_redactor(logger, method_name, event_dict):
    """
    Redact credential material from log events.
    AWS keys must never reach stdout or a log sink.
    """
    for field in SECRET_FIELDS:
        if field in event_dict:
            event_dict[field] = "[REDACTED]"

    for container in ["details", "extra"]:
        if container in event_dict and isinstance(event_dict[container], dict):
            for field in SECRET_FIELDS:
                if field in event_dict[container]:
                    event_dict[container][field] = "[REDACTED]"

    return event_dict


def setup_logging(debug: bool = None):
    if debug is None:
        debug = get_settings().DEBUG

    if debug:
        renderer = structlog.dev.ConsoleRenderer()
        min_level = logging.DEBUG
    else:
        renderer = structlog.processors.JSONRenderer()
        min_level = logging.INFO

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        secret_redactor,
        renderer
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(min_level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    # Route library logs (botocore, uvicorn) through the same level
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=min_level,
    )
