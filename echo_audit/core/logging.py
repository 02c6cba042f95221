"""
Logging configuration for the Echo-Audit API.
"""

import logging.config
import re
import sys

import structlog

_EMAIL_RE = re.compile(r"([A-Za-z0-9._%+-])[A-Za-z0-9._%+-]*(@[A-Za-z0-9.-]+\.[A-Za-z]{2,})")
_SENSITIVE_KEYS = {"password", "password_hash", "passwordHash", "confirm_password", "csrf_token", "api_key"}


def _scrub(value: str) -> str:
    return _EMAIL_RE.sub(r"\1***\2", value)


def pii_scrubbing_processor(logger, method_name, event_dict):
    """
    Structlog processor to scrub PII from logs.

    Masks the local part of e-mail addresses and drops credential fields
    so login and signup events never carry secrets.
    """
    for key, value in list(event_dict.items()):
        if key in _SENSITIVE_KEYS:
            event_dict[key] = "***"
        elif isinstance(value, str):
            event_dict[key] = _scrub(value)

    return event_dict


def setup_logging(level: str = "INFO", fmt: str = "json", enable_pii_scrubbing: bool = True) -> None:
    """
    Setup structured logging with structlog.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        fmt: Renderer, "json" for production or "console" for local runs
        enable_pii_scrubbing: Enable PII scrubbing processor (default: True)
    """

    # Configure standard library logging
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        stream=sys.stdout,
        format="%(message)s",
    )

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if enable_pii_scrubbing:
        processors.append(pii_scrubbing_processor)

    if fmt == "console":
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
