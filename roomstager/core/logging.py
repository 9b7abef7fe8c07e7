"""
Logging configuration for the API.

Usage:
    # In any module, use standard logging; structlog renders the records:
    import logging
    logger = logging.getLogger(__name__)

Every record rendered by the console handler carries the current request ID
(when there is one), so pipeline stages can be traced back to the HTTP call.
"""
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

import structlog

from roomstager.core.config import settings
from roomstager.middleware.logging_middleware import get_request_id

QUIET_LOGGERS = (
    "uvicorn.access",
    "uvicorn.error",
    "httpx",
    "httpcore",
    "aiohttp.access",
    "google_genai",
    "PIL",
)

FILE_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def add_request_id(logger, method_name, event_dict):
    """structlog processor: attach the request ID from the middleware context"""
    request_id = get_request_id()
    if request_id:
        event_dict.setdefault("request_id", request_id)
    return event_dict


def _console_formatter(log_format: str) -> structlog.stdlib.ProcessorFormatter:
    pre_chain = [
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        add_request_id,
    ]

    if log_format == "json":
        # JSON for production log shipping
        processors = [
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.dev.ConsoleRenderer(colors=True, exception_formatter=structlog.dev.plain_traceback),
        ]

    return structlog.stdlib.ProcessorFormatter(foreign_pre_chain=pre_chain, processors=processors)


def _rotating_handler(path: Path, level: int) -> RotatingFileHandler:
    handler = RotatingFileHandler(path, maxBytes=10 * 1024 * 1024, backupCount=5)  # 10MB
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(FILE_FORMAT))
    return handler


def setup_logging(log_level: Optional[str] = None, log_format: Optional[str] = None):
    """Configure logging for the application.

    Args:
        log_level: overrides settings.log_level
        log_format: "json" or "console", overrides settings.log_format
    """
    level_name = (log_level or settings.log_level).upper()
    log_format = log_format or settings.log_format
    level = getattr(logging, level_name, logging.INFO)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(_console_formatter(log_format))
    root_logger.addHandler(console_handler)

    if settings.environment == "production":
        log_dir = Path("logs")
        log_dir.mkdir(exist_ok=True)
        root_logger.addHandler(_rotating_handler(log_dir / "roomstager.log", logging.DEBUG))
        root_logger.addHandler(_rotating_handler(log_dir / "roomstager_errors.log", logging.ERROR))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.info(f"Logging configured: level={level_name}, format={log_format}, env={settings.environment}")
