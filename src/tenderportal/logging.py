"""structlog on top of stdlib logging, configured once per process."""

import logging
import logging.config
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import structlog
from structlog.types import FilteringBoundLogger

from .config import settings

LOG_FILE_BYTES = 10 * 1024 * 1024

_FOREIGN_PRE_CHAIN = [
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt="iso"),
]


def _formatter(renderer) -> Dict[str, Any]:
    return {
        "()": structlog.stdlib.ProcessorFormatter,
        "processor": renderer,
        "foreign_pre_chain": _FOREIGN_PRE_CHAIN,
    }


def _rotating_file(path: Path, level: Optional[str] = None) -> Dict[str, Any]:
    handler = {
        "class": "logging.handlers.RotatingFileHandler",
        "filename": str(path),
        "maxBytes": LOG_FILE_BYTES,
        "backupCount": 5,
        "formatter": "json",
    }
    if level:
        handler["level"] = level
    return handler


def _build_handlers(log_dir: Optional[Path]) -> Dict[str, Dict[str, Any]]:
    interactive = sys.stdout.isatty() and settings.is_development
    handlers: Dict[str, Dict[str, Any]] = {
        "console": {
            "class": "logging.StreamHandler",
            "stream": sys.stdout,
            "formatter": "colored" if interactive else "plain",
        },
    }

    if log_dir is not None:
        handlers["file"] = _rotating_file(log_dir / "tenderportal.log")
        handlers["error_file"] = _rotating_file(log_dir / "error.log", level="ERROR")

    return handlers


def configure_logging() -> FilteringBoundLogger:
    """Install handlers and processors.

    Console output is human-readable in development and JSON elsewhere.
    When ``monitoring.log_dir`` is set, JSON lines also go to rotating files.
    """
    log_dir = None
    if settings.monitoring.log_dir:
        log_dir = Path(settings.monitoring.log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)

    handlers = _build_handlers(log_dir)
    all_handlers: List[str] = list(handlers)
    quiet_handlers = [name for name in all_handlers if name != "console"] or ["console"]
    level = settings.monitoring.log_level

    console_renderer = (
        structlog.dev.ConsoleRenderer(colors=False)
        if settings.is_development
        else structlog.processors.JSONRenderer()
    )

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": _formatter(structlog.processors.JSONRenderer()),
            "plain": _formatter(console_renderer),
            "colored": _formatter(structlog.dev.ConsoleRenderer(colors=True)),
        },
        "handlers": handlers,
        "loggers": {
            "": {"handlers": all_handlers, "level": level, "propagate": False},
            "tenderportal": {"handlers": all_handlers, "level": level, "propagate": False},
            "sqlalchemy.engine": {
                "handlers": quiet_handlers,
                "level": "INFO" if settings.database.echo else "WARNING",
                "propagate": False,
            },
            "botocore": {"handlers": quiet_handlers, "level": "WARNING", "propagate": False},
            "uvicorn.access": {"handlers": all_handlers, "level": "INFO", "propagate": False},
        },
    })

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logger = structlog.get_logger("tenderportal")
    logger.debug("Logging ready", environment=settings.environment, level=level, log_dir=str(log_dir) if log_dir else None)
    return logger


_configured = False


def _ensure_logging_configured():
    global _configured
    if not _configured:
        _configured = True
        configure_logging()


def get_logger(name: str = None) -> FilteringBoundLogger:
    """Module logger; configures logging on first call."""
    _ensure_logging_configured()
    return structlog.get_logger(name or "tenderportal")


def bind_request_context(**kwargs) -> None:
    """Attach key/value pairs to every log line emitted for the current request."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_request_context() -> None:
    """Drop request-scoped log context."""
    structlog.contextvars.clear_contextvars()
