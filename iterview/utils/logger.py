"""Structured logging for iterview using structlog.

Every log line, ours or a library's, goes through one stdlib handler whose
``ProcessorFormatter`` renders it. LOG_FORMAT picks pretty or JSON output,
LOG_COLORS toggles colors and LOG_LEVEL sets the root level.
"""

import logging
import os

import structlog
from structlog.types import FilteringBoundLogger, Processor

# Libraries that are chatty below WARNING; GitPython logs every command it spawns
QUIET_LIBRARIES = ("git", "watchdog", "httpx", "httpcore", "asyncio")


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes", "on")


def build_renderer(log_format: str | None = None, colors: bool | None = None) -> Processor:
    """Final renderer; arguments left as None are read from LOG_FORMAT / LOG_COLORS."""
    if log_format is None:
        log_format = os.getenv("LOG_FORMAT", "pretty")
    if colors is None:
        colors = _env_flag("LOG_COLORS", "true")
    if log_format.lower() == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=colors)


def foreign_pre_chain(*extra: Processor) -> list[Processor]:
    """Processors applied to records emitted through plain stdlib logging."""
    return [
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        *extra,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
    ]


def configure_structlog(
    level: str | None = None,
    log_format: str | None = None,
    colors: bool | None = None,
) -> None:
    """(Re)install the root handler. None arguments fall back to the environment."""
    handler = logging.StreamHandler()
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=build_renderer(log_format, colors),
            foreign_pre_chain=foreign_pre_chain(),
        )
    )
    logging.root.handlers = [handler]
    logging.root.setLevel((level or os.getenv("LOG_LEVEL", "INFO")).upper())
    logging.captureWarnings(True)

    for name in QUIET_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


configure_structlog()


def request_log(
    logger: FilteringBoundLogger,
    method: str,
    path: str,
    status_code: int,
    duration_ms: float,
    **kwargs,
):
    """Log one handled HTTP request."""
    log = logger.warning if status_code >= 500 else logger.info
    log(
        f"{method} {path} - {status_code}",
        method=method,
        path=path,
        status_code=status_code,
        duration_ms=duration_ms,
        **kwargs,
    )


def get_logger(name: str, level: int = logging.INFO) -> FilteringBoundLogger:
    """Get a structlog logger backed by a stdlib logger at the given level."""
    logging.getLogger(name).setLevel(level)
    return structlog.get_logger(name)


logger = get_logger("iterview")
api_logger = get_logger("iterview.api", level=logging.DEBUG)
store_logger = get_logger("iterview.store", level=logging.DEBUG)
