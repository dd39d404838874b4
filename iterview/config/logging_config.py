"""uvicorn logging configuration rendered through the structlog formatter."""

import os

import structlog

from iterview.utils.logger import build_renderer, foreign_pre_chain

UVICORN_LOGGERS = {
    "uvicorn": "uvicorn",
    "uvicorn.error": "uvicorn.server",
    "uvicorn.access": "uvicorn.http",
}


def rename_uvicorn_loggers(logger, name, event_dict):
    """Show uvicorn.error/uvicorn.access under names that match what they log."""
    current = event_dict.get("logger")
    event_dict["logger"] = UVICORN_LOGGERS.get(current, current)
    return event_dict


def get_logging_config(log_format: str | None = None, colors: bool | None = None) -> dict:
    """dictConfig for uvicorn.Config(log_config=...)."""
    level = os.getenv("UVICORN_LOG_LEVEL", "INFO").upper()
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "structlog": {
                "()": structlog.stdlib.ProcessorFormatter,
                "processor": build_renderer(log_format, colors),
                "foreign_pre_chain": foreign_pre_chain(rename_uvicorn_loggers),
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "structlog",
                "stream": "ext://sys.stderr",
            },
        },
        "loggers": {
            name: {"handlers": ["console"], "level": level, "propagate": False}
            for name in UVICORN_LOGGERS
        },
    }

