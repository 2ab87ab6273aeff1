# src/testrelay/telemetry/logger/base.py

"""
structlog over stdlib logging.

Console logs go to stderr so stdout stays free for test output and run
summaries. The optional log file always receives JSON lines.
"""

import logging
import sys

import structlog
from structlog.typing import FilteringBoundLogger

from testrelay.telemetry.logger.processors import (
    add_emoji_processor,
    remove_extra_keys_processor,
)

BASE_LOGGER_NAME = "testrelay"
# Chatty below WARNING while subprocesses and sockets churn.
NOISY_LOGGERS = ("asyncio",)


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        add_emoji_processor,
        remove_extra_keys_processor,
        structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
    ]


def _json_formatter() -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(processor=structlog.processors.JSONRenderer(sort_keys=True))


def _console_handler(json_logs: bool) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    if json_logs:
        handler.setFormatter(_json_formatter())
    else:
        handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(processor=structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))
        )
    return handler


def _reset_root_logger(level: int) -> logging.Logger:
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        handler.close()
        root_logger.removeHandler(handler)
    root_logger.setLevel(level)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
    return root_logger


def setup_logging(
    level: int = logging.WARNING,
    json_logs: bool = False,
    log_file: str | None = None,
    file_only: bool = False,
) -> None:
    """Configures structlog and the root logger. Safe to call again to reconfigure."""
    structlog.configure(
        processors=_shared_processors(),
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    root_logger = _reset_root_logger(level)
    slog = structlog.get_logger(BASE_LOGGER_NAME)

    if not file_only:
        root_logger.addHandler(_console_handler(json_logs))

    if log_file:
        try:
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
        except OSError as e:
            slog.error("Cannot open log file, logging to console only", log_file=log_file, error=str(e))
        else:
            file_handler.setFormatter(_json_formatter())
            file_handler.setLevel(level)
            root_logger.addHandler(file_handler)

    slog.debug(
        "Logging configured",
        log_level=logging.getLevelName(level),
        json_console_format=json_logs,
        console_output_enabled=not file_only,
        log_file=log_file or "None",
    )


StructLogger = FilteringBoundLogger

# 🔼⚙️
