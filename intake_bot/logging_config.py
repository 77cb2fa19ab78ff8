"""structlog setup: colored console output plus a plain interaction log."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any

import structlog
from structlog.types import Processor

from intake_bot.config import settings

log_file_path = Path(__file__).parent.parent / "logs" / "bot_interactions.log"

# LoggingMiddleware writes under this prefix; only these records reach the file.
INTERACTION_LOGGER_PREFIX = "bot.interactions"

_logging_configured = False


def _interaction_line_renderer(_: logging.Logger, __: str, event_dict: dict[str, Any]) -> str:
    """Render ``time | LEVEL | event | key=value ...`` on one line."""
    event_dict.pop("logger", None)
    head = [
        str(event_dict.pop("timestamp", "")),
        str(event_dict.pop("level", "")).upper(),
        str(event_dict.pop("event", "")),
    ]
    details = " ".join(f"{key}={value}" for key, value in event_dict.items() if value not in (None, ""))
    return " | ".join(part for part in (*head, details) if part)


def setup_logging() -> None:
    """Route stdlib and structlog records to stdout and the interaction file."""
    global _logging_configured

    if _logging_configured:
        return

    log_level = settings.log_level.upper()
    log_file_path.parent.mkdir(parents=True, exist_ok=True)

    shared_processors: list[Processor] = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S"),
        structlog.processors.format_exc_info,
    ]

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=structlog.dev.ConsoleRenderer(colors=True),
            foreign_pre_chain=shared_processors,
        )
    )

    file_handler = logging.FileHandler(log_file_path, encoding="utf-8")
    file_handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=_interaction_line_renderer,
            foreign_pre_chain=shared_processors,
        )
    )
    file_handler.addFilter(logging.Filter(INTERACTION_LOGGER_PREFIX))

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(console_handler)
    root_logger.addHandler(file_handler)
    root_logger.setLevel(log_level)

    for noisy_logger in ("aiogram", "asyncio", "googleapiclient", "google.auth", "urllib3"):
        logging.getLogger(noisy_logger).setLevel(logging.WARNING)

    _logging_configured = True
    structlog.get_logger(__name__).info("Logging configured", level=log_level, file_path=str(log_file_path))
