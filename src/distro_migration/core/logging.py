"""
Logging configuration using structlog.

Two streams exist while a migration runs:

The restore log (report/restore_log.py) is the operator facing record. Its
lines are written to a file in the work dir and echoed to stdout.

structlog diagnostics go to stderr. Every RestoreLog line is also emitted as a
"restore_log.line" event; those are dropped here unless mirroring is asked
for, so an interactive operator does not see each line twice.

Each event carries the side of the migration ("source" or "target") and the
work dir once bind_migration_context has been called.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any

import structlog

from distro_migration.core.errors import ConfigError

LOG_FORMATS = ("console", "json")
RESTORE_LOG_EVENT = "restore_log.line"

_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def drop_restore_log_lines(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """structlog processor removing events that mirror restore log lines."""
    if event_dict.get("event") == RESTORE_LOG_EVENT:
        raise structlog.DropEvent
    return event_dict


def configure_logging(
    log_level: str = "INFO",
    log_format: str = "console",
    mirror_restore_log: bool = False,
) -> None:
    """
    Configure structlog for the toolkit.

    log_level
    DEBUG, INFO, WARNING, ERROR or CRITICAL.

    log_format
    "console" for human readable lines, "json" for JSON lines.

    mirror_restore_log
    Also emit restore log lines as structlog events. Useful with json output
    when stderr is shipped somewhere else.

    Diagnostics go to stderr. stdout belongs to the interactive menu.
    """
    level = log_level.upper()
    if level not in _LEVELS:
        raise ConfigError(f"unknown log level: {log_level}")
    if log_format not in LOG_FORMATS:
        raise ConfigError(f"unknown log format: {log_format}")

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level),
    )

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
    ]
    if not mirror_restore_log:
        processors.append(drop_restore_log_lines)
    processors.extend([
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", utc=False),
        structlog.processors.StackInfoRenderer(),
    ])

    if log_format == "json":
        processors.extend([
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ])
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def bind_migration_context(side: str, work_dir: Path) -> None:
    """Attach the migration side and work dir to every following event."""
    structlog.contextvars.bind_contextvars(side=side, work_dir=str(work_dir))
