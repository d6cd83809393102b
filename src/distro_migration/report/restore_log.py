"""
Restore log.

The restore log is the operator facing record of a migration run on the
target host. It is append only and every line carries a local timestamp.

Structured diagnostics go through structlog as well, so a line written here
also shows up in the process log with its event name.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable

import structlog

from distro_migration.core.logging import RESTORE_LOG_EVENT

logger = structlog.get_logger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass(frozen=True)
class RestoreLog:
    """
    Timestamped line logger.

    path
    Log file. Parent directories are created on first write.

    echo
    Optional callable that also receives each formatted line, used by the
    interactive menu to show progress on screen.
    """

    path: Path
    echo: Callable[[str], None] | None = None
    clock: Callable[[], datetime] = field(default=datetime.now)

    def log(self, message: str) -> str:
        line = f"{self.clock().strftime(TIMESTAMP_FORMAT)} {message}"
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8") as f:
            f.write(line + "\n")
        logger.info(RESTORE_LOG_EVENT, message=message)
        if self.echo is not None:
            self.echo(line)
        return line

    def write_block(self, text: str) -> None:
        """Append a multi line block verbatim, without timestamps."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8") as f:
            f.write(text if text.endswith("\n") else text + "\n")
        if self.echo is not None:
            self.echo(text.rstrip("\n"))
