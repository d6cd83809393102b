"""
Core types.

This file defines the shared data structures used across the toolkit.

Important design choice
Types describe observed facts and outcomes, never shell commands.
The same reconciler code runs against a real host or an in memory host,
and callers only ever see these records.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional


class DatabaseEngine(str, Enum):
    """
    Supported database engines.

    postgresql
      PostgreSQL, managed as Debian style clusters.

    mysql
      MariaDB and MySQL, treated as one engine.
    """

    postgresql = "postgresql"
    mysql = "mysql"


class DatabaseEngineState(str, Enum):
    """
    Reconciliation state for one database engine.

    The reconciler moves forward through these states once per run.
    Only service_active_with_socket is a ready terminal.
    """

    unknown = "unknown"
    not_detected = "not_detected"
    detected = "detected"
    service_inactive = "service_inactive"
    service_active_no_socket = "service_active_no_socket"
    service_active_with_socket = "service_active_with_socket"
    cluster_recreated = "cluster_recreated"
    cluster_recreate_failed = "cluster_recreate_failed"


READY_STATES = frozenset({DatabaseEngineState.service_active_with_socket})


class ImportOutcome(str, Enum):
    """
    Result of importing one logical dump.

    failed_system_conflict
      The import failed only on a known benign conflict such as an existing
      system table. User databases are presumed imported.
    """

    not_attempted = "not_attempted"
    success = "success"
    failed_system_conflict = "failed_system_conflict"
    failed_other = "failed_other"


class PackageAction(str, Enum):
    """What the package reconciler did for one mapping entry."""

    already_installed = "already_installed"
    install = "install"
    install_failed = "install_failed"


@dataclass(frozen=True)
class CommandResult:
    """
    Outcome of one external command.

    exit_code is zero on success.
    stdout and stderr are captured text, possibly empty.
    """

    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


@dataclass(frozen=True)
class DiskUsage:
    """Disk usage in bytes for one mount point."""

    path: str
    total: int
    used: int
    free: int


@dataclass(frozen=True)
class PackageDecision:
    """
    One package reconciliation record.

    source_key
    Package identifier as it appears on the source host.

    target_package
    Debian package name the source key maps to.
    """

    source_key: str
    target_package: str
    action: PackageAction


@dataclass
class DatabaseReport:
    """
    Terminal result of reconciling one engine.

    trail records every state visited, in order.
    messages are the operator facing lines written to the restore log.
    error_text is the captured error stream of a failed import.
    """

    engine: DatabaseEngine
    state: DatabaseEngineState = DatabaseEngineState.unknown
    outcome: ImportOutcome = ImportOutcome.not_attempted
    trail: List[DatabaseEngineState] = field(default_factory=list)
    messages: List[str] = field(default_factory=list)
    version: Optional[str] = None
    dump_path: Optional[Path] = None
    error_text: str = ""

    def advance(self, state: DatabaseEngineState) -> None:
        """Move to the next state and record it in the trail."""
        self.state = state
        self.trail.append(state)

    @property
    def ready(self) -> bool:
        return self.state in READY_STATES


@dataclass(frozen=True)
class VerificationCheck:
    """
    One post migration check.

    detail carries the command output or a short reason.
    """

    name: str
    ok: bool
    detail: str = ""


@dataclass
class ActionResult:
    """
    Result of one menu action.

    ok is False when the action failed or was aborted.
    data holds action specific structured output for the summary and tests.
    """

    action: str
    ok: bool
    messages: List[str] = field(default_factory=list)
    data: Dict[str, Any] = field(default_factory=dict)
