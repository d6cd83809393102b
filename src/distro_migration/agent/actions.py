"""
Migration actions.

Each public method is one operator action on the target host. Actions share
no state except artifacts on disk, plus the latest package and database
results kept here so that summarize can show them in the same session.

Actions raise MigrationError subclasses for setup problems and fatal
collaborator failures. The menu controller catches them per action.
"""

from __future__ import annotations

import time
from datetime import date, datetime
from pathlib import Path
from typing import Callable

import structlog

from distro_migration.core.config import MigrationConfig
from distro_migration.core.errors import CollaboratorFailure, SetupError
from distro_migration.core.types import (
    ActionResult,
    DatabaseReport,
    ImportOutcome,
    PackageAction,
    PackageDecision,
)
from distro_migration.execution.base import Host
from distro_migration.inventory.mapping import merge_mapping
from distro_migration.inventory.probe import matching_lines
from distro_migration.inventory.report import InventoryReport, load_report
from distro_migration.reconcile import DatabaseReconciler, PackageReconciler
from distro_migration.report.restore_log import RestoreLog
from distro_migration.report.summary import MigrationSummary, write_summary
from distro_migration.restore.backup import create_target_backup, rollback_to_backup
from distro_migration.restore.configs import restore_configs
from distro_migration.restore.services import (
    enable_migrated_services,
    fix_permissions,
    verify_restored_data,
)

logger = structlog.get_logger(__name__)


class MigrationActions:
    """
    Target host actions.

    host
    One object implementing every collaborator interface.

    sleep, today and clock are injectable so tests are instant and dated.
    """

    def __init__(
        self,
        host: Host,
        config: MigrationConfig,
        restore_log: RestoreLog,
        sleep: Callable[[float], None] = time.sleep,
        today: Callable[[], date] = date.today,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._host = host
        self._config = config
        self._log = restore_log
        self._sleep = sleep
        self._today = today
        self._clock = clock
        self.last_packages: list[PackageDecision] = []
        self.last_databases: list[DatabaseReport] = []

    def _report(self) -> InventoryReport:
        return load_report(self._config.report_path)

    def analyze(self) -> ActionResult:
        self._log.log("Analyzing migration data...")
        report = self._report()
        archive = self._config.find_source_archive()
        if archive is None:
            raise SetupError(f"no source archive in {self._config.work_dir}")

        members = self._host.list_members(archive)
        _write_artifact(self._config.file_list_path, "".join(m + "\n" for m in members))
        matches = matching_lines(report, self._config.analysis_keys)
        _write_artifact(self._config.analysis_path, "".join(m + "\n" for m in matches))
        self._log.log(f"Analysis summary saved at: {self._config.analysis_path}")
        return ActionResult(
            action="analyze",
            ok=True,
            messages=matches,
            data={"archive": str(archive), "members": len(members), "matches": matches},
        )

    def check_space(self) -> ActionResult:
        self._log.log("Checking disk space on Debian...")
        usage = self._host.disk_usage(self._config.disk_check_path)
        message = (
            f"{usage.path}: total {_human(usage.total)}, used {_human(usage.used)}, "
            f"free {_human(usage.free)}"
        )
        self._log.log(message)
        return ActionResult(
            action="check-space",
            ok=True,
            messages=[message],
            data={"total": usage.total, "used": usage.used, "free": usage.free},
        )

    def backup_self(self) -> ActionResult:
        dest = create_target_backup(self._host, self._config, self._log, today=self._today)
        return ActionResult(action="backup-self", ok=True, data={"archive": str(dest)})

    def install_packages(self) -> ActionResult:
        report = self._report()
        reconciler = PackageReconciler(
            self._host,
            merge_mapping(self._config.package_mapping),
            self._log,
        )
        decisions = reconciler.reconcile(report)
        self.last_packages = decisions
        failed = [d.target_package for d in decisions if d.action == PackageAction.install_failed]
        return ActionResult(
            action="install-packages",
            ok=not failed,
            messages=[f"{d.target_package}: {d.action.value}" for d in decisions],
            data={"decisions": decisions, "failed": failed},
        )

    def restore_and_import(self) -> ActionResult:
        report = self._report()
        configs = restore_configs(self._host, self._host, self._config, self._log)

        reconciler = DatabaseReconciler(
            services=self._host,
            filesystem=self._host,
            clusters=self._host,
            importer=self._host,
            config=self._config,
            restore_log=self._log,
            sleep=self._sleep,
        )
        databases = reconciler.reconcile(report)
        self.last_databases = databases
        self._log.log("All DB imports (and force fixes) done.")

        failed = [db.engine.value for db in databases if _import_failed(db)]
        ok = not configs.failed and not failed
        return ActionResult(
            action="restore-and-import",
            ok=ok,
            messages=[
                f"{db.engine.value}: {db.state.value} / {db.outcome.value}" for db in databases
            ],
            data={"configs": configs, "databases": databases, "failed_engines": failed},
        )

    def fix_permissions(self) -> ActionResult:
        ok = fix_permissions(self._host, self._config, self._log)
        return ActionResult(action="fix-permissions", ok=ok)

    def enable_services(self) -> ActionResult:
        started = enable_migrated_services(self._host, self._config, self._log)
        return ActionResult(
            action="enable-services",
            ok=all(started.values()),
            messages=[f"{unit}: {'started' if ok else 'failed'}" for unit, ok in started.items()],
            data={"started": started},
        )

    def verify(self) -> ActionResult:
        outcome = verify_restored_data(self._host, self._config, self._log)
        return ActionResult(
            action="verify",
            ok=outcome.ok,
            messages=[f"{c.name}: {'ok' if c.ok else 'FAILED'}" for c in outcome.checks],
            data={"checks": outcome.checks},
        )

    def summarize(self) -> ActionResult:
        self._log.log("Generating final summary...")
        report = self._report()
        summary = MigrationSummary(
            generated_at=self._clock(),
            report_matches=matching_lines(report, self._config.analysis_keys),
            packages=list(self.last_packages),
            databases=list(self.last_databases),
        )
        try:
            text = write_summary(summary, self._config.summary_path)
        except OSError as exc:
            raise CollaboratorFailure(f"cannot write summary {self._config.summary_path}: {exc}") from exc
        logger.info("actions.summary_written", path=str(self._config.summary_path))
        self._log.log(f"Summary saved: {self._config.summary_path}")
        return ActionResult(
            action="summarize",
            ok=True,
            messages=text.splitlines(),
            data={"path": str(self._config.summary_path)},
        )

    def rollback(self) -> ActionResult:
        result = rollback_to_backup(self._host, self._config, self._log)
        return ActionResult(
            action="rollback",
            ok=result.ok,
            messages=[result.message],
            data={"archive": str(result.archive) if result.archive else None},
        )


def _write_artifact(path: Path, text: str) -> None:
    try:
        path.write_text(text, encoding="utf-8")
    except OSError as exc:
        raise CollaboratorFailure(f"cannot write {path}: {exc}") from exc


def _import_failed(db: DatabaseReport) -> bool:
    """A dump that errored, or one left unimported because the engine never got ready."""
    if db.outcome == ImportOutcome.failed_other:
        return True
    return db.dump_path is not None and db.outcome == ImportOutcome.not_attempted


def _human(size: int) -> str:
    if size < 1024:
        return f"{size}B"
    value = float(size)
    for unit in ("K", "M", "G", "T"):
        value /= 1024
        if value < 1024 or unit == "T":
            break
    return f"{value:.1f}{unit}"
